from __future__ import annotations

import numpy as np

from phenofit.fitting.parametric_models import double_logistic
from phenofit.fitting.start_values import estimate_start_parameters
from phenofit.fitting.types import DoubleLogisticParams, ModelKind


def test_too_few_points():
    x = np.arange(9, dtype=float)
    assert estimate_start_parameters(x, x) == {}


def test_seasonal_series():
    x = np.linspace(0.0, 300.0, 31)
    truth = DoubleLogisticParams(baseline=0.15, amplitude=0.55, start=90.0, end=210.0, growth_rate=0.12, senescence_rate=0.08)
    y = double_logistic(x, truth)

    starts = estimate_start_parameters(x, y)
    assert set(starts) == {ModelKind.DOUBLE_LOGISTIC, ModelKind.SINGLE_LOGISTIC}

    dl = starts[ModelKind.DOUBLE_LOGISTIC]
    assert dl.start < dl.end
    assert abs(dl.baseline - 0.15) < 0.05
    assert abs(dl.amplitude - 0.55) < 0.1
    assert 60.0 <= dl.start <= 120.0

    sl = starts[ModelKind.SINGLE_LOGISTIC]
    assert sl.x0 > dl.start
    assert abs(sl.L - 0.7) < 0.05


def test_unsorted_input_gives_same_estimate():
    x = np.linspace(0.0, 300.0, 31)
    y = double_logistic(x, DoubleLogisticParams(start=90.0, end=210.0))
    rev = estimate_start_parameters(x[::-1], y[::-1])
    assert rev == estimate_start_parameters(x, y)

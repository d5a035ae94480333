from __future__ import annotations

import asyncio

import numpy as np
import pytest

from phenofit.fitting.optimizer import (
    OptimizerConfig,
    mean_squared_error,
    optimize_parameters,
    optimize_parameters_async,
)
from phenofit.fitting.parametric_models import double_logistic, single_logistic
from phenofit.fitting.types import DoubleLogisticParams, SingleLogisticParams

DL_NAMES = DoubleLogisticParams.tunable
SL_NAMES = SingleLogisticParams.tunable


def _season(seed: int = 1) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    x = np.linspace(0.0, 300.0, 40)
    truth = DoubleLogisticParams(baseline=0.15, amplitude=0.55, start=90.0, end=210.0, growth_rate=0.12, senescence_rate=0.08)
    y = double_logistic(x, truth) + rng.normal(0.0, 0.02, x.size)
    return x, y


def _growth(seed: int = 2) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    x = np.linspace(0.0, 100.0, 30)
    y = single_logistic(x, SingleLogisticParams(L=0.9, k=0.15, x0=45.0)) + rng.normal(0.0, 0.02, x.size)
    return x, y


def test_error_never_increases_single_logistic():
    x, y = _growth()
    p0 = SingleLogisticParams(L=0.5, k=0.05, x0=70.0)
    p = optimize_parameters(x, y, p0, single_logistic, SL_NAMES)
    assert mean_squared_error(x, y, p, single_logistic) < mean_squared_error(x, y, p0, single_logistic)


def test_error_never_increases_double_logistic():
    x, y = _season()
    p0 = DoubleLogisticParams(baseline=0.1, amplitude=0.6, start=80.0, end=200.0, growth_rate=0.1, senescence_rate=0.05)
    p = optimize_parameters(x, y, p0, double_logistic, DL_NAMES)
    assert p.start < p.end
    assert mean_squared_error(x, y, p, double_logistic) <= mean_squared_error(x, y, p0, double_logistic)


@pytest.mark.parametrize("names", [("baseline",), ("start", "end"), ("amplitude", "growth_rate", "senescence_rate")])
def test_locked_parameters_are_untouched(names):
    x, y = _season()
    p0 = DoubleLogisticParams(baseline=0.05, amplitude=0.4, start=70.0, end=230.0, growth_rate=0.2, senescence_rate=0.2)
    p = optimize_parameters(x, y, p0, double_logistic, DL_NAMES, locked=names)
    for name in names:
        assert getattr(p, name) == getattr(p0, name)
    assert mean_squared_error(x, y, p, double_logistic) <= mean_squared_error(x, y, p0, double_logistic)


def test_all_locked_returns_initial():
    x, y = _growth()
    p0 = SingleLogisticParams(L=0.5, k=0.05, x0=70.0)
    assert optimize_parameters(x, y, p0, single_logistic, SL_NAMES, locked=SL_NAMES) == p0


def test_empty_data_returns_initial():
    p0 = SingleLogisticParams()
    assert optimize_parameters(np.array([]), np.array([]), p0, single_logistic, SL_NAMES) == p0


def test_deterministic():
    x, y = _season()
    p0 = DoubleLogisticParams(start=60.0, end=240.0)
    a = optimize_parameters(x, y, p0, double_logistic, DL_NAMES)
    b = optimize_parameters(x, y, p0, double_logistic, DL_NAMES)
    assert a == b


def test_initial_parameters_are_not_modified():
    x, y = _growth()
    p0 = SingleLogisticParams(L=0.5, k=0.05, x0=70.0)
    optimize_parameters(x, y, p0, single_logistic, SL_NAMES)
    assert p0 == SingleLogisticParams(L=0.5, k=0.05, x0=70.0)


def test_season_repair_pushes_end_after_late_start():
    x = np.arange(11, dtype=float)
    y = np.zeros_like(x)
    p0 = DoubleLogisticParams(start=8.0, end=3.0)
    p = optimize_parameters(x, y, p0, double_logistic, DL_NAMES, config=OptimizerConfig(passes=0))
    assert p.start == 8.0
    assert p.end == 28.0


def test_season_repair_swaps_early_start():
    x = np.arange(11, dtype=float)
    y = np.zeros_like(x)
    p0 = DoubleLogisticParams(start=4.0, end=2.0)
    p = optimize_parameters(x, y, p0, double_logistic, DL_NAMES, config=OptimizerConfig(passes=0))
    assert (p.start, p.end) == (2.0, 4.0)


def test_season_repair_respects_locks():
    x = np.arange(11, dtype=float)
    y = np.zeros_like(x)
    p0 = DoubleLogisticParams(start=8.0, end=3.0)
    p = optimize_parameters(x, y, p0, double_logistic, DL_NAMES, locked={"end"}, config=OptimizerConfig(passes=0))
    assert p.end == 3.0


def test_async_matches_sync():
    x, y = _growth()
    p0 = SingleLogisticParams(L=0.5, k=0.05, x0=70.0)
    sync = optimize_parameters(x, y, p0, single_logistic, SL_NAMES)
    result = asyncio.run(optimize_parameters_async(x, y, p0, single_logistic, SL_NAMES))
    assert result == sync


def test_config_to_dict():
    cfg = OptimizerConfig()
    d = cfg.to_dict()
    assert d["passes"] == 3
    assert d["max_iterations"] == 50
    assert d["step_shrink"] == 0.98

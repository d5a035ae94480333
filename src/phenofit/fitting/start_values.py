# src/phenofit/fitting/start_values.py
from __future__ import annotations
import numpy as np
from typing import Dict

from phenofit.preprocess.axis import MS_PER_DAY

from .types import DoubleLogisticParams, ModelKind, ModelParams, SingleLogisticParams

MIN_POINTS = 10

# fallback offsets from the peak, in days (date axis) or x units
SOS_GUESS_OFFSET = 30.0
EOS_GUESS_OFFSET = 50.0


def estimate_start_parameters(x: np.ndarray, y: np.ndarray, date_axis: bool = False) -> Dict[ModelKind, ModelParams]:
    """
    Data-driven starting values for the parametric models.

    baseline / peak are the 5th / 95th rank values of y, the season start is the
    observation up to the peak closest to a quarter of the amplitude, and the
    season end sits halfway between the peak and the last observation.
    Returns an empty dict for series shorter than MIN_POINTS.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = x.size
    if n < MIN_POINTS:
        return {}

    order = np.argsort(x, kind="stable")
    x = x[order]
    y = y[order]

    y_sorted = np.sort(y)
    baseline = float(y_sorted[int(np.floor(n * 0.05))])
    peak_y = float(y_sorted[int(np.floor(n * 0.95))])
    amplitude = peak_y - baseline

    i_peak = int(np.argmax(y))
    peak_x = float(x[i_peak])
    unit = MS_PER_DAY if date_axis else 1.0

    rising = x <= peak_x
    if np.count_nonzero(rising) > 1:
        target = baseline + amplitude * 0.25
        cand = np.flatnonzero(rising)
        sos_x = float(x[cand[int(np.argmin(np.abs(y[cand] - target)))]])
    else:
        sos_x = peak_x - SOS_GUESS_OFFSET * unit

    end_x = float(np.round(peak_x + (float(x[-1]) - peak_x) * 0.5))
    if end_x == 0:
        end_x = peak_x + EOS_GUESS_OFFSET * unit

    return {
        ModelKind.DOUBLE_LOGISTIC: DoubleLogisticParams(
            baseline=round(baseline, 4),
            amplitude=round(amplitude, 4),
            start=float(np.round(sos_x)),
            end=end_x,
            growth_rate=0.1,
            senescence_rate=0.05,
        ),
        ModelKind.SINGLE_LOGISTIC: SingleLogisticParams(
            L=round(peak_y, 4),
            k=0.1,
            x0=float(np.round(peak_x)),
        ),
    }

# src/phenofit/fitting/metrics.py
from __future__ import annotations
import numpy as np
from typing import Optional

from .parametric_models import double_logistic
from .types import Curve, DoubleLogisticParams, FitStatistics, KeyPoints, Point, SingleLogisticParams

# Smoother phenophase thresholds, as fractions of the seasonal amplitude
SOS_FRACTION = 0.2
EOS_FRACTION = 0.5

# Single logistic thresholds, as fractions of L
LOGISTIC_SOS_FRACTION = 0.1
LOGISTIC_EOS_FRACTION = 0.9


def _finite_or_zero(v: float) -> float:
    return float(v) if np.isfinite(v) else 0.0


def goodness_of_fit(observed: np.ndarray, predicted: np.ndarray) -> FitStatistics:
    """
    R^2 and RMSE of predictions against observations.
    Only defined when the two align 1:1; otherwise both are reported as 0.
    Constant observations give R^2 = 1.
    """
    y = np.asarray(observed, dtype=float)
    y_hat = np.asarray(predicted, dtype=float)
    if y.size == 0 or y.shape != y_hat.shape:
        return FitStatistics.empty()

    ss_res = float(np.sum((y - y_hat) ** 2))
    ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0
    rmse = float(np.sqrt(ss_res / y.size))
    return FitStatistics(r2=_finite_or_zero(r2), rmse=_finite_or_zero(rmse))


def _first_index(mask: np.ndarray) -> Optional[int]:
    hits = np.flatnonzero(mask)
    return int(hits[0]) if hits.size else None


def _peak(curve: Curve) -> Optional[Point]:
    if len(curve) == 0:
        return None
    return curve.point(int(np.argmax(curve.y)))


def key_points_double_logistic(curve: Curve, params: DoubleLogisticParams, axis) -> KeyPoints:
    """
    Peak from the sampled curve; SOS/EOS are the curve at the start/end parameters.
    ``params`` are on the model axis, ``curve`` on the caller axis.
    """
    if len(curve) == 0:
        return KeyPoints.empty()
    sos = Point(float(axis.denormalize(params.start)), float(double_logistic(params.start, params)))
    eos = Point(float(axis.denormalize(params.end)), float(double_logistic(params.end, params)))
    return KeyPoints(sos=sos, eos=eos, peak=_peak(curve))


def key_points_single_logistic(curve: Curve, params: SingleLogisticParams) -> KeyPoints:
    if len(curve) == 0:
        return KeyPoints.empty()
    i_sos = _first_index(curve.y >= params.L * LOGISTIC_SOS_FRACTION)
    i_eos = _first_index(curve.y >= params.L * LOGISTIC_EOS_FRACTION)
    return KeyPoints(
        sos=curve.point(i_sos) if i_sos is not None else None,
        eos=curve.point(i_eos) if i_eos is not None else None,
        peak=_peak(curve),
    )


def key_points_from_smoothed(curve: Curve) -> KeyPoints:
    """
    Threshold phenophases on a smoothed series.

    baseline = mean of the first and last values, amplitude = peak - baseline.
    SOS is the first point before the peak reaching baseline + 0.2 * amplitude,
    EOS the last point after the peak reaching baseline + 0.5 * amplitude; the
    series ends are used when no point qualifies.
    """
    n = len(curve)
    if n < 3:
        return KeyPoints.empty()

    y = curve.y
    i_peak = int(np.argmax(y))
    baseline = (float(y[0]) + float(y[-1])) / 2.0
    amplitude = float(y[i_peak]) - baseline
    sos_threshold = baseline + amplitude * SOS_FRACTION
    eos_threshold = baseline + amplitude * EOS_FRACTION

    i_sos = _first_index(y[:i_peak] >= sos_threshold)

    i_eos = None
    tail = np.flatnonzero(y[i_peak + 1:] >= eos_threshold)
    if tail.size:
        i_eos = i_peak + 1 + int(tail[-1])

    return KeyPoints(
        sos=curve.point(i_sos if i_sos is not None else 0),
        eos=curve.point(i_eos if i_eos is not None else n - 1),
        peak=curve.point(i_peak),
    )

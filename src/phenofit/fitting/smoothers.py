# src/phenofit/fitting/smoothers.py
from __future__ import annotations
import logging
import numpy as np

from .matrix import MAX_INVERT_DIM, invert, multiply, transpose
from .types import LoessParams, ModelParams, MovingAverageParams, SavitzkyGolayParams


def _as_xy(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length, got {x.size} and {y.size}")
    return x, y


def moving_average(x: np.ndarray, y: np.ndarray, window_size: int) -> np.ndarray:
    """
    Centered moving average. Windows are clamped at the edges (they shrink, not wrap),
    so the first/last points average fewer neighbours.
    """
    x, y = _as_xy(x, y)
    if window_size < 1:
        return y.copy()

    n = y.size
    half = int(window_size) // 2
    out = np.empty_like(y)
    for i in range(n):
        lo = max(0, i - half)
        hi = min(n - 1, i + half)
        out[i] = np.mean(y[lo:hi + 1])
    return out


def loess(x: np.ndarray, y: np.ndarray, span: float) -> np.ndarray:
    """
    Local linear smoother: an ordinary least-squares line over a window of
    floor(n * span / 2) neighbours on each side, evaluated at the centre point.
    No tricube weighting.
    """
    x, y = _as_xy(x, y)
    n = y.size
    if n < 3:
        return y.copy()

    half = int(np.floor(n * float(span) / 2.0))
    out = np.empty_like(y)
    degenerate = 0
    for i in range(n):
        lo = max(0, i - half)
        hi = min(n - 1, i + half)
        xs = x[lo:hi + 1]
        ys = y[lo:hi + 1]

        if xs.size < 2:
            out[i] = y[i]
            continue

        x_mean = float(np.mean(xs))
        y_mean = float(np.mean(ys))
        dx = xs - x_mean
        sxx = float(np.sum(dx * dx))
        if np.ptp(xs) == 0 or sxx == 0:
            # all x identical -> no slope
            degenerate += 1
            out[i] = y[i]
            continue
        slope = float(np.sum(dx * (ys - y_mean))) / sxx
        out[i] = y_mean + slope * (x[i] - x_mean)

    if degenerate:
        logging.debug(f"loess: {degenerate} window(s) with identical x, raw values kept")
    return out


def savitzky_golay(
    x: np.ndarray,
    y: np.ndarray,
    window_size: int,
    polynomial_order: int = 2,
) -> np.ndarray:
    """
    Savitzky-Golay smoothing as a local polynomial regression on irregular x.

    For each point a polynomial of the given order in (x_j - x_i) is fitted over the
    window by the normal equations and its intercept is taken as the smoothed value.
    Invalid settings (even window, window <= order, window longer than the data,
    order outside 0..2) fall back to moving_average with the same window.
    """
    x, y = _as_xy(x, y)
    n = y.size
    window_size = int(window_size)
    polynomial_order = int(polynomial_order)

    if (
        window_size % 2 == 0
        or window_size <= polynomial_order
        or n < window_size
        or not 0 <= polynomial_order < MAX_INVERT_DIM
    ):
        logging.debug(
            f"savitzky_golay: window={window_size} order={polynomial_order} n={n} invalid, "
            f"using moving average"
        )
        return moving_average(x, y, window_size)

    half = window_size // 2
    powers = np.arange(polynomial_order + 1)
    out = np.empty_like(y)
    singular = 0
    for i in range(n):
        lo = max(0, i - half)
        hi = min(n, i + half + 1)
        # too few distinct x to pin down the polynomial
        if np.unique(x[lo:hi]).size <= polynomial_order:
            singular += 1
            out[i] = y[i]
            continue

        # Vandermonde design matrix centred on x_i
        X = np.power.outer(x[lo:hi] - x[i], powers)
        Y = y[lo:hi].reshape(-1, 1)

        Xt = transpose(X)
        XtX_inv = invert(multiply(Xt, X))
        if XtX_inv is None:
            singular += 1
            out[i] = y[i]
            continue
        coeffs = multiply(XtX_inv, multiply(Xt, Y))
        c0 = float(coeffs[0, 0])
        out[i] = c0 if np.isfinite(c0) else y[i]

    if singular:
        logging.debug(f"savitzky_golay: {singular} singular window(s), raw values kept")
    return out


def smooth(x: np.ndarray, y: np.ndarray, params: ModelParams) -> np.ndarray:
    if isinstance(params, LoessParams):
        return loess(x, y, params.span)
    if isinstance(params, MovingAverageParams):
        return moving_average(x, y, params.window_size)
    if isinstance(params, SavitzkyGolayParams):
        return savitzky_golay(x, y, params.window_size, params.polynomial_order)
    raise ValueError(f"'{params.kind.value}' is not a smoother.")

from __future__ import annotations

import logging
from typing import Literal

import numpy as np

OutlierMethod = Literal["sd", "iqr", "moving_window_sd"]
OUTLIER_METHODS = ("sd", "iqr", "moving_window_sd")

MOVING_WINDOW = 10
MOVING_WINDOW_MIN_POINTS = 3


def _sd_outliers(y: np.ndarray, threshold: float) -> np.ndarray:
    # population standard deviation
    mean = float(np.mean(y))
    std = float(np.std(y))
    return np.abs(y - mean) > threshold * std


def _iqr_outliers(y: np.ndarray, threshold: float) -> np.ndarray:
    # quartiles by rank, no interpolation
    n = y.size
    y_sorted = np.sort(y)
    q1 = float(y_sorted[int(np.floor(n * 0.25))])
    q3 = float(y_sorted[int(np.floor(n * 0.75))])
    iqr = q3 - q1
    return (y < q1 - threshold * iqr) | (y > q3 + threshold * iqr)


def _moving_window_sd_outliers(y: np.ndarray, threshold: float, window: int) -> np.ndarray:
    n = y.size
    mask = np.zeros(n, dtype=bool)
    for i in range(n):
        lo = max(0, i - window // 2)
        hi = min(n, i + int(np.ceil(window / 2)))
        w = y[lo:hi]
        if w.size < MOVING_WINDOW_MIN_POINTS:
            continue
        mean = float(np.mean(w))
        std = float(np.std(w))
        if std > 0 and abs(y[i] - mean) > threshold * std:
            mask[i] = True
    return mask


def detect_outliers(
    y: np.ndarray,
    method: OutlierMethod = "sd",
    threshold: float = 3.0,
    window: int = MOVING_WINDOW,
) -> np.ndarray:
    """
    Flag outlying observations. Returns a boolean mask aligned with y.

    Methods:
      - "sd": farther than threshold standard deviations from the mean
      - "iqr": outside [Q1 - threshold*IQR, Q3 + threshold*IQR]
      - "moving_window_sd": like "sd" but against a local window of neighbours
    """
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return np.zeros(0, dtype=bool)

    m = str(method).strip().lower()
    if m == "sd":
        mask = _sd_outliers(y, float(threshold))
    elif m == "iqr":
        mask = _iqr_outliers(y, float(threshold))
    elif m == "moving_window_sd":
        mask = _moving_window_sd_outliers(y, float(threshold), int(window))
    else:
        raise ValueError(f"Unknown outlier method: {method}. Available: {', '.join(OUTLIER_METHODS)}")

    logging.debug(f"detect_outliers: method={m} threshold={threshold} flagged={int(mask.sum())}/{y.size}")
    return mask

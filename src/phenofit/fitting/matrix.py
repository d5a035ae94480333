# src/phenofit/fitting/matrix.py
"""
Small dense-matrix helpers for the Savitzky-Golay normal equations.

Inversion is closed form (cofactors) for 1x1, 2x2 and 3x3 only, which caps the
local polynomial order at 2. Larger or singular matrices invert to None.
"""
from __future__ import annotations
import numpy as np
from typing import Optional

MAX_INVERT_DIM = 3


def transpose(m: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=float)
    if m.size == 0:
        return np.empty((0, 0), dtype=float)
    return np.atleast_2d(m).T.copy()


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    a = np.atleast_2d(np.asarray(a, dtype=float))
    b = np.atleast_2d(np.asarray(b, dtype=float))
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"Cannot multiply {a.shape[0]}x{a.shape[1]} by {b.shape[0]}x{b.shape[1]}")
    return a @ b


def invert(m: np.ndarray) -> Optional[np.ndarray]:
    m = np.asarray(m, dtype=float)
    if m.ndim != 2 or m.shape[0] == 0 or m.shape[0] != m.shape[1]:
        return None
    dim = m.shape[0]

    if dim == 1:
        if m[0, 0] == 0:
            return None
        return np.array([[1.0 / m[0, 0]]])

    if dim == 2:
        det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
        if det == 0 or not np.isfinite(det):
            return None
        return np.array([
            [m[1, 1], -m[0, 1]],
            [-m[1, 0], m[0, 0]],
        ]) / det

    if dim == MAX_INVERT_DIM:
        a, b, c = m[0]
        d, e, f = m[1]
        g, h, i = m[2]
        det = a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)
        if det == 0 or not np.isfinite(det):
            return None
        adj = np.array([
            [e * i - f * h, c * h - b * i, b * f - c * e],
            [f * g - d * i, a * i - c * g, c * d - a * f],
            [d * h - e * g, b * g - a * h, a * e - b * d],
        ])
        return adj / det

    return None

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Union

import numpy as np

MS_PER_DAY = 86_400_000.0
DAYS_PER_YEAR = 365.0
CIRCULAR_BREAK_MIN_DROP = 180.0

_DATE_COL_RE = re.compile(r"date", re.I)
_CIRCULAR_COL_RE = re.compile(r"doy|day of year", re.I)

ArrayOrFloat = Union[float, np.ndarray]


def is_date_column(name: str) -> bool:
    return bool(_DATE_COL_RE.search(str(name)))


def is_circular_column(name: str) -> bool:
    return bool(_CIRCULAR_COL_RE.search(str(name)))


@dataclass(frozen=True)
class AxisTransform:
    """
    Maps caller x values to model x values.

    Date axes (epoch milliseconds) become days since the earliest observation;
    other axes pass through unchanged.
    """
    date_axis: bool = False
    offset: float = 0.0

    @classmethod
    def from_data(cls, x: np.ndarray, date_axis: bool) -> "AxisTransform":
        x = np.asarray(x, dtype=float)
        if not date_axis or x.size == 0:
            return cls(date_axis=bool(date_axis), offset=0.0)
        return cls(date_axis=True, offset=float(np.min(x)))

    def normalize(self, x: ArrayOrFloat) -> ArrayOrFloat:
        if not self.date_axis:
            return x
        if np.ndim(x) == 0:
            return (float(x) - self.offset) / MS_PER_DAY
        return (np.asarray(x, dtype=float) - self.offset) / MS_PER_DAY

    def denormalize(self, x: ArrayOrFloat) -> ArrayOrFloat:
        if not self.date_axis:
            return x
        if np.ndim(x) == 0:
            return float(x) * MS_PER_DAY + self.offset
        return np.asarray(x, dtype=float) * MS_PER_DAY + self.offset

    def normalize_params(self, params):
        """Shift the x-location parameters (start/end/x0) onto the model axis."""
        if not self.date_axis or not params.location_fields:
            return params
        return replace(params, **{f: self.normalize(getattr(params, f)) for f in params.location_fields})

    def denormalize_params(self, params):
        if not self.date_axis or not params.location_fields:
            return params
        return replace(params, **{f: self.denormalize(getattr(params, f)) for f in params.location_fields})


def unwrap_circular_axis(x: np.ndarray, *, period: float = DAYS_PER_YEAR, min_drop: float = CIRCULAR_BREAK_MIN_DROP) -> np.ndarray:
    """
    Day-of-year series that cross the new year (e.g. 300, 340, 10, 40) are made
    continuous: find the largest drop between consecutive values (in file order)
    and, if it exceeds min_drop, add one period to every value from there on.
    """
    xx = np.array(x, dtype=float)
    if xx.size < 2:
        return xx

    drops = xx[:-1] - xx[1:]
    idx = int(np.argmax(drops))
    if drops[idx] > min_drop:
        xx[idx + 1:] += period
    return xx

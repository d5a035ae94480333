from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from phenofit.preprocess.axis import is_circular_column, is_date_column, unwrap_circular_axis

_EPOCH = pd.Timestamp(0, tz="UTC")

_X_COL_RE = re.compile(r"date|doy|das|day", re.I)
_Y_COL_RE = re.compile(r"ndvi|gcc|value|index", re.I)


@dataclass(frozen=True)
class ObservationSet:
    x: np.ndarray
    y: np.ndarray
    labels: np.ndarray  # original x cell values
    date_axis: bool = False
    circular_axis: bool = False

    def __len__(self) -> int:
        return int(self.x.size)

    def drop(self, mask: np.ndarray) -> "ObservationSet":
        keep = ~np.asarray(mask, dtype=bool)
        return ObservationSet(
            x=self.x[keep],
            y=self.y[keep],
            labels=self.labels[keep],
            date_axis=self.date_axis,
            circular_axis=self.circular_axis,
        )


def load_table(path: str | Path, sheet_name=0) -> pd.DataFrame:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file not found: {p}")
    suffix = p.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(p, low_memory=False)
    if suffix in {".xlsx", ".xls"}:
        return pd.read_excel(p, sheet_name=sheet_name)
    raise ValueError(f"{p}: unsupported file type '{suffix}' (expected .csv, .xlsx or .xls)")


def guess_columns(columns) -> tuple[str, str]:
    """
    Pick the x and y columns of a table by name: the first column that looks like
    a time axis (date, doy, das, day) and the first that looks like a vegetation
    signal (ndvi, gcc, value, index). Falls back to the first and second columns.
    """
    cols = list(columns)
    if len(cols) < 2:
        raise ValueError(f"Need at least two columns to pick x and y, got {cols}")
    x_col = next((c for c in cols if _X_COL_RE.search(str(c))), cols[0])
    y_col = next((c for c in cols if _Y_COL_RE.search(str(c)) and c != x_col), None)
    if y_col is None:
        y_col = next(c for c in cols if c != x_col)
    return x_col, y_col


def parse_dates_to_ms(values: pd.Series) -> pd.Series:
    """
    Parse date-like cells to epoch milliseconds (UTC). Numeric cells are taken as
    epoch milliseconds already. Unparseable cells become NaN.
    """
    if pd.api.types.is_datetime64_any_dtype(values):
        return (pd.to_datetime(values, utc=True) - _EPOCH) / pd.Timedelta(milliseconds=1)

    num = pd.to_numeric(values, errors="coerce")
    is_num = num.notna()
    dt = pd.to_datetime(values.where(~is_num), errors="coerce", utc=True)
    ms = (dt - _EPOCH) / pd.Timedelta(milliseconds=1)
    return ms.where(~is_num, num.astype(float))


def observations_from_frame(
    df: pd.DataFrame,
    x_col: str,
    y_col: str,
    date_axis: Optional[bool] = None,
    circular_axis: Optional[bool] = None,
) -> ObservationSet:
    """
    Extract a clean (x, y) series from a table.

    Axis kinds are inferred from the x column name unless given: names containing
    "date" are parsed as dates (epoch ms), "doy"/"day of year" as circular
    day-of-year. Rows with a missing or non-finite x or y are dropped. Circular
    series keep file order and are unwrapped across the year boundary; all other
    series are sorted by x.
    """
    missing = [c for c in (x_col, y_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    if date_axis is None:
        date_axis = is_date_column(x_col)
    if circular_axis is None:
        circular_axis = is_circular_column(x_col)

    raw_x = df[x_col]
    x = parse_dates_to_ms(raw_x) if date_axis else pd.to_numeric(raw_x, errors="coerce")
    y = pd.to_numeric(df[y_col], errors="coerce")

    xv = x.to_numpy(dtype=float)
    yv = y.to_numpy(dtype=float)
    labels = raw_x.to_numpy()

    m = np.isfinite(xv) & np.isfinite(yv)
    dropped = int(m.size - m.sum())
    if dropped:
        logging.info(f"Dropped {dropped} row(s) with missing/invalid '{x_col}' or '{y_col}'")
    xv, yv, labels = xv[m], yv[m], labels[m]

    if circular_axis:
        xv = unwrap_circular_axis(xv)
    else:
        order = np.argsort(xv, kind="stable")
        xv, yv, labels = xv[order], yv[order], labels[order]

    return ObservationSet(x=xv, y=yv, labels=labels, date_axis=bool(date_axis), circular_axis=bool(circular_axis))

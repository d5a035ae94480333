from __future__ import annotations
import io
import zipfile
from pathlib import Path
from typing import Optional, Dict, Any
import numpy as np
import pandas as pd

from phenofit.fitting.parametric_models import evaluate
from phenofit.fitting.smoothers import smooth
from phenofit.fitting.types import FitResult, params_to_dict
from phenofit.preprocess.axis import AxisTransform


def fitted_at_observations(result: FitResult, x: np.ndarray, y: np.ndarray, date_axis: bool = False) -> np.ndarray:
    """Model values at the observed x (caller units), aligned with the input order."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size == 0:
        return np.empty(0, dtype=float)
    axis = AxisTransform.from_data(x, date_axis)
    if result.model.parametric:
        return np.asarray(evaluate(axis.normalize(x), axis.normalize_params(result.params)), dtype=float)

    order = np.argsort(x, kind="stable")
    out = np.empty_like(y)
    out[order] = smooth(axis.normalize(x[order]), y[order], result.params)
    return out


def result_tables(
    result: FitResult,
    x: np.ndarray,
    y: np.ndarray,
    *,
    x_name: str = "x",
    y_name: str = "y",
    date_axis: bool = False,
    outliers: Optional[np.ndarray] = None,
    labels: Optional[np.ndarray] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Tables for export:
      - data: observations, fitted value at each observation, outlier flag
      - phenophases: SOS / EOS / peak
      - parameters: active model parameters
      - statistics: R^2, RMSE
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    is_outlier = np.zeros(x.size, dtype=bool) if outliers is None else np.asarray(outliers, dtype=bool)

    kept = ~is_outlier
    fitted = np.full(x.size, np.nan)
    fitted[kept] = fitted_at_observations(result, x[kept], y[kept], date_axis=date_axis)

    data = pd.DataFrame({
        x_name: labels if labels is not None else x,
        y_name: y,
        f"fitted_{y_name}": fitted,
        "is_outlier": is_outlier,
    })
    phenophases = pd.DataFrame(result.key_points.as_rows(), columns=["phase", "x", "y", "label"])
    parameters = pd.DataFrame(
        [{"parameter": k, "value": v} for k, v in params_to_dict(result.params).items()],
        columns=["parameter", "value"],
    )
    statistics = pd.DataFrame([
        {"metric": "R-squared", "value": result.statistics.r2},
        {"metric": "RMSE", "value": result.statistics.rmse},
    ])
    return {
        "data": data,
        "phenophases": phenophases,
        "parameters": parameters,
        "statistics": statistics,
    }


def export_results(
    tables: Dict[str, pd.DataFrame],
    *,
    out_dir: Path,
    zip_name: str = "phenofit_outputs.zip",
    cleanup_csv: bool = True,
) -> Dict[str, Any]:
    """
    Write one CSV per table and return a ZIP containing them.
    Files written:
      - <table>.csv for each table
      - <zip_name>
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    csv_paths = []
    for name, df in tables.items():
        p = out_dir / f"{name}.csv"
        df.to_csv(p, index=False)
        csv_paths.append(p)

    zip_path = out_dir / zip_name
    bio = io.BytesIO()
    with zipfile.ZipFile(bio, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for p in csv_paths:
            zf.write(p, arcname=p.name)
    zip_bytes = bio.getvalue()
    zip_path.write_bytes(zip_bytes)

    if cleanup_csv:
        for p in csv_paths:
            p.unlink(missing_ok=True)

    return {"zip_bytes": zip_bytes, "zip_path": zip_path}


def export_workbook(tables: Dict[str, pd.DataFrame], path: Path) -> Path:
    """Write all tables into one Excel workbook, one sheet per table."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path) as writer:
        for name, df in tables.items():
            df.to_excel(writer, sheet_name=name[:31], index=False)
    return path

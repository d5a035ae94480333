# src/phenofit/fitting/fit_curve.py
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass, replace
from typing import Iterable, Optional, Tuple

import numpy as np

from phenofit.preprocess.axis import AxisTransform

from .metrics import (
    goodness_of_fit,
    key_points_double_logistic,
    key_points_from_smoothed,
    key_points_single_logistic,
)
from .optimizer import OptimizerConfig, optimize_parameters
from .parametric_models import get_model
from .smoothers import smooth
from .types import (
    Curve,
    DoubleLogisticParams,
    FitResult,
    FitStatistics,
    KeyPoints,
    ModelParams,
)


@dataclass
class FitConfig:
    # Number of evenly spaced samples for parametric curves
    grid_size: int = 200

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _prepare(x, y, labels=None) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    x = np.asarray(x, dtype=float).ravel()
    y = np.asarray(y, dtype=float).ravel()
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length, got {x.size} and {y.size}")
    order = np.argsort(x, kind="stable")
    if labels is not None:
        labels = np.asarray(labels, dtype=object).ravel()
        if labels.shape != x.shape:
            raise ValueError(f"labels must align with x, got {labels.size} for {x.size} point(s)")
        labels = labels[order]
    return x[order], y[order], labels


def _empty_result(params: ModelParams) -> FitResult:
    return FitResult(
        model=params.kind,
        params=params,
        fitted=Curve(),
        key_points=KeyPoints.empty(),
        statistics=FitStatistics.empty(),
        n=0,
    )


def fit_curve(
    x,
    y,
    params: ModelParams,
    *,
    date_axis: bool = False,
    labels=None,
    config: FitConfig | None = None,
) -> FitResult:
    """
    Fit one model to one series and derive phenophases and fit statistics.

    Args:
        x, y: Observations; sorted here by x. Callers drop NaN/inf beforehand.
            On a date axis, x is epoch milliseconds.
        params: Parameter set of the model to fit; its type selects the model.
            Location parameters (start/end/x0) are in caller x units.
        date_axis: Model in days since the first observation and map results back.
        labels: Original x cells, aligned with x. Carried onto smoother key points.
        config: Sampling settings.

    Returns:
        FitResult with the fitted curve (caller x units), key points and R^2/RMSE.
    """
    cfg = config or FitConfig()
    x, y, labels = _prepare(x, y, labels)
    if x.size == 0:
        return _empty_result(params)

    axis = AxisTransform.from_data(x, date_axis)
    x_n = axis.normalize(x)
    spec = get_model(params.kind)

    if spec.parametric:
        p_n = axis.normalize_params(params)
        t_grid = np.linspace(float(np.min(x_n)), float(np.max(x_n)), int(cfg.grid_size))
        fitted = Curve(
            x=np.asarray(axis.denormalize(t_grid), dtype=float),
            y=np.asarray(spec.func(t_grid, p_n), dtype=float),
        )
        y_pred = np.asarray(spec.func(x_n, p_n), dtype=float)
        if isinstance(p_n, DoubleLogisticParams):
            key_points = key_points_double_logistic(fitted, p_n, axis)
        else:
            key_points = key_points_single_logistic(fitted, p_n)
    else:
        y_pred = smooth(x_n, y, params)
        fitted = Curve(x=x.copy(), y=y_pred, labels=labels)
        key_points = key_points_from_smoothed(fitted)

    stats = goodness_of_fit(y, y_pred)
    logging.debug(f"fit_curve: model={spec.name.value} n={x.size} r2={stats.r2:.4g} rmse={stats.rmse:.4g}")

    return FitResult(
        model=spec.name,
        params=params,
        fitted=fitted,
        key_points=key_points,
        statistics=stats,
        n=int(x.size),
    )


def optimize_fit(
    x,
    y,
    params: ModelParams,
    *,
    locked: Iterable[str] = (),
    date_axis: bool = False,
    config: OptimizerConfig | None = None,
) -> ModelParams:
    """
    Calibrate a parametric model to the observations and return the new parameters
    in caller x units. Smoother parameter sets are returned as given.
    """
    x, y, _ = _prepare(x, y)
    locked = frozenset(locked)
    spec = get_model(params.kind)
    if x.size == 0 or not spec.parametric:
        logging.info(f"optimize_fit: nothing to optimize for model={spec.name.value} n={x.size}")
        return params

    axis = AxisTransform.from_data(x, date_axis)
    x_n = axis.normalize(x)
    p_n = axis.normalize_params(params)

    best = optimize_parameters(
        x_n, y, p_n, spec.func, spec.param_names, locked=locked, config=config,
    )
    out = axis.denormalize_params(best)

    # locked values stay bit-identical to the caller's (no round trip through the axis)
    if locked & set(params.location_fields):
        out = replace(out, **{f: getattr(params, f) for f in params.location_fields if f in locked})
    return out


async def optimize_fit_async(
    x,
    y,
    params: ModelParams,
    *,
    locked: Iterable[str] = (),
    date_axis: bool = False,
    config: OptimizerConfig | None = None,
) -> ModelParams:
    return optimize_fit(x, y, params, locked=locked, date_axis=date_axis, config=config)

# src/phenofit/fitting/parametric_models.py
from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Callable, Dict, Tuple, Union
from scipy.special import expit

from .types import (
    DoubleLogisticParams,
    ModelKind,
    ModelParams,
    PARAMS_BY_KIND,
    SingleLogisticParams,
    to_model_kind,
)

ArrayOrFloat = Union[float, np.ndarray]


# --------- Model functions ---------
def sigmoid(z: ArrayOrFloat) -> ArrayOrFloat:
    # 1 / (1 + exp(-z)), saturates to 0/1 instead of overflowing
    return expit(z)


def double_logistic(x: ArrayOrFloat, p: DoubleLogisticParams) -> ArrayOrFloat:
    # y = baseline + amplitude * s(growth (x - start)) * (1 - s(senescence (x - end)))
    x = np.asarray(x, dtype=float)
    rise = sigmoid(p.growth_rate * (x - p.start))
    fall = 1.0 - sigmoid(p.senescence_rate * (x - p.end))
    y = p.baseline + p.amplitude * rise * fall
    return float(y) if y.ndim == 0 else y


def single_logistic(x: ArrayOrFloat, p: SingleLogisticParams) -> ArrayOrFloat:
    # y = L / (1 + exp(-k (x - x0)))
    x = np.asarray(x, dtype=float)
    y = p.L * sigmoid(p.k * (x - p.x0))
    return float(y) if y.ndim == 0 else y


# --------- Registry ---------
@dataclass
class ModelSpec:
    name: ModelKind
    params_type: type
    param_names: Tuple[str, ...]
    location_params: Tuple[str, ...]
    func: Callable[[ArrayOrFloat, ModelParams], ArrayOrFloat] | None = None

    @property
    def parametric(self) -> bool:
        return self.func is not None


def _spec(kind: ModelKind, params_type: type, func=None) -> ModelSpec:
    return ModelSpec(
        name=kind,
        params_type=params_type,
        param_names=params_type.tunable,
        location_params=params_type.location_fields,
        func=func,
    )


def get_model_specs() -> Dict[ModelKind, ModelSpec]:
    specs = {kind: _spec(kind, cls) for kind, cls in PARAMS_BY_KIND.items()}
    specs[ModelKind.DOUBLE_LOGISTIC].func = double_logistic
    specs[ModelKind.SINGLE_LOGISTIC].func = single_logistic
    return specs


def get_model(model) -> ModelSpec:
    return get_model_specs()[to_model_kind(model)]


def list_models() -> list[str]:
    """Return all registered model names."""
    return [kind.value for kind in ModelKind]


def evaluate(x: ArrayOrFloat, params: ModelParams) -> ArrayOrFloat:
    """
    Evaluate a parametric model at x. Smoother parameter sets have no closed form
    and raise ValueError.
    """
    spec = get_model(params.kind)
    if spec.func is None:
        raise ValueError(f"Model '{spec.name.value}' is a smoother and cannot be evaluated pointwise.")
    return spec.func(x, params)

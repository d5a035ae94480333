# src/phenofit/fitting/types.py
from __future__ import annotations
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

import numpy as np


class ModelKind(str, Enum):
    DOUBLE_LOGISTIC = "double_logistic"
    SINGLE_LOGISTIC = "single_logistic"
    LOESS = "loess"
    MOVING_AVERAGE = "moving_average"
    SAVITZKY_GOLAY = "savitzky_golay"

    @property
    def parametric(self) -> bool:
        return self in (ModelKind.DOUBLE_LOGISTIC, ModelKind.SINGLE_LOGISTIC)


# --------- Parameter sets (one per model) ---------
@dataclass(frozen=True)
class DoubleLogisticParams:
    kind: ClassVar[ModelKind] = ModelKind.DOUBLE_LOGISTIC
    tunable: ClassVar[Tuple[str, ...]] = (
        "baseline", "amplitude", "start", "end", "growth_rate", "senescence_rate",
    )
    location_fields: ClassVar[Tuple[str, ...]] = ("start", "end")

    baseline: float = 0.1
    amplitude: float = 0.6
    start: float = 50.0
    end: float = 200.0
    growth_rate: float = 0.1
    senescence_rate: float = 0.05


@dataclass(frozen=True)
class SingleLogisticParams:
    kind: ClassVar[ModelKind] = ModelKind.SINGLE_LOGISTIC
    tunable: ClassVar[Tuple[str, ...]] = ("L", "k", "x0")
    location_fields: ClassVar[Tuple[str, ...]] = ("x0",)

    L: float = 0.7   # max value
    k: float = 0.1   # steepness
    x0: float = 125.0  # midpoint


@dataclass(frozen=True)
class LoessParams:
    kind: ClassVar[ModelKind] = ModelKind.LOESS
    tunable: ClassVar[Tuple[str, ...]] = ()
    location_fields: ClassVar[Tuple[str, ...]] = ()

    span: float = 0.5  # fraction of points in the local window


@dataclass(frozen=True)
class MovingAverageParams:
    kind: ClassVar[ModelKind] = ModelKind.MOVING_AVERAGE
    tunable: ClassVar[Tuple[str, ...]] = ()
    location_fields: ClassVar[Tuple[str, ...]] = ()

    window_size: int = 15


@dataclass(frozen=True)
class SavitzkyGolayParams:
    kind: ClassVar[ModelKind] = ModelKind.SAVITZKY_GOLAY
    tunable: ClassVar[Tuple[str, ...]] = ()
    location_fields: ClassVar[Tuple[str, ...]] = ()

    window_size: int = 15
    polynomial_order: int = 2  # <= 2, normal equations are inverted in closed form


ModelParams = Union[
    DoubleLogisticParams,
    SingleLogisticParams,
    LoessParams,
    MovingAverageParams,
    SavitzkyGolayParams,
]

PARAMS_BY_KIND: Dict[ModelKind, type] = {
    ModelKind.DOUBLE_LOGISTIC: DoubleLogisticParams,
    ModelKind.SINGLE_LOGISTIC: SingleLogisticParams,
    ModelKind.LOESS: LoessParams,
    ModelKind.MOVING_AVERAGE: MovingAverageParams,
    ModelKind.SAVITZKY_GOLAY: SavitzkyGolayParams,
}


def to_model_kind(model: Union[str, ModelKind]) -> ModelKind:
    if isinstance(model, ModelKind):
        return model
    key = str(model).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return ModelKind(key)
    except ValueError:
        available = ", ".join(k.value for k in ModelKind)
        raise ValueError(f"Unknown model: {model}. Available models: {available}") from None


def params_for(model: Union[str, ModelKind], **values: Any) -> ModelParams:
    """
    Build the parameter set for a model from loose keyword values.
    Missing values take the model defaults; names the model does not own raise TypeError.
    """
    cls = PARAMS_BY_KIND[to_model_kind(model)]
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise TypeError(f"{cls.__name__} has no parameter(s): {', '.join(unknown)}")
    return cls(**values)


def params_to_dict(params: ModelParams) -> Dict[str, float]:
    return asdict(params)


# --------- Outputs ---------
@dataclass(frozen=True)
class Point:
    x: float
    y: float
    label: Optional[Any] = None  # caller's original x label, if any


@dataclass(frozen=True)
class KeyPoints:
    sos: Optional[Point] = None   # start of season
    eos: Optional[Point] = None   # end of season
    peak: Optional[Point] = None

    @classmethod
    def empty(cls) -> "KeyPoints":
        return cls()

    def as_rows(self) -> list[dict[str, Any]]:
        rows = []
        for phase, pt in (
            ("Start of Season (SOS)", self.sos),
            ("End of Season (EOS)", self.eos),
            ("Peak", self.peak),
        ):
            if pt is not None:
                rows.append({"phase": phase, "x": pt.x, "y": pt.y, "label": pt.label})
        return rows


@dataclass(frozen=True)
class FitStatistics:
    r2: float = 0.0
    rmse: float = 0.0

    @classmethod
    def empty(cls) -> "FitStatistics":
        return cls()


@dataclass(frozen=True, eq=False)
class Curve:
    x: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=float))
    y: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=float))
    labels: Optional[np.ndarray] = None  # aligned with x; smoothed curves only

    def __len__(self) -> int:
        return int(self.x.size)

    def point(self, i: int) -> Point:
        label = self.labels[i] if self.labels is not None else None
        return Point(float(self.x[i]), float(self.y[i]), label)


@dataclass(frozen=True)
class FitResult:
    model: ModelKind
    params: ModelParams
    fitted: Curve
    key_points: KeyPoints
    statistics: FitStatistics
    n: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"model": self.model.value, "n": self.n}
        out.update({f"param_{k}": v for k, v in params_to_dict(self.params).items()})
        out["r2"] = self.statistics.r2
        out["rmse"] = self.statistics.rmse
        for name in ("sos", "eos", "peak"):
            pt = getattr(self.key_points, name)
            out[f"{name}_x"] = pt.x if pt is not None else np.nan
            out[f"{name}_y"] = pt.y if pt is not None else np.nan
        return out

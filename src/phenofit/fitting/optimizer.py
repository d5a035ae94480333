# src/phenofit/fitting/optimizer.py
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass, replace
from typing import Callable, Dict, Iterable, Sequence, TypeVar

import numpy as np

from .types import DoubleLogisticParams

P = TypeVar("P")
ModelFn = Callable[[np.ndarray, P], np.ndarray]


@dataclass
class OptimizerConfig:
    # Outer passes; each restarts step sizes from the current best values
    passes: int = 3
    max_iterations: int = 50

    # Step size: max(|value| * step_fraction, min_step) / pass_decay**pass
    step_fraction: float = 0.1
    min_step: float = 0.01
    pass_decay: float = 1.5

    # Per-parameter step decay when neither direction helps
    step_shrink: float = 0.98

    # start >= end repair for the double logistic
    season_repair_offset: float = 20.0

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


def mean_squared_error(
    x: np.ndarray,
    y: np.ndarray,
    params: P,
    model_fn: ModelFn,
) -> float:
    y_hat = np.asarray(model_fn(x, params), dtype=float)
    return float(np.mean((y - y_hat) ** 2))


def _initial_steps(params, names: Sequence[str], pass_idx: int, cfg: OptimizerConfig) -> Dict[str, float]:
    steps = {}
    for name in names:
        value = float(getattr(params, name))
        steps[name] = max(abs(value) * cfg.step_fraction, cfg.min_step) / (cfg.pass_decay ** pass_idx)
    return steps


def _repair_season(
    params: DoubleLogisticParams,
    x: np.ndarray,
    locked: frozenset[str],
    cfg: OptimizerConfig,
) -> DoubleLogisticParams:
    """
    Keep start < end. A start that sits past the middle observation keeps its
    place and end is pushed after it; otherwise the two are swapped. Locked
    values are left alone.
    """
    if params.start < params.end:
        return params

    mid_x = float(x[x.size // 2])
    if params.start > mid_x:
        if "end" in locked:
            logging.info("Season repair skipped: 'end' is locked")
            return params
        repaired = replace(params, end=params.start + cfg.season_repair_offset)
    else:
        if {"start", "end"} & locked:
            logging.info("Season repair skipped: 'start' or 'end' is locked")
            return params
        repaired = replace(params, start=params.end, end=params.start)

    logging.debug(
        f"Season repair: start={params.start:.4g} end={params.end:.4g} -> "
        f"start={repaired.start:.4g} end={repaired.end:.4g}"
    )
    return repaired


def optimize_parameters(
    x: np.ndarray,
    y: np.ndarray,
    initial: P,
    model_fn: ModelFn,
    tunable: Sequence[str],
    locked: Iterable[str] = (),
    config: OptimizerConfig | None = None,
) -> P:
    """
    Calibrate model parameters by coordinate descent on the mean squared error.

    Each pass resets per-parameter step sizes from the current best values, then
    sweeps the unlocked parameters, trying value + step and value - step and
    keeping the first that lowers the error. A parameter whose neighbours do not
    help has its step shrunk slightly. A pass ends after a sweep with no
    improvement or after ``max_iterations`` sweeps. Steps shrink geometrically
    between passes.

    Args:
        x, y: Observations (x ascending).
        initial: Starting parameter set. Not modified; a new set is returned.
        model_fn: ``model_fn(x_array, params) -> y_array``.
        tunable: Names of the parameters the model exposes for fitting.
        locked: Names that must keep their initial value.
        config: Iteration and step-size settings.

    Returns:
        The best parameter set found. The error of the result never exceeds the
        error of ``initial``, except when the double-logistic season repair applies.
    """
    cfg = config or OptimizerConfig()
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    locked = frozenset(locked)
    names = [name for name in tunable if name not in locked]

    best = initial
    if x.size == 0:
        return best

    best_err = mean_squared_error(x, y, best, model_fn)
    start_err = best_err

    if names:
        for pass_idx in range(cfg.passes):
            steps = _initial_steps(best, names, pass_idx, cfg)

            improved_in_pass = True
            iteration = 0
            while improved_in_pass and iteration < cfg.max_iterations:
                improved_in_pass = False
                iteration += 1
                for name in names:
                    step = steps[name]
                    if step == 0:
                        continue
                    value = float(getattr(best, name))

                    up = replace(best, **{name: value + step})
                    err_up = mean_squared_error(x, y, up, model_fn)
                    down = replace(best, **{name: value - step})
                    err_down = mean_squared_error(x, y, down, model_fn)

                    if err_up < best_err:
                        best, best_err = up, err_up
                        improved_in_pass = True
                    elif err_down < best_err:
                        best, best_err = down, err_down
                        improved_in_pass = True
                    else:
                        steps[name] = step * cfg.step_shrink

            logging.debug(f"optimizer pass {pass_idx}: {iteration} sweep(s), mse={best_err:.6g}")

    if isinstance(best, DoubleLogisticParams):
        best = _repair_season(best, x, locked, cfg)

    logging.debug(f"optimizer: mse {start_err:.6g} -> {best_err:.6g} over {len(names)} parameter(s)")
    return best


async def optimize_parameters_async(
    x: np.ndarray,
    y: np.ndarray,
    initial: P,
    model_fn: ModelFn,
    tunable: Sequence[str],
    locked: Iterable[str] = (),
    config: OptimizerConfig | None = None,
) -> P:
    """Awaitable form of optimize_parameters. Runs the same loop with no suspension points."""
    return optimize_parameters(x, y, initial, model_fn, tunable, locked, config)

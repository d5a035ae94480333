# src/phenofit/cli/models_cli.py
from __future__ import annotations

import argparse

from phenofit.fitting.parametric_models import get_model, list_models
from phenofit.fitting.types import params_to_dict


def add_models_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser("models", help="List curve models with their default parameters.")
    p.set_defaults(_fn=_run_models)


def _run_models(args: argparse.Namespace) -> int:
    for name in list_models():
        spec = get_model(name)
        defaults = params_to_dict(spec.params_type())
        kind = "parametric" if spec.parametric else "smoother"
        print(f"{name} ({kind}): " + ", ".join(f"{k}={v}" for k, v in defaults.items()))
    return 0

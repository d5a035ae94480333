# src/phenofit/cli/fit_cli.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from phenofit.fitting.fit_curve import FitConfig, fit_curve, optimize_fit
from phenofit.fitting.optimizer import OptimizerConfig
from phenofit.fitting.parametric_models import get_model, list_models
from phenofit.fitting.start_values import estimate_start_parameters
from phenofit.fitting.types import FitResult, params_for, params_to_dict, to_model_kind
from phenofit.io.export import export_results, export_workbook, result_tables
from phenofit.io.observations import guess_columns, load_table, observations_from_frame
from phenofit.preprocess.outliers import OUTLIER_METHODS, detect_outliers


def _parse_param(text: str) -> tuple[str, float]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got '{text}'")
    try:
        return name.strip(), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Parameter '{name}' needs a numeric value, got '{value}'") from None


def add_fit_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "fit",
        help="Fit a seasonal curve to one x/y series and report SOS, EOS, peak and fit statistics.",
    )

    # input
    p.add_argument("input", help="Input table (.csv, .xlsx or .xls).")
    p.add_argument(
        "--x-col",
        default=None,
        help="X column (dates, day-of-year or numbers). Default: first column named like date/doy/das/day.",
    )
    p.add_argument(
        "--y-col",
        default=None,
        help="Observed value column. Default: first column named like ndvi/gcc/value/index.",
    )
    p.add_argument("--sheet", default=0, help="Excel sheet name or index. Default first sheet.")

    # model
    p.add_argument("--model", default="double_logistic", choices=list_models(), help="Curve model.")
    p.add_argument(
        "--param",
        action="append",
        default=[],
        type=_parse_param,
        metavar="NAME=VALUE",
        help="Model parameter override, repeatable (e.g. --param start=120).",
    )
    p.add_argument(
        "--auto-start",
        action="store_true",
        default=False,
        help="Estimate starting parameters from the data (parametric models, >=10 points).",
    )
    p.add_argument("--grid-size", type=int, default=200, help="Samples on parametric curves. Default 200.")

    # optimization
    p.add_argument("--optimize", action="store_true", default=False, help="Calibrate parametric model parameters.")
    p.add_argument("--lock", action="append", default=[], metavar="NAME", help="Parameter kept fixed while optimizing.")
    p.add_argument("--passes", type=int, default=3, help="Optimizer passes. Default 3.")
    p.add_argument("--max-iterations", type=int, default=50, help="Optimizer sweeps per pass. Default 50.")

    # outliers
    p.add_argument("--outliers", default=None, choices=OUTLIER_METHODS, help="Drop outliers before fitting.")
    p.add_argument("--outlier-threshold", type=float, default=3.0, help="Outlier threshold. Default 3.")

    # outputs
    p.add_argument("--outdir", default=None, help="Write a ZIP of the CSV tables here.")
    p.add_argument("--keep-csv", action="store_true", default=False, help="Keep the CSV tables next to the ZIP.")
    p.add_argument("--xlsx", default=None, help="Also write an Excel workbook to this path.")

    # logging
    p.add_argument(
        "--loglevel",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )

    p.set_defaults(_fn=_run_fit)


def _summary(result: FitResult, x_col: str) -> str:
    lines = [
        f"model: {result.model.value} (n={result.n})",
        "parameters: " + ", ".join(f"{k}={v:.6g}" for k, v in params_to_dict(result.params).items()),
        f"R2={result.statistics.r2:.4f}  RMSE={result.statistics.rmse:.4g}",
    ]
    for name in ("sos", "eos", "peak"):
        pt = getattr(result.key_points, name)
        if pt is None:
            lines.append(f"{name}: n/a")
            continue
        label = f" ({pt.label})" if pt.label is not None else ""
        lines.append(f"{name}: {x_col}={pt.x:.6g}{label} y={pt.y:.4g}")
    return "\n".join(lines)


def _run_fit(args: argparse.Namespace) -> int:
    logging.basicConfig(level=getattr(logging, args.loglevel), format="%(levelname)s: %(message)s")

    sheet = int(args.sheet) if str(args.sheet).isdigit() else args.sheet
    df = load_table(args.input, sheet_name=sheet)
    guess_x, guess_y = guess_columns(df.columns)
    x_col = args.x_col or guess_x
    y_col = args.y_col or (guess_y if guess_y != x_col else guess_x)
    if args.x_col is None or args.y_col is None:
        logging.info(f"Using columns x={x_col!r} y={y_col!r}")
    obs = observations_from_frame(df, x_col, y_col)
    logging.info(f"Loaded {len(obs)} observation(s) from {args.input} (date_axis={obs.date_axis}, circular={obs.circular_axis})")

    outliers = None
    kept = obs
    if args.outliers:
        outliers = detect_outliers(obs.y, args.outliers, args.outlier_threshold)
        kept = obs.drop(outliers)
        logging.info(f"Removed {int(outliers.sum())} outlier(s) with method={args.outliers}")

    kind = to_model_kind(args.model)
    unknown = sorted(set(args.lock) - set(get_model(kind).param_names))
    if unknown:
        raise ValueError(f"--lock: {kind.value} has no tunable parameter(s) {unknown}")
    params = params_for(kind)
    if args.auto_start:
        starts = estimate_start_parameters(kept.x, kept.y, date_axis=kept.date_axis)
        if kind in starts:
            params = starts[kind]
        else:
            logging.info("No start-value estimate for this model/data size; using defaults")
    if args.param:
        params = params_for(kind, **{**params_to_dict(params), **dict(args.param)})

    if args.optimize:
        cfg = OptimizerConfig(passes=args.passes, max_iterations=args.max_iterations)
        params = optimize_fit(kept.x, kept.y, params, locked=args.lock, date_axis=kept.date_axis, config=cfg)

    result = fit_curve(
        kept.x,
        kept.y,
        params,
        date_axis=kept.date_axis,
        labels=kept.labels,
        config=FitConfig(grid_size=args.grid_size),
    )
    print(_summary(result, x_col))

    if args.outdir or args.xlsx:
        tables = result_tables(
            result,
            obs.x,
            obs.y,
            x_name=x_col,
            y_name=y_col,
            date_axis=obs.date_axis,
            outliers=outliers,
            labels=obs.labels,
        )
        if args.outdir:
            res = export_results(tables, out_dir=Path(args.outdir), cleanup_csv=not args.keep_csv)
            logging.info(f"Wrote {res['zip_path']}")
        if args.xlsx:
            logging.info(f"Wrote {export_workbook(tables, Path(args.xlsx))}")
    return 0

# src/phenofit/cli/main.py
import argparse

from phenofit.cli.fit_cli import add_fit_subcommand
from phenofit.cli.models_cli import add_models_subcommand


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="phenofit", description="phenofit: seasonal curve fitting and phenophase extraction")
    sub = parser.add_subparsers(dest="command", required=True)

    add_fit_subcommand(sub)
    add_models_subcommand(sub)

    args = parser.parse_args(argv)
    return args._fn(args)  # each subcommand sets a handler


if __name__ == "__main__":
    raise SystemExit(main())

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for lantern.

Every operation is a subcommand of `lantern`; the global options
(--config, --log-level, --dry-run, --seed) are shared through a parent parser.

Usage:
    lantern fit --config fit.yaml --output runs/cells
    lantern predict --model runs/cells --data new.csv --output preds.csv --type prob
    lantern info
"""

import argparse
import sys

from lantern.cli.commands import handle_fit, handle_info, handle_predict
from lantern.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: the config's log_level, else INFO).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Validate inputs and report what would run without training.",
    )
    parent.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the random seed (takes precedence over config).",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    fit_parser = subparsers.add_parser(
        "fit", parents=[parent], help="Fit a softmax regression from a CSV file."
    )
    fit_parser.add_argument(
        "--output", type=str, default=None, help="Directory to save the fitted model in."
    )
    fit_parser.set_defaults(func=handle_fit)

    predict_parser = subparsers.add_parser(
        "predict", parents=[parent], help="Predict with a saved model."
    )
    predict_parser.add_argument("--model", type=str, default=None, help="Saved model directory.")
    predict_parser.add_argument("--data", type=str, default=None, help="CSV with predictors.")
    predict_parser.add_argument("--output", type=str, default=None, help="CSV to write.")
    predict_parser.add_argument(
        "--type", type=str, default="class", choices=["class", "prob"], help="Prediction type."
    )
    predict_parser.add_argument(
        "--epoch", type=int, default=None, help="Checkpoint epoch to use (default: last)."
    )
    predict_parser.set_defaults(func=handle_predict)

    info_parser = subparsers.add_parser(
        "info", parents=[parent], help="Display environment information."
    )
    info_parser.set_defaults(func=handle_info)


def main() -> None:
    """Parse the command line, run the chosen subcommand, exit with its code."""
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="lantern",
        description="lantern — softmax regression trained by SGD with per-epoch checkpoints.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args()

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

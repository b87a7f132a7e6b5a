# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the lantern CLI.

Each handler returns an exit code from lantern.cli.exit_codes and reports
progress through the structured logger only.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from lantern.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR, VALIDATION_ERROR
from lantern.config.exceptions import ConfigError
from lantern.config.loader import load_config
from lantern.config.schema import LanternConfig
from lantern.logging.logger import get_logger, set_package_log_level
from lantern.runtime.bootstrap import bootstrap, get_system_info
from lantern.training.exceptions import LanternError


def _load_and_bootstrap(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[LanternConfig], logging.Logger]:
    """
    Shared setup: load the config (if any) and bootstrap the runtime.

    Returns (exit_code, config, logger); a non-SUCCESS code means the caller
    should stop right away.
    """
    initial_level = args.log_level if args.log_level is not None else "INFO"
    logger = get_logger(f"lantern.cli.{command_name}", log_level=initial_level)
    set_package_log_level(initial_level)

    config = None
    if args.config is not None:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    if config is not None:
        bootstrap(config.global_config)
        # An explicit --log-level on the command line wins over the file.
        if args.log_level is not None:
            set_package_log_level(args.log_level)
    else:
        logger.debug(
            "No config provided, running with defaults",
            extra={"command": command_name},
        )

    return SUCCESS, config, logger


def _resolve_data_path(raw: str, config_path: Optional[str]) -> Path:
    """Relative data paths are taken relative to the config file's directory."""
    path = Path(raw)
    if path.is_absolute() or config_path is None:
        return path
    return Path(config_path).resolve().parent / path


def handle_fit(args: argparse.Namespace) -> int:
    """Fit a model from the CSV named in the config and save it to --output."""
    exit_code, config, logger = _load_and_bootstrap(args, "fit")
    if exit_code != SUCCESS:
        return exit_code

    if config is None or config.data is None:
        logger.error("A config with a `data` section is required", extra={"command": "fit"})
        return CONFIG_ERROR
    if config.data.formula is None and config.data.outcome is None:
        logger.error(
            "The data section needs either `outcome` or `formula`",
            extra={"command": "fit"},
        )
        return CONFIG_ERROR
    if args.output is None:
        logger.error("--output is required", extra={"command": "fit"})
        return USER_ERROR

    seed = args.seed if args.seed is not None else config.global_config.seed
    data_path = _resolve_data_path(config.data.path, args.config)
    output_dir = Path(args.output)

    if args.dry_run:
        logger.info(
            "Dry run — would fit model",
            extra={
                "data": str(data_path),
                "output": str(output_dir),
                "seed": seed,
                **config.fit.model_dump(),
            },
        )
        return SUCCESS

    try:
        import pandas as pd

        from lantern.training.fit import fit_logistic_reg, fit_logistic_reg_formula

        try:
            frame = pd.read_csv(data_path)
        except FileNotFoundError:
            logger.error("Data file not found", extra={"path": str(data_path)})
            return USER_ERROR

        hyper = config.fit.model_dump()
        if config.data.formula is not None:
            result = fit_logistic_reg_formula(config.data.formula, frame, seed=seed, **hyper)
        else:
            outcome = config.data.outcome
            if outcome not in frame.columns:
                logger.error("Outcome column not found", extra={"outcome": outcome})
                return VALIDATION_ERROR
            result = fit_logistic_reg(
                frame.drop(columns=[outcome]), frame[outcome], seed=seed, **hyper
            )

        result.save(output_dir)
        losses = result.loss_history()
        logger.info(
            "Fit complete",
            extra={
                "status": result.status.value,
                "epochs": result.checkpoint_count(),
                "final_loss": losses[-1] if losses else None,
                "loss_set": "validation" if result.validated else "training",
                "samples": result.dims().n,
                "features": result.dims().p,
                "classes": result.dims().num_classes,
                "output": str(output_dir),
            },
        )
        return SUCCESS

    except LanternError as err:
        logger.error("Invalid input", extra={"error": str(err)})
        return VALIDATION_ERROR
    except Exception as err:
        logger.error("Fit failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_predict(args: argparse.Namespace) -> int:
    """Predict classes or probabilities for a CSV with a saved model."""
    exit_code, _config, logger = _load_and_bootstrap(args, "predict")
    if exit_code != SUCCESS:
        return exit_code

    if args.model is None or args.data is None or args.output is None:
        logger.error("--model, --data and --output are required", extra={"command": "predict"})
        return USER_ERROR

    try:
        import pandas as pd

        from lantern.training.result import TrainedModelResult

        try:
            result = TrainedModelResult.load(Path(args.model))
            frame = pd.read_csv(args.data)
        except FileNotFoundError as err:
            logger.error("Input not found", extra={"error": str(err)})
            return USER_ERROR

        predictions = result.predict(frame, type=args.type, epoch=args.epoch)
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        predictions.to_csv(output, index=False)

        logger.info(
            "Predictions written",
            extra={"rows": len(predictions), "type": args.type, "output": str(output)},
        )
        return SUCCESS

    except LanternError as err:
        logger.error("Invalid input", extra={"error": str(err)})
        return VALIDATION_ERROR
    except Exception as err:
        logger.error("Prediction failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_info(args: argparse.Namespace) -> int:
    """Log interpreter, platform and torch versions."""
    exit_code, _config, logger = _load_and_bootstrap(args, "info")
    if exit_code != SUCCESS:
        return exit_code

    info = get_system_info()
    logger.info("Environment", extra=info._asdict())
    return SUCCESS

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Validation that runs before any training work is done.

Hyperparameters are checked against FitConfig; a failure becomes an
InvalidArgumentError listing every offending field. Data checks cover the
predictor encoding, missing values and the basic shape of (x, y).
"""

import logging
from typing import Any

import numpy as np
import pandas as pd
import torch
from pydantic import ValidationError

from lantern.config.schema import FitConfig
from lantern.logging.logger import get_logger
from lantern.training.dataloader.core import Dataset
from lantern.training.exceptions import InvalidArgumentError, NonNumericPredictorsError

logger: logging.Logger = get_logger(__name__)


def validate_hyperparameters(**raw: Any) -> FitConfig:
    """
    Validate raw hyperparameters and coerce integer-valued reals.

    Raises:
        InvalidArgumentError: If any value is out of range or has the wrong type.
    """
    try:
        return FitConfig.model_validate(raw)
    except ValidationError as err:
        problems = "; ".join(
            f"`{'.'.join(str(p) for p in issue['loc'])}` {issue['msg']}"
            for issue in err.errors()
        )
        raise InvalidArgumentError(f"Invalid hyperparameters: {problems}") from err


def check_numeric_predictors(x: Any) -> None:
    """
    Raises:
        NonNumericPredictorsError: If any predictor column is not numeric.
    """
    if isinstance(x, pd.DataFrame):
        bad = [str(c) for c, dtype in x.dtypes.items() if not pd.api.types.is_numeric_dtype(dtype)]
    else:
        dtype = np.asarray(x).dtype
        bad = [] if dtype.kind in "biuf" else [str(dtype)]
    if bad:
        raise NonNumericPredictorsError(
            f"There were some non-numeric columns in the predictors: {bad}. "
            "Please use a formula to encode all of the predictors as numeric."
        )


def drop_missing_rows(
    x: np.ndarray,
    y: np.ndarray,
    verbose: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Remove rows with a missing predictor or outcome.

    Outcome codes below zero mean "missing label". Dropped rows are reported
    as a warning; with verbose the count of kept rows is logged too.

    Raises:
        InvalidArgumentError: If no complete rows remain.
    """
    complete = ~np.isnan(x).any(axis=1) & (y >= 0)
    dropped = int((~complete).sum())

    if dropped:
        logger.warning(
            "Rows with missing values were removed",
            extra={"dropped": dropped, "remaining": int(complete.sum())},
        )
    elif verbose:
        logger.info("No missing values found", extra={"rows": int(len(y))})

    if not complete.any():
        raise InvalidArgumentError("No complete rows remain after removing missing values")

    return x[complete], y[complete]


def check_data_attributes(x: np.ndarray, y: np.ndarray, num_classes: int) -> Dataset:
    """
    Check that (x, y) form a usable classification dataset and build it.

    Raises:
        InvalidArgumentError: Wrong dimensions, mismatched lengths, fewer than
            two classes, or labels outside [0, num_classes).
    """
    if x.ndim != 2:
        raise InvalidArgumentError(f"Predictors must be a matrix, got {x.ndim} dimension(s)")
    if x.shape[1] == 0:
        raise InvalidArgumentError("There must be at least one predictor column")
    if x.shape[0] != y.shape[0]:
        raise InvalidArgumentError(
            f"Predictors have {x.shape[0]} rows but the outcome has {y.shape[0]}"
        )
    if num_classes < 2:
        raise InvalidArgumentError(
            f"The outcome must have at least two classes, got {num_classes}"
        )
    if y.size and (y.min() < 0 or y.max() >= num_classes):
        raise InvalidArgumentError("Outcome codes must lie in [0, num_classes)")
    if not np.isfinite(x).all():
        raise InvalidArgumentError("Predictors must be finite")

    return Dataset(
        x=torch.from_numpy(np.ascontiguousarray(x, dtype=np.float64)),
        y=torch.from_numpy(np.ascontiguousarray(y, dtype=np.int64)),
        num_classes=num_classes,
    )

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Public fitting API.

fit_logistic_reg(x, y, ...) takes a numeric matrix or DataFrame plus labels;
fit_logistic_reg_formula(formula, data, ...) takes a DataFrame and a formula
and indicator-encodes categorical predictors. Works for two classes
(logistic regression) and more (multinomial regression).

Both run the same pipeline:
  hyperparameter and seed checks -> input adapter (numeric check) -> drop
  rows with missing values -> data checks -> validation split -> training loop

Hyperparameter errors are raised before the data is even looked at.
"""

import logging
import math
from typing import Any, Optional

from lantern.config.schema import FitConfig
from lantern.data.prepare import PreparedData, prepare_formula, prepare_xy
from lantern.logging.logger import get_logger
from lantern.runtime.bootstrap import make_generator
from lantern.training.dataloader.core import split_validation
from lantern.training.engine.core import run_training
from lantern.training.exceptions import InvalidArgumentError
from lantern.training.result import DataDims, OutcomeStats, TrainedModelResult
from lantern.training.validation import (
    check_data_attributes,
    drop_missing_rows,
    validate_hyperparameters,
)

logger: logging.Logger = get_logger(__name__)


def _check_seed(seed: Optional[int]) -> None:
    if seed is None:
        return
    if isinstance(seed, bool) or not isinstance(seed, int) or seed < 0:
        raise InvalidArgumentError(f"seed must be a non-negative integer or None, got {seed!r}")


def fit_prepared(
    prepared: PreparedData,
    config: FitConfig,
    seed: Optional[int] = None,
) -> TrainedModelResult:
    """
    Train on data that already went through an input adapter.

    Args:
        prepared: Predictor matrix, outcome codes and blueprint.
        config: Validated hyperparameters.
        seed: Seed for the generator behind the split, shuffles and
            initialization. None gives a non-reproducible run.
    """
    x, y = drop_missing_rows(prepared.x, prepared.y, verbose=config.verbose)
    dataset = check_data_attributes(x, y, prepared.blueprint.num_classes)

    generator = make_generator(seed)
    train, validation = split_validation(dataset, config.validation, generator)
    outcome = run_training(train, validation, config, generator)

    return TrainedModelResult(
        checkpoints=outcome.checkpoints,
        losses=outcome.losses,
        data_dims=DataDims(
            n=len(dataset),
            p=dataset.num_features,
            num_classes=dataset.num_classes,
        ),
        y_stats=OutcomeStats(),
        parameters=config.model_copy(update={"batch_size": outcome.batch_size}),
        blueprint=prepared.blueprint,
        status=outcome.status,
        seed=seed,
        diagnostics=outcome.diagnostics,
    )


def fit_logistic_reg(
    x: Any,
    y: Any,
    *,
    epochs: Any = 100,
    penalty: Any = 0.0,
    validation: Any = 0.1,
    learn_rate: Any = 0.01,
    momentum: Any = 0.0,
    batch_size: Any = None,
    conv_crit: Any = -math.inf,
    verbose: Any = False,
    seed: Optional[int] = None,
) -> TrainedModelResult:
    """
    Fit a softmax regression by SGD from a predictor matrix and labels.

    Predictors should be numeric and on comparable scales (e.g. standardized).

    Args:
        x: DataFrame or 2-D array of numeric predictors.
        y: Class labels (sequence, Series, or one-column DataFrame).
        epochs: Number of training epochs.
        penalty: L2 weight decay.
        validation: Fraction of rows held out for the per-epoch loss.
        learn_rate: SGD step size.
        momentum: SGD momentum in [0, 1].
        batch_size: Rows per step; None uses the full training set.
        conv_crit: Stop once the relative loss improvement is at or below
            this value; -inf never stops early.
        verbose: Log every epoch at INFO level.
        seed: Makes the fit reproducible.

    Raises:
        InvalidArgumentError: Invalid hyperparameters or data.
        NonNumericPredictorsError: Non-numeric predictor columns.
    """
    config = validate_hyperparameters(
        epochs=epochs,
        penalty=penalty,
        validation=validation,
        learn_rate=learn_rate,
        momentum=momentum,
        batch_size=batch_size,
        conv_crit=conv_crit,
        verbose=verbose,
    )
    _check_seed(seed)
    return fit_prepared(prepare_xy(x, y), config, seed)


def fit_logistic_reg_formula(
    formula: str,
    data: Any,
    *,
    epochs: Any = 100,
    penalty: Any = 0.0,
    validation: Any = 0.1,
    learn_rate: Any = 0.01,
    momentum: Any = 0.0,
    batch_size: Any = None,
    conv_crit: Any = -math.inf,
    verbose: Any = False,
    seed: Optional[int] = None,
) -> TrainedModelResult:
    """
    Fit a softmax regression from a formula such as "class ~ a + b" or "class ~ .".

    Non-numeric predictors are expanded into indicator columns. Other
    arguments are as in fit_logistic_reg.
    """
    config = validate_hyperparameters(
        epochs=epochs,
        penalty=penalty,
        validation=validation,
        learn_rate=learn_rate,
        momentum=momentum,
        batch_size=batch_size,
        conv_crit=conv_crit,
        verbose=verbose,
    )
    _check_seed(seed)
    return fit_prepared(prepare_formula(formula, data), config, seed)

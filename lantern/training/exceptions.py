# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Errors raised by the fitting API.

Divergence (a NaN evaluation loss) has no exception here: it ends training
early with a warning and a truncated result.
"""


class LanternError(Exception):
    """Base for all lantern fitting errors."""


class InvalidArgumentError(LanternError, ValueError):
    """A hyperparameter or the training data failed validation before training."""


class NonNumericPredictorsError(LanternError, TypeError):
    """
    Some predictor columns are not numeric.

    Encode categorical predictors first, for example with
    fit_logistic_reg_formula which expands them into indicator columns.
    """


class UnknownCheckpointError(LanternError, IndexError):
    """A restore was requested for an epoch that has no stored checkpoint."""

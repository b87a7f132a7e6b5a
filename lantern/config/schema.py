# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for lantern.

All models are frozen pydantic v2 models:
  - frozen=True: a validated config cannot be changed afterwards
  - extra="forbid": unknown keys are rejected instead of silently ignored
  - validate_default=True: defaults go through the same checks as user input

FitConfig doubles as the hyperparameter validator for the Python API, so the
ranges declared here are the ones enforced before any training starts.
"""

import math
import numbers
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from lantern.logging.logger import resolve_log_level


class GlobalConfig(BaseModel):
    """Settings shared by every CLI command (seed, logging, project identity)."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(description="Schema version, e.g. '1.0.0'")
    project_name: str = Field(default="lantern", description="Human-readable run identifier")
    seed: Optional[int] = Field(
        default=None,
        ge=0,
        description="Seed for the training generator; None draws a fresh one",
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        resolve_log_level(value)
        return value.upper()


class FitConfig(BaseModel):
    """
    Hyperparameters for one softmax-regression fit.

    Integer fields accept integer-valued floats (5.0 becomes 5) but reject
    fractional ones. Strings and bools are never read as numbers, and
    verbose must be a real bool.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    epochs: int = Field(default=100, ge=1, description="Number of passes over the training set")
    penalty: float = Field(default=0.0, ge=0.0, description="L2 weight decay on the weight matrix")
    learn_rate: float = Field(default=0.01, gt=0.0, description="SGD step size")
    momentum: float = Field(default=0.0, ge=0.0, le=1.0, description="SGD momentum")
    validation: float = Field(
        default=0.1,
        ge=0.0,
        lt=1.0,
        description="Fraction of rows held out to compute the per-epoch loss",
    )
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rows per gradient step; None uses the whole training set",
    )
    conv_crit: float = Field(
        default=-math.inf,
        description="Stop when the relative loss improvement falls to this value or below",
    )
    verbose: StrictBool = Field(default=False, description="Log every epoch at INFO level")

    @field_validator(
        "epochs", "penalty", "learn_rate", "momentum", "validation", "batch_size", "conv_crit",
        mode="before",
    )
    @classmethod
    def _require_number(cls, value: object) -> object:
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ValueError(f"must be a number, got {type(value).__name__}")
        return value

    @field_validator("penalty", "learn_rate", "momentum", "validation")
    @classmethod
    def _finite(cls, value: float) -> float:
        if math.isnan(value) or math.isinf(value):
            raise ValueError("must be a finite number")
        return value

    @field_validator("conv_crit")
    @classmethod
    def _not_nan(cls, value: float) -> float:
        if math.isnan(value):
            raise ValueError("must not be NaN")
        return value


class DataConfig(BaseModel):
    """Where the CLI reads training data from and how it is shaped into (x, y)."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    path: str = Field(description="CSV file with predictors and the outcome column")
    outcome: Optional[str] = Field(
        default=None,
        description="Outcome column name; required unless a formula is given",
    )
    formula: Optional[str] = Field(
        default=None,
        description="'outcome ~ a + b' or 'outcome ~ .'; enables indicator encoding",
    )


class LanternConfig(BaseModel):
    """
    Top-level config container.

    A YAML file holds `global:` plus the sections a command needs; `fit`
    defaults to the stock hyperparameters when omitted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    fit: FitConfig = Field(default_factory=FitConfig)
    data: Optional[DataConfig] = Field(default=None)

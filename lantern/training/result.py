# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The object returned by a fit.

TrainedModelResult bundles the per-epoch checkpoints, the loss history, the
data dimensions, the hyperparameters actually used and the blueprint needed
to encode new data. Any epoch can be revived for coefficients or predictions;
the default is the last one.

y_stats holds the mean/sd of a numeric outcome in regression fits. For
classification it is always NaN/NaN and is kept so both result kinds share
one layout.
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd
import torch

from lantern.config.schema import FitConfig
from lantern.data.prepare import Blueprint
from lantern.logging.logger import get_logger
from lantern.model.logistic import LogisticRegressionModule
from lantern.training.checkpoint.core import CheckpointStore, load_checkpoints, save_checkpoints
from lantern.training.engine.core import TrainingStatus
from lantern.training.exceptions import InvalidArgumentError

logger: logging.Logger = get_logger(__name__)

PREDICTION_TYPES = ("class", "prob")


@dataclass(frozen=True)
class DataDims:
    """n complete rows used by the fit, p predictors, h hidden units (always 0), num_classes."""

    n: int
    p: int
    num_classes: int
    h: int = 0


@dataclass(frozen=True)
class OutcomeStats:
    mean: float = math.nan
    sd: float = math.nan


@dataclass(frozen=True)
class TrainedModelResult:
    """
    Immutable result of fit_logistic_reg / fit_logistic_reg_formula.

    Attributes:
        checkpoints: One serialized model per completed epoch.
        losses: Evaluation loss per completed epoch.
        data_dims: Dimensions of the fitted data.
        y_stats: Outcome statistics placeholder (NaN for classification).
        parameters: Hyperparameters with batch_size resolved to the value used.
        blueprint: Encoding recipe for new data.
        status: Why training stopped.
        seed: Seed of the training generator, when one was supplied.
        diagnostics: Warnings raised while training (e.g. divergence).
    """

    checkpoints: CheckpointStore
    losses: tuple[float, ...]
    data_dims: DataDims
    parameters: FitConfig
    blueprint: Blueprint
    status: TrainingStatus
    y_stats: OutcomeStats = field(default_factory=OutcomeStats)
    seed: Optional[int] = None
    diagnostics: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.losses) != len(self.checkpoints):
            raise ValueError(
                f"{len(self.losses)} losses but {len(self.checkpoints)} checkpoints"
            )

    def loss_history(self) -> tuple[float, ...]:
        return self.losses

    def checkpoint_count(self) -> int:
        return len(self.checkpoints)

    def dims(self) -> DataDims:
        return self.data_dims

    def hyperparameters(self) -> FitConfig:
        return self.parameters

    @property
    def validated(self) -> bool:
        """True when losses were computed on a held-out validation set."""
        return self.parameters.validation > 0 and math.floor(
            self.data_dims.n * self.parameters.validation
        ) > 0

    def _resolve_epoch(self, epoch: Optional[int]) -> int:
        return self.checkpoint_count() if epoch is None else epoch

    def restore(self, epoch: Optional[int] = None) -> LogisticRegressionModule:
        """
        Revive the model saved at the end of `epoch` (default: the last).

        Raises:
            UnknownCheckpointError: If that epoch has no checkpoint.
        """
        return self.checkpoints.restore(self._resolve_epoch(epoch))

    def coef(self, epoch: Optional[int] = None) -> dict[str, np.ndarray]:
        """Weight (num_classes, p) and bias (num_classes,) arrays for `epoch`."""
        params = self.checkpoints.parameters(self._resolve_epoch(epoch))
        return {"weight": params.weight.numpy(), "bias": params.bias.numpy()}

    def num_coefficients(self) -> int:
        return self.restore().count_parameters()

    def predict(
        self,
        new_data: Any,
        type: str = "class",
        epoch: Optional[int] = None,
    ) -> pd.DataFrame:
        """
        Predict classes or class probabilities for new data.

        Args:
            new_data: DataFrame (or matrix, for models without categorical
                predictors) encoded through the blueprint.
            type: "class" gives a `.pred_class` column; "prob" gives one
                `.pred_<level>` column per class.
            epoch: Which checkpoint to use; default is the last.

        Rows with missing predictors get missing predictions.
        """
        if type not in PREDICTION_TYPES:
            raise InvalidArgumentError(
                f"type must be one of {PREDICTION_TYPES}, got {type!r}"
            )
        x = self.blueprint.forge(new_data)
        model = self.restore(epoch)
        with torch.no_grad():
            probabilities = model(x).numpy()

        if type == "prob":
            return pd.DataFrame(
                probabilities,
                columns=[f".pred_{level}" for level in self.blueprint.levels],
            )

        complete = ~np.isnan(probabilities).any(axis=1)
        labels = [
            self.blueprint.levels[int(i)] if ok else None
            for i, ok in zip(probabilities.argmax(axis=1), complete)
        ]
        return pd.DataFrame(
            {".pred_class": pd.Categorical(labels, categories=list(self.blueprint.levels))}
        )

    def save(self, output_dir: Path) -> Path:
        """
        Write the result to `output_dir` (checkpoints/ plus result.json).
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        save_checkpoints(self.checkpoints, output_dir / "checkpoints")

        summary = {
            "losses": list(self.losses),
            "dims": asdict(self.data_dims),
            "y_stats": asdict(self.y_stats),
            "parameters": self.parameters.model_dump(),
            "blueprint": self.blueprint.to_dict(),
            "status": self.status.value,
            "seed": self.seed,
            "diagnostics": list(self.diagnostics),
        }
        (output_dir / "result.json").write_text(
            json.dumps(summary, indent=2, default=str), encoding="utf-8"
        )
        logger.info("Result saved", extra={"path": str(output_dir)})
        return output_dir

    @classmethod
    def load(cls, output_dir: Path) -> "TrainedModelResult":
        """
        Read a result written by `save`.

        Raises:
            FileNotFoundError: If result.json is missing.
        """
        summary_path = output_dir / "result.json"
        if not summary_path.is_file():
            raise FileNotFoundError(f"result.json not found in {output_dir}")
        summary = json.loads(summary_path.read_text(encoding="utf-8"))

        return cls(
            checkpoints=load_checkpoints(output_dir / "checkpoints"),
            losses=tuple(summary["losses"]),
            data_dims=DataDims(**summary["dims"]),
            y_stats=OutcomeStats(**summary["y_stats"]),
            parameters=FitConfig.model_validate(summary["parameters"]),
            blueprint=Blueprint.from_dict(summary["blueprint"]),
            status=TrainingStatus(summary["status"]),
            seed=summary.get("seed"),
            diagnostics=tuple(summary.get("diagnostics", [])),
        )

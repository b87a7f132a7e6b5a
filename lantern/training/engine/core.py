# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Epoch-based training loop for softmax regression.

Each epoch runs these steps in order:
  1. Shuffle the training rows and walk the mini-batches
  2. Per batch: forward pass, NLL loss, zero grad / backward / SGD step
  3. Compute one evaluation loss on the validation set, or on the training
     set when there is no validation set
  4. NaN evaluation loss: warn, discard the epoch, stop (DIVERGED)
  5. Record the loss and store a checkpoint for the epoch
  6. Relative improvement (prev - curr) / prev at or below conv_crit:
     stop (CONVERGED)
  7. After the last requested epoch: stop (COMPLETED)

The previous loss starts at a 1e38 sentinel, so epoch 1 can only trigger
the convergence stop when conv_crit is +inf. conv_crit = -inf turns the
convergence check off entirely.

Losses and checkpoints are appended together, so both always have one entry
per completed epoch.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import torch

from lantern.config.schema import FitConfig
from lantern.logging.logger import get_logger
from lantern.model.logistic import LogisticRegressionModule, nll_loss
from lantern.training.checkpoint.core import CheckpointStore
from lantern.training.dataloader.core import Dataset, create_dataloader, resolve_batch_size
from lantern.training.metrics.core import EpochMetrics, MetricsTracker
from lantern.training.optimizer.core import create_optimizer, optimizer_step

logger: logging.Logger = get_logger(__name__)

LOSS_SENTINEL = 1e38


class TrainingStatus(str, Enum):
    """Where the loop is, or why it stopped."""

    RUNNING = "running"
    CONVERGED = "converged"
    DIVERGED = "diverged"
    COMPLETED = "completed"


@dataclass
class TrainingState:
    """Mutable loop state, owned by run_training."""

    epoch: int = 0
    loss_prev: float = LOSS_SENTINEL
    losses: list[float] = field(default_factory=list)
    status: TrainingStatus = TrainingStatus.RUNNING


@dataclass(frozen=True)
class TrainingOutcome:
    """What a finished loop hands back to the caller."""

    checkpoints: CheckpointStore
    losses: tuple[float, ...]
    status: TrainingStatus
    batch_size: int
    epoch_metrics: tuple[EpochMetrics, ...]
    diagnostics: tuple[str, ...]


def evaluate_loss(model: LogisticRegressionModule, dataset: Dataset) -> float:
    """Mean NLL of `model` over all rows of `dataset`, without tracking gradients."""
    with torch.no_grad():
        return nll_loss(model(dataset.x), dataset.y).item()


def relative_improvement(loss_prev: float, loss_curr: float) -> float:
    """
    (loss_prev - loss_curr) / loss_prev.

    A previous loss of exactly zero cannot improve: staying at zero counts
    as no change and anything above it as an infinitely bad step.
    """
    if loss_prev == 0.0:
        return 0.0 if loss_curr == 0.0 else -math.inf
    return (loss_prev - loss_curr) / loss_prev


def _has_converged(delta: float, conv_crit: float) -> bool:
    if conv_crit == -math.inf:
        return False
    return delta <= conv_crit


def run_training(
    train: Dataset,
    validation: Optional[Dataset],
    config: FitConfig,
    generator: torch.Generator,
) -> TrainingOutcome:
    """
    Train a fresh softmax regression model and checkpoint every epoch.

    Args:
        train: Rows used for gradient steps.
        validation: Rows used for the per-epoch loss; None uses `train`.
        config: Validated hyperparameters.
        generator: Drives weight initialization and per-epoch shuffles.

    Returns:
        TrainingOutcome whose losses and checkpoints cover every epoch that
        finished with a non-NaN evaluation loss.
    """
    batch_size = resolve_batch_size(config.batch_size, len(train))
    eval_set = validation if validation is not None else train
    loss_label = "validation" if validation is not None else "training"

    model = LogisticRegressionModule(train.num_features, train.num_classes, generator=generator)
    optimizer = create_optimizer(model, config)
    store = CheckpointStore(train.num_features, train.num_classes)
    tracker = MetricsTracker(verbose=config.verbose, loss_label=loss_label)
    state = TrainingState()
    diagnostics: list[str] = []

    logger.info(
        "Training setup",
        extra={
            "train_rows": len(train),
            "eval_rows": len(eval_set),
            "loss_set": loss_label,
            "features": train.num_features,
            "classes": train.num_classes,
            "parameters": model.count_parameters(),
            "epochs": config.epochs,
            "batch_size": batch_size,
            "learn_rate": config.learn_rate,
            "momentum": config.momentum,
            "penalty": config.penalty,
        },
    )

    for epoch in range(1, config.epochs + 1):
        state.epoch = epoch
        tracker.begin_epoch()

        model.train()
        for x_batch, y_batch in create_dataloader(train, batch_size, generator):
            loss = nll_loss(model(x_batch), y_batch)
            optimizer_step(optimizer, loss)
            tracker.record_batch(loss.item())

        model.eval()
        loss_curr = evaluate_loss(model, eval_set)

        if math.isnan(loss_curr):
            message = f"Current loss is NaN at epoch {epoch}. Training will be stopped."
            logger.warning(message, extra={"epoch": epoch, "completed_epochs": len(state.losses)})
            diagnostics.append(message)
            state.status = TrainingStatus.DIVERGED
            break

        delta = relative_improvement(state.loss_prev, loss_curr)
        state.loss_prev = loss_curr
        state.losses.append(loss_curr)
        store.append(model, loss_curr)
        tracker.end_epoch(epoch, loss_curr, delta)

        if _has_converged(delta, config.conv_crit):
            state.status = TrainingStatus.CONVERGED
            logger.info(
                "Loss improvement below convergence threshold",
                extra={"epoch": epoch, "improvement": delta, "conv_crit": config.conv_crit},
            )
            break
    else:
        state.status = TrainingStatus.COMPLETED

    logger.info(
        "Training finished",
        extra={
            "status": state.status.value,
            "epochs_completed": len(state.losses),
            "final_loss": state.losses[-1] if state.losses else None,
        },
    )

    return TrainingOutcome(
        checkpoints=store,
        losses=tuple(state.losses),
        status=state.status,
        batch_size=batch_size,
        epoch_metrics=tuple(tracker.history),
        diagnostics=tuple(diagnostics),
    )

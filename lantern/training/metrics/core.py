# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-epoch training metrics.

The tracker accumulates the per-batch training losses of the current epoch
and, once the evaluation loss is known, emits one structured log record.
Verbose fits log every epoch at INFO; otherwise records go out at DEBUG.
"""

import logging
import time
from dataclasses import dataclass, field

from lantern.logging.logger import get_logger

logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class EpochMetrics:
    """Summary of one finished epoch."""

    epoch: int
    loss: float
    mean_batch_loss: float
    batches: int
    relative_improvement: float
    seconds: float


@dataclass
class MetricsTracker:
    """
    Accumulates batch losses and logs one record per epoch.

    Args:
        verbose: Log epochs at INFO instead of DEBUG.
        loss_label: Which rows the evaluation loss was computed on.
    """

    verbose: bool = False
    loss_label: str = "validation"
    history: list[EpochMetrics] = field(default_factory=list, init=False)
    _batch_loss_sum: float = field(default=0.0, init=False)
    _batch_count: int = field(default=0, init=False)
    _epoch_start: float = field(default=0.0, init=False)

    def begin_epoch(self) -> None:
        self._batch_loss_sum = 0.0
        self._batch_count = 0
        self._epoch_start = time.monotonic()

    def record_batch(self, loss: float) -> None:
        self._batch_loss_sum += loss
        self._batch_count += 1

    def end_epoch(self, epoch: int, loss: float, relative_improvement: float) -> EpochMetrics:
        """Close the epoch, log it, and keep it in `history`."""
        metrics = EpochMetrics(
            epoch=epoch,
            loss=loss,
            mean_batch_loss=(
                self._batch_loss_sum / self._batch_count if self._batch_count else float("nan")
            ),
            batches=self._batch_count,
            relative_improvement=relative_improvement,
            seconds=time.monotonic() - self._epoch_start,
        )
        self.history.append(metrics)

        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(
            level,
            "Epoch finished",
            extra={
                "epoch": metrics.epoch,
                "loss": round(metrics.loss, 6),
                "loss_set": self.loss_label,
                "mean_batch_loss": round(metrics.mean_batch_loss, 6),
                "batches": metrics.batches,
                "seconds": round(metrics.seconds, 4),
            },
        )
        return metrics

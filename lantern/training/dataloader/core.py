# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Dataset container, validation split and shuffled mini-batch iteration.

All randomness comes from the torch.Generator passed in by the caller:
  - the validation split draws floor(n * fraction) rows without replacement
  - every call to create_dataloader reshuffles the training rows

So a fit is reproducible from its seed alone, and each epoch still sees a
fresh ordering because the generator advances between epochs.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional

import torch

from lantern.logging.logger import get_logger
from lantern.training.exceptions import InvalidArgumentError

logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class Dataset:
    """
    Immutable (x, y) pair.

    x is float64 with shape (n, p); y holds int64 class indices in
    [0, num_classes).
    """

    x: torch.Tensor
    y: torch.Tensor
    num_classes: int

    def __post_init__(self) -> None:
        if self.x.dim() != 2:
            raise InvalidArgumentError(f"x must be 2-D, got shape {tuple(self.x.shape)}")
        if self.y.dim() != 1 or self.y.shape[0] != self.x.shape[0]:
            raise InvalidArgumentError(
                f"y must be a vector of length {self.x.shape[0]}, got shape {tuple(self.y.shape)}"
            )
        if self.num_classes < 2:
            raise InvalidArgumentError("A classification dataset needs at least two classes")

    def __len__(self) -> int:
        return self.x.shape[0]

    @property
    def num_features(self) -> int:
        return self.x.shape[1]

    def subset(self, indices: torch.Tensor) -> "Dataset":
        return Dataset(x=self.x[indices], y=self.y[indices], num_classes=self.num_classes)


def split_validation(
    dataset: Dataset,
    fraction: float,
    generator: torch.Generator,
) -> tuple[Dataset, Optional[Dataset]]:
    """
    Hold out floor(n * fraction) random rows for validation.

    Args:
        dataset: Full dataset.
        fraction: Validation fraction in [0, 1). Zero means no validation set.
        generator: Source of randomness for the draw.

    Returns:
        (training, validation); validation is None when nothing is held out.

    Raises:
        InvalidArgumentError: If the split would leave no training rows.
    """
    n = len(dataset)
    n_val = math.floor(n * fraction)
    if fraction <= 0 or n_val == 0:
        if fraction > 0:
            logger.warning(
                "Validation fraction too small to hold out any rows",
                extra={"rows": n, "validation": fraction},
            )
        return dataset, None

    if n_val >= n:
        raise InvalidArgumentError(
            f"Holding out {n_val} of {n} rows leaves nothing to train on"
        )

    permutation = torch.randperm(n, generator=generator)
    val_idx = torch.sort(permutation[:n_val]).values
    train_idx = torch.sort(permutation[n_val:]).values

    logger.debug(
        "Validation split drawn",
        extra={"train_rows": n - n_val, "validation_rows": n_val},
    )
    return dataset.subset(train_idx), dataset.subset(val_idx)


def resolve_batch_size(batch_size: Optional[int], n_train: int) -> int:
    """Unset or oversized batch sizes fall back to the full training set."""
    if batch_size is None:
        return n_train
    return min(batch_size, n_train)


def create_dataloader(
    dataset: Dataset,
    batch_size: int,
    generator: torch.Generator,
) -> Iterator[tuple[torch.Tensor, torch.Tensor]]:
    """
    Yield shuffled mini-batches covering every row exactly once.

    The permutation is drawn when iteration starts, so each call is one epoch
    with its own ordering. The last batch may be smaller than batch_size and
    no batch is ever empty.

    Yields:
        (x_batch, y_batch) with x_batch of shape (<= batch_size, p).
    """
    if batch_size < 1:
        raise InvalidArgumentError(f"batch_size must be positive, got {batch_size}")

    n = len(dataset)
    order = torch.randperm(n, generator=generator)
    for start in range(0, n, batch_size):
        idx = order[start : start + batch_size]
        yield dataset.x[idx], dataset.y[idx]

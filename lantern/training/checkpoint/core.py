# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-epoch checkpoint store.

Each checkpoint is the model's state_dict serialized with torch.save into an
in-memory bytes object. Bytes are immutable, so a stored snapshot can never
change when the live model keeps training, and restoring always rebuilds a
fresh module from those bytes.

Checkpoints are numbered by epoch starting at 1. The store can also be
written to disk: every epoch file plus metadata.json is written to a temp
directory which is then renamed into place, so a crash never leaves a
half-written checkpoint directory behind.
"""

import io
import json
import logging
import numbers
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import torch

from lantern.logging.logger import get_logger
from lantern.model.logistic import LogisticRegressionModule, ModelParameters
from lantern.training.exceptions import UnknownCheckpointError

logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class Checkpoint:
    """Serialized parameters at the end of one epoch."""

    epoch: int
    loss: float
    payload: bytes


def _serialize(model: LogisticRegressionModule) -> bytes:
    buffer = io.BytesIO()
    torch.save(model.state_dict(), buffer)
    return buffer.getvalue()


def _deserialize(payload: bytes) -> dict[str, torch.Tensor]:
    return torch.load(io.BytesIO(payload), map_location="cpu", weights_only=True)


class CheckpointStore:
    """
    Ordered, append-only sequence of checkpoints for one model shape.

    Args:
        num_features: Predictor count of the stored models.
        num_classes: Class count of the stored models.
    """

    def __init__(self, num_features: int, num_classes: int) -> None:
        self.num_features = num_features
        self.num_classes = num_classes
        self._checkpoints: list[Checkpoint] = []

    def __len__(self) -> int:
        return len(self._checkpoints)

    def __iter__(self) -> Iterator[Checkpoint]:
        return iter(self._checkpoints)

    def append(self, model: LogisticRegressionModule, loss: float) -> int:
        """
        Snapshot `model` and return the new checkpoint's epoch id.
        """
        epoch = len(self._checkpoints) + 1
        self._checkpoints.append(Checkpoint(epoch=epoch, loss=loss, payload=_serialize(model)))
        logger.debug("Checkpoint stored", extra={"epoch": epoch, "loss": loss})
        return epoch

    def get(self, epoch: int) -> Checkpoint:
        """
        Raises:
            UnknownCheckpointError: If epoch is outside [1, len(self)].
        """
        if isinstance(epoch, bool) or not isinstance(epoch, numbers.Integral):
            raise UnknownCheckpointError(f"Epoch must be an integer, got {epoch!r}")
        epoch = int(epoch)
        if not 1 <= epoch <= len(self._checkpoints):
            raise UnknownCheckpointError(
                f"No checkpoint for epoch {epoch}; available epochs are 1..{len(self._checkpoints)}"
            )
        return self._checkpoints[epoch - 1]

    def restore(self, epoch: int) -> LogisticRegressionModule:
        """
        Rebuild the model exactly as it was at the end of `epoch`.

        Raises:
            UnknownCheckpointError: If no checkpoint exists for `epoch`.
        """
        checkpoint = self.get(epoch)
        # The throwaway generator keeps construction off torch's global RNG.
        model = LogisticRegressionModule(
            self.num_features, self.num_classes, generator=torch.Generator()
        )
        model.load_state_dict(_deserialize(checkpoint.payload))
        model.eval()
        return model

    def parameters(self, epoch: int) -> ModelParameters:
        return self.restore(epoch).snapshot()


def save_checkpoints(store: CheckpointStore, checkpoint_dir: Path) -> Path:
    """
    Write every checkpoint of `store` to `checkpoint_dir` atomically.

    Layout:
        checkpoint_dir/
          metadata.json       model shape, epoch count, per-epoch losses
          epoch_0001.pt       raw torch.save payload for epoch 1
          ...

    Returns:
        checkpoint_dir
    """
    parent = checkpoint_dir.parent
    parent.mkdir(parents=True, exist_ok=True)

    tmp_dir = Path(tempfile.mkdtemp(dir=parent, prefix=".ckpt_tmp_"))
    try:
        for checkpoint in store:
            (tmp_dir / f"epoch_{checkpoint.epoch:04d}.pt").write_bytes(checkpoint.payload)

        metadata = {
            "num_features": store.num_features,
            "num_classes": store.num_classes,
            "epochs": len(store),
            "losses": [checkpoint.loss for checkpoint in store],
        }
        (tmp_dir / "metadata.json").write_text(json.dumps(metadata, indent=2), encoding="utf-8")

        if checkpoint_dir.exists():
            shutil.rmtree(checkpoint_dir)
        tmp_dir.rename(checkpoint_dir)
    except Exception:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)
        raise

    logger.info(
        "Checkpoints saved",
        extra={"epochs": len(store), "path": str(checkpoint_dir)},
    )
    return checkpoint_dir


def load_checkpoints(checkpoint_dir: Path) -> CheckpointStore:
    """
    Read a directory written by save_checkpoints.

    Raises:
        FileNotFoundError: If the directory does not exist.
        RuntimeError: If metadata.json or an epoch file is missing.
    """
    if not checkpoint_dir.is_dir():
        raise FileNotFoundError(f"Checkpoint directory not found: {checkpoint_dir}")

    meta_path = checkpoint_dir / "metadata.json"
    if not meta_path.is_file():
        raise RuntimeError(f"metadata.json not found in {checkpoint_dir}")
    metadata = json.loads(meta_path.read_text(encoding="utf-8"))

    store = CheckpointStore(metadata["num_features"], metadata["num_classes"])
    for epoch, loss in enumerate(metadata["losses"], start=1):
        path = checkpoint_dir / f"epoch_{epoch:04d}.pt"
        if not path.is_file():
            raise RuntimeError(f"{path.name} not found in {checkpoint_dir}")
        store._checkpoints.append(Checkpoint(epoch=epoch, loss=loss, payload=path.read_bytes()))

    logger.info(
        "Checkpoints loaded",
        extra={"epochs": len(store), "path": str(checkpoint_dir)},
    )
    return store

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the per-epoch checkpoint store and its on-disk layout.
"""

import json
from pathlib import Path

import numpy as np
import pytest
import torch

from lantern.model.logistic import LogisticRegressionModule
from lantern.training.checkpoint.core import CheckpointStore, load_checkpoints, save_checkpoints
from lantern.training.exceptions import UnknownCheckpointError


def _model(seed: int = 0) -> LogisticRegressionModule:
    generator = torch.Generator()
    generator.manual_seed(seed)
    return LogisticRegressionModule(3, 2, generator=generator)


def _store_with(epochs: int) -> tuple[CheckpointStore, LogisticRegressionModule]:
    model = _model()
    store = CheckpointStore(3, 2)
    for epoch in range(epochs):
        with torch.no_grad():
            model.fc1.weight.add_(0.1)
        store.append(model, loss=1.0 / (epoch + 1))
    return store, model


class TestCheckpointStore:
    def test_epoch_ids_count_from_one(self) -> None:
        store = CheckpointStore(3, 2)
        model = _model()
        assert store.append(model, 0.5) == 1
        assert store.append(model, 0.4) == 2
        assert len(store) == 2
        assert [c.epoch for c in store] == [1, 2]

    def test_restore_is_bit_exact(self) -> None:
        model = _model(4)
        store = CheckpointStore(3, 2)
        store.append(model, 0.3)
        restored = store.restore(1)
        assert restored.snapshot().equals(model.snapshot())

    def test_restore_is_repeatable(self) -> None:
        store, _ = _store_with(3)
        assert store.parameters(2).equals(store.parameters(2))

    def test_restored_model_predicts_like_original(self) -> None:
        model = _model(2)
        store = CheckpointStore(3, 2)
        store.append(model, 0.2)
        x = torch.randn(6, 3, dtype=torch.float64)
        with torch.no_grad():
            assert torch.equal(store.restore(1)(x), model(x))

    def test_later_training_does_not_change_stored_epoch(self) -> None:
        model = _model()
        store = CheckpointStore(3, 2)
        store.append(model, 0.9)
        before = store.parameters(1)
        with torch.no_grad():
            model.fc1.weight.mul_(3.0)
        assert store.parameters(1).equals(before)

    def test_restored_models_are_independent(self) -> None:
        store, _ = _store_with(1)
        first = store.restore(1)
        with torch.no_grad():
            first.fc1.bias.add_(5.0)
        assert not store.restore(1).snapshot().equals(first.snapshot())

    def test_epochs_differ(self) -> None:
        store, _ = _store_with(2)
        assert not store.parameters(1).equals(store.parameters(2))

    def test_restored_model_in_eval_mode(self) -> None:
        store, _ = _store_with(1)
        assert not store.restore(1).training

    @pytest.mark.parametrize("epoch", [0, 4, -1, 1.0, "1", True])
    def test_unknown_epoch(self, epoch: object) -> None:
        store, _ = _store_with(3)
        with pytest.raises(UnknownCheckpointError):
            store.restore(epoch)  # type: ignore[arg-type]

    def test_numpy_integer_epoch(self) -> None:
        store, _ = _store_with(3)
        assert store.restore(np.int64(2)).snapshot().equals(store.parameters(2))
        assert store.get(np.int32(3)).epoch == 3

    def test_empty_store(self) -> None:
        with pytest.raises(UnknownCheckpointError):
            CheckpointStore(3, 2).get(1)

    def test_unknown_checkpoint_is_index_error(self) -> None:
        with pytest.raises(IndexError):
            CheckpointStore(3, 2).get(1)


class TestCheckpointFiles:
    def test_layout(self, tmp_path: Path) -> None:
        store, _ = _store_with(3)
        out = save_checkpoints(store, tmp_path / "ckpt")
        names = sorted(p.name for p in out.iterdir())
        assert names == ["epoch_0001.pt", "epoch_0002.pt", "epoch_0003.pt", "metadata.json"]

        metadata = json.loads((out / "metadata.json").read_text(encoding="utf-8"))
        assert metadata["epochs"] == 3
        assert metadata["num_features"] == 3
        assert metadata["num_classes"] == 2
        assert metadata["losses"] == [1.0, 0.5, 1.0 / 3]

    def test_no_temp_dirs_left_behind(self, tmp_path: Path) -> None:
        store, _ = _store_with(2)
        save_checkpoints(store, tmp_path / "ckpt")
        assert [p.name for p in tmp_path.iterdir()] == ["ckpt"]

    def test_overwrites_existing_directory(self, tmp_path: Path) -> None:
        save_checkpoints(_store_with(3)[0], tmp_path / "ckpt")
        save_checkpoints(_store_with(1)[0], tmp_path / "ckpt")
        assert len(load_checkpoints(tmp_path / "ckpt")) == 1

    def test_round_trip(self, tmp_path: Path) -> None:
        store, _ = _store_with(3)
        loaded = load_checkpoints(save_checkpoints(store, tmp_path / "ckpt"))
        assert len(loaded) == 3
        for epoch in (1, 2, 3):
            assert loaded.parameters(epoch).equals(store.parameters(epoch))
            assert loaded.get(epoch).loss == store.get(epoch).loss

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_checkpoints(tmp_path / "nope")

    def test_missing_epoch_file(self, tmp_path: Path) -> None:
        out = save_checkpoints(_store_with(2)[0], tmp_path / "ckpt")
        (out / "epoch_0002.pt").unlink()
        with pytest.raises(RuntimeError, match="epoch_0002"):
            load_checkpoints(out)

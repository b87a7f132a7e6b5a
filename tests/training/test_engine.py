# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the training loop and its stopping rules.

Covers:
  - one loss and one checkpoint per completed epoch
  - convergence, divergence and completion statuses
  - restored checkpoints reproduce their recorded losses
  - two runs with the same seed are identical
"""

import math

import pytest
import torch

import lantern.training.engine.core as engine
from lantern.config.schema import FitConfig
from lantern.training.dataloader.core import Dataset
from lantern.training.engine.core import (
    LOSS_SENTINEL,
    TrainingStatus,
    evaluate_loss,
    relative_improvement,
    run_training,
)


def _seeded(seed: int = 0) -> torch.Generator:
    generator = torch.Generator()
    generator.manual_seed(seed)
    return generator


@pytest.fixture()
def train_set(blobs) -> Dataset:
    x, labels = blobs(60, 3, p=2, seed=4)
    return Dataset(x=torch.from_numpy(x), y=torch.from_numpy(labels).long(), num_classes=3)


@pytest.fixture()
def valid_set(blobs) -> Dataset:
    x, labels = blobs(30, 3, p=2, seed=4)
    return Dataset(x=torch.from_numpy(x), y=torch.from_numpy(labels).long(), num_classes=3)


def _scripted_losses(monkeypatch: pytest.MonkeyPatch, values: list[float]) -> None:
    """Make evaluate_loss return `values` in order, one per epoch."""
    remaining = iter(values)
    monkeypatch.setattr(engine, "evaluate_loss", lambda model, dataset: next(remaining))


class TestRelativeImprovement:
    def test_ordinary_values(self) -> None:
        assert relative_improvement(2.0, 1.5) == 0.25
        assert relative_improvement(1.0, 1.5) == -0.5

    def test_first_epoch_against_sentinel(self) -> None:
        assert relative_improvement(LOSS_SENTINEL, 0.7) == pytest.approx(1.0)

    def test_zero_previous_loss(self) -> None:
        assert relative_improvement(0.0, 0.0) == 0.0
        assert relative_improvement(0.0, 0.1) == -math.inf


class TestRunTraining:
    def test_completes_all_epochs(self, train_set: Dataset, valid_set: Dataset) -> None:
        config = FitConfig(epochs=6, batch_size=16, learn_rate=0.2)
        outcome = run_training(train_set, valid_set, config, _seeded())
        assert outcome.status == TrainingStatus.COMPLETED
        assert len(outcome.losses) == 6
        assert len(outcome.checkpoints) == 6
        assert all(math.isfinite(loss) for loss in outcome.losses)
        assert outcome.diagnostics == ()

    def test_loss_decreases(self, train_set: Dataset) -> None:
        config = FitConfig(epochs=20, batch_size=10, learn_rate=0.1)
        outcome = run_training(train_set, None, config, _seeded())
        assert outcome.losses[-1] < outcome.losses[0]

    def test_epoch_metrics(self, train_set: Dataset) -> None:
        config = FitConfig(epochs=3, batch_size=25)
        outcome = run_training(train_set, None, config, _seeded())
        assert [m.epoch for m in outcome.epoch_metrics] == [1, 2, 3]
        assert all(m.batches == 3 for m in outcome.epoch_metrics)
        assert [m.loss for m in outcome.epoch_metrics] == list(outcome.losses)

    def test_full_batch_by_default(self, train_set: Dataset) -> None:
        outcome = run_training(train_set, None, FitConfig(epochs=1), _seeded())
        assert outcome.batch_size == len(train_set)
        assert outcome.epoch_metrics[0].batches == 1

    def test_oversized_batch_is_clamped(self, train_set: Dataset) -> None:
        outcome = run_training(train_set, None, FitConfig(epochs=1, batch_size=1000), _seeded())
        assert outcome.batch_size == len(train_set)

    def test_restored_checkpoints_reproduce_losses(
        self, train_set: Dataset, valid_set: Dataset
    ) -> None:
        config = FitConfig(epochs=4, batch_size=8, learn_rate=0.1, momentum=0.5, penalty=0.01)
        outcome = run_training(train_set, valid_set, config, _seeded(3))
        for epoch, loss in enumerate(outcome.losses, start=1):
            restored = outcome.checkpoints.restore(epoch)
            assert math.isclose(evaluate_loss(restored, valid_set), loss, rel_tol=1e-12)

    def test_training_loss_used_without_validation(self, train_set: Dataset) -> None:
        outcome = run_training(train_set, None, FitConfig(epochs=2), _seeded())
        restored = outcome.checkpoints.restore(2)
        assert math.isclose(evaluate_loss(restored, train_set), outcome.losses[1], rel_tol=1e-12)

    def test_same_seed_same_run(self, train_set: Dataset, valid_set: Dataset) -> None:
        config = FitConfig(epochs=3, batch_size=7, learn_rate=0.1)
        first = run_training(train_set, valid_set, config, _seeded(21))
        second = run_training(train_set, valid_set, config, _seeded(21))
        assert first.losses == second.losses
        assert first.checkpoints.parameters(3).equals(second.checkpoints.parameters(3))

    def test_different_seed_different_run(self, train_set: Dataset) -> None:
        config = FitConfig(epochs=2, batch_size=7)
        first = run_training(train_set, None, config, _seeded(1))
        second = run_training(train_set, None, config, _seeded(2))
        assert first.losses != second.losses


class TestStoppingRules:
    def test_infinite_criterion_stops_after_first_epoch(self, train_set: Dataset) -> None:
        config = FitConfig(epochs=10, conv_crit=math.inf)
        outcome = run_training(train_set, None, config, _seeded())
        assert outcome.status == TrainingStatus.CONVERGED
        assert len(outcome.losses) == 1
        assert len(outcome.checkpoints) == 1

    def test_negative_infinite_criterion_never_stops_early(
        self, train_set: Dataset, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _scripted_losses(monkeypatch, [1.0, 2.0, 2.0, math.inf, 0.5])
        outcome = run_training(train_set, None, FitConfig(epochs=5), _seeded())
        assert outcome.status == TrainingStatus.COMPLETED
        assert outcome.losses == (1.0, 2.0, 2.0, math.inf, 0.5)

    def test_stops_when_loss_gets_worse(
        self, train_set: Dataset, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _scripted_losses(monkeypatch, [1.0, 0.8, 0.9, 0.7])
        outcome = run_training(train_set, None, FitConfig(epochs=4, conv_crit=0.0), _seeded())
        assert outcome.status == TrainingStatus.CONVERGED
        assert outcome.losses == (1.0, 0.8, 0.9)
        assert len(outcome.checkpoints) == 3

    def test_small_improvement_counts_as_converged(
        self, train_set: Dataset, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _scripted_losses(monkeypatch, [1.0, 0.5, 0.499, 0.1])
        outcome = run_training(train_set, None, FitConfig(epochs=4, conv_crit=0.01), _seeded())
        assert outcome.status == TrainingStatus.CONVERGED
        assert len(outcome.losses) == 3

    def test_nan_loss_discards_epoch(
        self, train_set: Dataset, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _scripted_losses(monkeypatch, [0.9, 0.8, math.nan, 0.7])
        outcome = run_training(train_set, None, FitConfig(epochs=4), _seeded())
        assert outcome.status == TrainingStatus.DIVERGED
        assert outcome.losses == (0.9, 0.8)
        assert len(outcome.checkpoints) == 2
        assert len(outcome.epoch_metrics) == 2
        assert outcome.diagnostics == (
            "Current loss is NaN at epoch 3. Training will be stopped.",
        )

    def test_nan_on_first_epoch_leaves_nothing(
        self, train_set: Dataset, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _scripted_losses(monkeypatch, [math.nan])
        outcome = run_training(train_set, None, FitConfig(epochs=3), _seeded())
        assert outcome.status == TrainingStatus.DIVERGED
        assert outcome.losses == ()
        assert len(outcome.checkpoints) == 0

    def test_huge_learning_rate_does_not_raise(self, train_set: Dataset) -> None:
        scaled = Dataset(x=train_set.x * 1e6, y=train_set.y, num_classes=3)
        outcome = run_training(scaled, None, FitConfig(epochs=5, learn_rate=1e6), _seeded())
        assert len(outcome.losses) == len(outcome.checkpoints)
        assert outcome.status in (TrainingStatus.COMPLETED, TrainingStatus.DIVERGED)

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Softmax regression module.

The model maps a (batch, p) float64 matrix to (batch, K) class probabilities
through one nn.Linear and a softmax over the class dimension. Training uses
the negative log-likelihood of the true class, -log(p[y]), averaged over the
batch; the same function computes the reported evaluation loss.
"""

from dataclasses import dataclass
from typing import Optional

import torch
import torch.nn as nn
import torch.nn.functional as F

from lantern.model.init.weights import init_linear


@dataclass(frozen=True)
class ModelParameters:
    """
    Detached copy of the model's parameters.

    weight has shape (num_classes, num_features) and bias (num_classes,), so
    logits = x @ weight.T + bias.
    """

    weight: torch.Tensor
    bias: torch.Tensor

    def equals(self, other: "ModelParameters") -> bool:
        """Exact, element-wise comparison."""
        return torch.equal(self.weight, other.weight) and torch.equal(self.bias, other.bias)


class LogisticRegressionModule(nn.Module):
    """
    Linear layer plus softmax.

    Args:
        num_features: Number of predictor columns (p).
        num_classes: Number of outcome classes (K >= 2).
        generator: Generator used for initialization.
    """

    def __init__(
        self,
        num_features: int,
        num_classes: int,
        generator: Optional[torch.Generator] = None,
    ) -> None:
        super().__init__()
        self.num_features = num_features
        self.num_classes = num_classes
        # skip_init leaves torch's global RNG untouched; init_linear fills the values.
        self.fc1 = torch.nn.utils.skip_init(
            nn.Linear, num_features, num_classes, dtype=torch.float64
        )
        init_linear(self.fc1, generator)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return F.softmax(self.fc1(x), dim=1)

    def snapshot(self) -> ModelParameters:
        return ModelParameters(
            weight=self.fc1.weight.detach().clone(),
            bias=self.fc1.bias.detach().clone(),
        )

    def count_parameters(self) -> int:
        return sum(p.numel() for p in self.parameters())


def nll_loss(probabilities: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    """
    Mean negative log-likelihood of the true class.

    Takes probabilities, not logits: the log is applied here so the forward
    pass keeps returning values on the probability simplex.
    """
    return F.nll_loss(torch.log(probabilities), target)

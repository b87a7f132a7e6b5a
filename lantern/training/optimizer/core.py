# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
SGD optimizer factory and the single-step update primitive.

torch.optim.SGD with momentum mu and weight decay lambda applies, per step:
  v <- mu * v + grad + lambda * W
  W <- W - lr * v

Weight decay only goes to the weight matrix. The bias sits in its own
parameter group with weight_decay=0 but shares the momentum and step size.
"""

import torch
import torch.nn as nn

from lantern.config.schema import FitConfig


def _separate_weight_decay_params(
    model: nn.Module,
    weight_decay: float,
) -> list[dict[str, object]]:
    """
    Split parameters into decayed (2-D weights) and undecayed (biases) groups.

    Returns:
        Parameter group dicts for torch.optim.
    """
    decay_params: list[torch.Tensor] = []
    no_decay_params: list[torch.Tensor] = []

    for param in model.parameters():
        if not param.requires_grad:
            continue
        if param.dim() >= 2:
            decay_params.append(param)
        else:
            no_decay_params.append(param)

    return [
        {"params": decay_params, "weight_decay": weight_decay},
        {"params": no_decay_params, "weight_decay": 0.0},
    ]


def create_optimizer(model: nn.Module, config: FitConfig) -> torch.optim.SGD:
    """Build SGD with momentum and L2 decay on the weight matrix."""
    return torch.optim.SGD(
        _separate_weight_decay_params(model, config.penalty),
        lr=config.learn_rate,
        momentum=config.momentum,
    )


def optimizer_step(optimizer: torch.optim.Optimizer, loss: torch.Tensor) -> None:
    """
    Apply one update for `loss`: zero gradients, back-propagate, step.

    Gradients never leak between calls, so each batch's update depends only
    on that batch's loss and the optimizer's momentum buffers.
    """
    optimizer.zero_grad()
    loss.backward()
    optimizer.step()

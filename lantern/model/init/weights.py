# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Deterministic initialization for the linear layer.

Uses the same uniform scheme as torch.nn.Linear, U(-1/sqrt(fan_in), 1/sqrt(fan_in))
for both weight and bias, but draws from an explicit torch.Generator so two
fits with the same seed start from identical parameters and torch's global
RNG is left alone.
"""

import math
from typing import Optional

import torch
import torch.nn as nn


def init_linear(layer: nn.Linear, generator: Optional[torch.Generator] = None) -> None:
    """
    Re-initialize a linear layer in place.

    Args:
        layer: The layer to initialize.
        generator: Source of randomness. None falls back to torch's global RNG.
    """
    bound = 1.0 / math.sqrt(layer.in_features) if layer.in_features > 0 else 0.0
    with torch.no_grad():
        layer.weight.uniform_(-bound, bound, generator=generator)
        if layer.bias is not None:
            layer.bias.uniform_(-bound, bound, generator=generator)

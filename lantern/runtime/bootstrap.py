# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Runtime setup for lantern commands.

Randomness is never seeded process-wide. Instead a dedicated torch.Generator
is built here and handed to everything that draws random numbers: the
validation split, the per-epoch shuffles and the weight initialization.
"""

import platform
import secrets
import sys
from pathlib import Path
from typing import NamedTuple, Optional

import torch

from lantern.config.schema import GlobalConfig
from lantern.logging.logger import get_logger, set_package_log_level

MINIMUM_PYTHON = (3, 11)


class SystemInfo(NamedTuple):
    """Snapshot of the interpreter and numeric backend."""

    python_version: str
    platform: str
    architecture: str
    torch_version: str


def check_minimum_python() -> None:
    """
    Raises:
        RuntimeError: If the interpreter is older than 3.11.
    """
    if sys.version_info[:2] < MINIMUM_PYTHON:
        raise RuntimeError(
            f"lantern requires Python >= {MINIMUM_PYTHON[0]}.{MINIMUM_PYTHON[1]}, "
            f"but you're running {sys.version_info[0]}.{sys.version_info[1]}."
        )


def get_system_info() -> SystemInfo:
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        torch_version=torch.__version__,
    )


def make_generator(seed: Optional[int] = None) -> torch.Generator:
    """
    Build the generator that drives every random draw of one fit.

    Args:
        seed: Non-negative seed. None picks one from the OS so unseeded runs
            differ, while still never touching torch's global RNG.

    Returns:
        A CPU torch.Generator seeded with `seed`.
    """
    if seed is None:
        seed = secrets.randbits(63)
    if seed < 0:
        raise ValueError(f"seed must be non-negative, got {seed}")
    generator = torch.Generator()
    generator.manual_seed(seed)
    return generator


def bootstrap(config: GlobalConfig) -> None:
    """Validate the interpreter, configure logging and log the environment."""
    check_minimum_python()

    log_file = Path(config.log_file) if config.log_file is not None else None
    logger = get_logger("lantern.runtime", log_level=config.log_level, log_file=log_file)
    set_package_log_level(config.log_level)

    info = get_system_info()
    logger.info(
        "lantern bootstrap complete",
        extra={
            "project": config.project_name,
            "seed": config.seed,
            "python_version": info.python_version,
            "platform": info.platform,
            "architecture": info.architecture,
            "torch_version": info.torch_version,
        },
    )

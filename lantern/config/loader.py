# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: YAML on disk to a validated, frozen LanternConfig.

  1. Read the file
  2. Parse YAML into a plain dict
  3. Validate with pydantic
  4. Return the frozen config

Any failure stops the command before training begins.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from lantern.config.exceptions import ConfigLoadError, ConfigValidationError
from lantern.config.schema import LanternConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed mapping.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, or not a YAML mapping.
    """
    if not config_path.is_file():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> LanternConfig:
    """
    Load and validate a config file.

    YAML spells infinity as `.inf` / `-.inf`, so `conv_crit: -.inf` is the
    file form of the default.
    Exponents need a dot (`1.0e-3`); PyYAML reads `1e-3` as a string,
    which the schema rejects.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations.
    """
    raw_data = _read_yaml_file(config_path)

    try:
        return LanternConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err

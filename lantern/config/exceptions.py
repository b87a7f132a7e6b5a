# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions raised while reading run configuration files.

Hyperparameter errors raised by the fitting API live in
lantern.training.exceptions; these cover the YAML layer used by the CLI.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """The config file is missing, unreadable, or not a YAML mapping."""


class ConfigValidationError(ConfigError):
    """The YAML parsed but does not match the schema (missing, mistyped or unknown fields)."""

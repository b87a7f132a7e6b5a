# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for lantern tests.

Datasets are small, seeded Gaussian blobs so every test trains in well
under a second.
"""

import textwrap
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


def make_blobs(n: int, num_classes: int, p: int = 2, seed: int = 0) -> tuple[np.ndarray, np.ndarray]:
    """n rows split evenly over `num_classes` well-separated Gaussian clusters."""
    rng = np.random.default_rng(seed)
    labels = np.arange(n) % num_classes
    centers = rng.normal(scale=3.0, size=(num_classes, p))
    x = centers[labels] + rng.normal(scale=0.5, size=(n, p))
    return x, labels


@pytest.fixture()
def two_class_data() -> tuple[np.ndarray, np.ndarray]:
    """100 rows, 2 predictors, 2 classes."""
    return make_blobs(100, 2)


@pytest.fixture()
def three_class_frame() -> pd.DataFrame:
    """DataFrame with two numeric predictors, one categorical one, and a string outcome."""
    x, labels = make_blobs(90, 3, seed=1)
    names = np.array(["adelie", "chinstrap", "gentoo"])
    return pd.DataFrame(
        {
            "bill": x[:, 0],
            "flipper": x[:, 1],
            "island": np.where(labels == 0, "biscoe", np.where(labels == 1, "dream", "torgersen")),
            "species": names[labels],
        }
    )


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """Smallest config that passes schema validation."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "lantern-test"
          seed: 42
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (config_version missing)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "lantern-test"
          seed: 42
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


@pytest.fixture()
def fit_setup(tmp_path: Path) -> Path:
    """A config plus CSV for a small two-class CLI fit."""
    x, labels = make_blobs(60, 2, seed=3)
    frame = pd.DataFrame({"a": x[:, 0], "b": x[:, 1], "label": np.where(labels == 0, "no", "yes")})
    frame.to_csv(tmp_path / "train.csv", index=False)

    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          seed: 7
          log_level: "INFO"
        fit:
          epochs: 4
          batch_size: 16
          learn_rate: 0.1
          validation: 0.2
        data:
          path: "train.csv"
          outcome: "label"
    """)
    config_file = tmp_path / "fit.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def blobs():
    """The make_blobs factory, for tests that need custom sizes."""
    return make_blobs

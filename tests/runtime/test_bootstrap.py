# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for runtime setup and generator construction."""

import pytest
import torch

from lantern.config.schema import GlobalConfig
from lantern.runtime.bootstrap import bootstrap, get_system_info, make_generator


class TestMakeGenerator:
    def test_seeded_generators_agree(self) -> None:
        first = torch.rand(4, generator=make_generator(42))
        second = torch.rand(4, generator=make_generator(42))
        assert torch.equal(first, second)

    def test_unseeded_generators_differ(self) -> None:
        first = torch.rand(4, generator=make_generator())
        second = torch.rand(4, generator=make_generator())
        assert not torch.equal(first, second)

    def test_negative_seed(self) -> None:
        with pytest.raises(ValueError):
            make_generator(-1)

    def test_global_rng_untouched(self) -> None:
        torch.manual_seed(0)
        expected = torch.rand(2)
        torch.manual_seed(0)
        torch.rand(2, generator=make_generator(7))
        assert torch.equal(torch.rand(2), expected)


class TestBootstrap:
    def test_system_info(self) -> None:
        info = get_system_info()
        assert info.torch_version == torch.__version__
        assert info.python_version

    def test_bootstrap_writes_log_file(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        log_file = tmp_path / "run.log"
        bootstrap(GlobalConfig(config_version="1.0.0", log_file=str(log_file)))
        assert "bootstrap complete" in log_file.read_text(encoding="utf-8")

"""Tests for sheepit.runtime: compute types and the runtime configuration."""

from __future__ import annotations

import pathlib

import pytest

import sheepit.runtime

ComputeType = sheepit.runtime.ComputeType


class TestComputeType:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("CPU_GPU", ComputeType.CPU_GPU),
            ("CPU", ComputeType.CPU),
            ("GPU", ComputeType.GPU),
            (" GPU ", ComputeType.GPU),
        ],
    )
    def test_parse_known(self, text: str, expected: ComputeType) -> None:
        assert ComputeType.parse(text) is expected

    @pytest.mark.parametrize("text", ["bogus", "gpu", "", None])
    def test_parse_unknown(self, text: str | None) -> None:
        assert ComputeType.parse(text) is None


class TestConfiguration:
    def test_defaults_are_unset(self) -> None:
        config = sheepit.runtime.Configuration()
        assert config.login == ""
        assert config.password == ""
        assert config.proxy is None
        assert config.compute_method is None
        assert config.gpu_device is None
        assert config.cpu_cores == sheepit.runtime.UNSET
        assert config.tile_size == sheepit.runtime.UNSET
        assert config.cache_dir is None
        assert config.user_specified_cache_dir is False
        assert config.auto_sign_in is False

    def test_set_cache_dir_marks_user_choice(self, tmp_path: pathlib.Path) -> None:
        config = sheepit.runtime.Configuration()
        config.set_cache_dir(str(tmp_path))
        assert config.cache_dir == tmp_path
        assert config.user_specified_cache_dir is True

    def test_set_cache_dir_default(self, tmp_path: pathlib.Path) -> None:
        config = sheepit.runtime.Configuration()
        config.set_cache_dir(tmp_path, user_specified=False)
        assert config.user_specified_cache_dir is False

"""Tests for sheepit.config: CLI preferences layered over TOML files."""

from __future__ import annotations

import dataclasses
import pathlib

import pytest

import sheepit.config
import sheepit.settings_cli


@sheepit.config.configurable("sample")
@dataclasses.dataclass
class _Sample:
    retries: int = 3
    timeout: float = 1.5
    colour: bool = False
    label: str = "none"


def _local_toml(root: pathlib.Path, text: str) -> pathlib.Path:
    path = root / ".sheepit" / "config.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _global_toml(text: str) -> pathlib.Path:
    path = sheepit.config._global_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestLoad:
    def test_cli_defaults(self, tmp_path: pathlib.Path) -> None:
        prefs = sheepit.config.load("cli", root=tmp_path)
        assert prefs == sheepit.settings_cli.CliConfig()
        assert prefs.settings_path == ""
        assert prefs.log_level == "WARNING"

    def test_global_file_applies(self, tmp_path: pathlib.Path) -> None:
        _global_toml("[cli]\nlog_level = 'INFO'\n")
        assert sheepit.config.load("cli", root=tmp_path).log_level == "INFO"

    def test_local_file_beats_global(self, tmp_path: pathlib.Path) -> None:
        _global_toml("[cli]\nlog_level = 'INFO'\nsettings_path = '/srv/a.conf'\n")
        _local_toml(tmp_path, "[cli]\nlog_level = 'DEBUG'\n")
        prefs = sheepit.config.load("cli", root=tmp_path)
        assert prefs.log_level == "DEBUG"
        assert prefs.settings_path == "/srv/a.conf"

    def test_root_defaults_to_working_directory(self, tmp_path: pathlib.Path) -> None:
        # conftest chdirs into tmp_path
        _local_toml(tmp_path, "[cli]\nsettings_path = 'here.conf'\n")
        assert sheepit.config.load("cli").settings_path == "here.conf"

    def test_unknown_keys_dropped(self, tmp_path: pathlib.Path) -> None:
        _local_toml(tmp_path, "[cli]\ntheme = 'dark'\nlog_level = 'ERROR'\n")
        assert sheepit.config.load("cli", root=tmp_path).log_level == "ERROR"

    def test_unreadable_file_ignored(self, tmp_path: pathlib.Path) -> None:
        _local_toml(tmp_path, "[cli\nlog_level = = 1\n")
        assert sheepit.config.load("cli", root=tmp_path).log_level == "WARNING"

    def test_unknown_section(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(KeyError, match="Unknown config section"):
            sheepit.config.load("render", root=tmp_path)


class TestSetValue:
    def test_text_converted_to_field_type(self, tmp_path: pathlib.Path) -> None:
        sheepit.config.set_value("sample", "retries", "7", root=tmp_path)
        sheepit.config.set_value("sample", "timeout", "2.5", root=tmp_path)
        sheepit.config.set_value("sample", "colour", "on", root=tmp_path)
        sample = sheepit.config.load("sample", root=tmp_path)
        assert sample.retries == 7
        assert sample.timeout == pytest.approx(2.5)
        assert sample.colour is True
        assert sample.label == "none"

    def test_returns_stored_value(self, tmp_path: pathlib.Path) -> None:
        assert sheepit.config.set_value("sample", "colour", "no", root=tmp_path) is False

    def test_bad_number_rejected(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="retries expects int"):
            sheepit.config.set_value("sample", "retries", "many", root=tmp_path)
        assert not sheepit.config.scope_path("local", tmp_path).exists()

    def test_bad_bool_rejected(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="true/false"):
            sheepit.config.set_value("sample", "colour", "maybe", root=tmp_path)

    def test_global_scope(self, tmp_path: pathlib.Path) -> None:
        sheepit.config.set_value("cli", "log_level", "DEBUG", scope="global", root=tmp_path)
        assert sheepit.config._global_path().exists()
        assert not sheepit.config.scope_path("local", tmp_path).exists()
        assert sheepit.config.load("cli", root=tmp_path).log_level == "DEBUG"

    def test_keeps_other_sections(self, tmp_path: pathlib.Path) -> None:
        _local_toml(tmp_path, "[sample]\nretries = 9\n")
        sheepit.config.set_value("cli", "log_level", "INFO", root=tmp_path)
        assert sheepit.config.load("sample", root=tmp_path).retries == 9

    def test_unknown_key(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(KeyError, match="Unknown key: cli.theme"):
            sheepit.config.set_value("cli", "theme", "dark", root=tmp_path)

    def test_unknown_scope(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="Unknown scope"):
            sheepit.config.set_value("cli", "log_level", "INFO", scope="site", root=tmp_path)


class TestResetValue:
    def test_removes_override(self, tmp_path: pathlib.Path) -> None:
        sheepit.config.set_value("cli", "log_level", "DEBUG", root=tmp_path)
        assert sheepit.config.reset_value("cli", "log_level", root=tmp_path) is True
        assert sheepit.config.load("cli", root=tmp_path).log_level == "WARNING"

    def test_empty_section_removed(self, tmp_path: pathlib.Path) -> None:
        path = sheepit.config.scope_path("local", tmp_path)
        sheepit.config.set_value("cli", "log_level", "DEBUG", root=tmp_path)
        sheepit.config.reset_value("cli", "log_level", root=tmp_path)
        assert "[cli]" not in path.read_text(encoding="utf-8")

    def test_nothing_to_reset(self, tmp_path: pathlib.Path) -> None:
        assert sheepit.config.reset_value("cli", "log_level", root=tmp_path) is False

"""Shared test fixtures for sheepit tests."""

from __future__ import annotations

import pathlib

import pytest

import sheepit.config
import sheepit.settings


@pytest.fixture(autouse=True)
def isolated_home(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> pathlib.Path:
    """Keep tests away from the real home directory and working directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(
        sheepit.settings, "default_file_path", lambda: home / ".sheepit.conf"
    )
    monkeypatch.setattr(
        sheepit.config, "_global_path",
        lambda: home / ".config" / "sheepit" / "config.toml",
    )
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def settings_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "settings" / ".sheepit.conf"


@pytest.fixture
def settings_file(settings_path: pathlib.Path):
    """Factory for writing a raw settings file."""

    def _create(text: str) -> pathlib.Path:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(text, encoding="utf-8")
        return settings_path

    return _create

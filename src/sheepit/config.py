"""Preferences for the sheepit tooling itself, persisted as TOML.

These are not the client settings kept in ``~/.sheepit.conf`` (see
:mod:`sheepit.settings`); they control how the command line behaves,
e.g. which settings file it opens and how much it logs.

Sections are dataclasses registered with ``@configurable``. A section is
resolved field by field: dataclass default, then the global file, then
the local file.

Config files:
    ~/.config/sheepit/config.toml     global (user-wide)
    .sheepit/config.toml              local  (per working directory)
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
import typing

import tomli_w

T = typing.TypeVar("T")

logger = logging.getLogger("sheepit.config")

SCOPES = ("local", "global")

_SECTIONS: dict[str, type] = {}

_TRUE_WORDS = ("true", "1", "yes", "on")
_FALSE_WORDS = ("false", "0", "no", "off")


def configurable(section: str):
    """Register a dataclass as the schema of *section*."""

    def decorator(cls: type[T]) -> type[T]:
        _SECTIONS[section] = cls
        return cls

    return decorator


def _global_path() -> pathlib.Path:
    return pathlib.Path.home() / ".config" / "sheepit" / "config.toml"


def _local_path(root: pathlib.Path) -> pathlib.Path:
    return root / ".sheepit" / "config.toml"


def scope_path(scope: str, root: pathlib.Path | None = None) -> pathlib.Path:
    """Return the TOML file behind *scope* (``local`` or ``global``)."""
    if scope not in SCOPES:
        raise ValueError(f"Unknown scope: {scope!r}")
    if scope == "global":
        return _global_path()
    return _local_path(root if root is not None else pathlib.Path.cwd())


def _read(path: pathlib.Path) -> dict[str, typing.Any]:
    try:
        if not path.exists():
            return {}
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning("Ignoring unreadable config file %s", path, exc_info=True)
        return {}


def _write(path: pathlib.Path, data: dict[str, typing.Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())


def _schema(section: str) -> dict[str, dataclasses.Field]:
    cls = _SECTIONS.get(section)
    if cls is None:
        raise KeyError(f"Unknown config section: {section}")
    return {f.name: f for f in dataclasses.fields(cls)}


def _convert(field: dataclasses.Field, text: str) -> typing.Any:
    """Convert command-line text to the type of *field*'s default."""
    kind = type(field.default)
    if kind is bool:
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise ValueError(f"{field.name} expects true/false, got {text!r}")
    if kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            raise ValueError(
                f"{field.name} expects {kind.__name__}, got {text!r}"
            ) from None
    return text


def load(section: str, root: pathlib.Path | None = None) -> typing.Any:
    """Build the effective *section*: defaults, then global, then local."""
    schema = _schema(section)
    values: dict[str, typing.Any] = {}
    for scope in SCOPES[::-1]:
        stored = _read(scope_path(scope, root)).get(section, {})
        for name, value in stored.items():
            if name in schema:
                values[name] = value
            else:
                logger.debug("Ignoring unknown config key %s.%s", section, name)
    return _SECTIONS[section](**values)


def set_value(
    section: str,
    key: str,
    value: typing.Any,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> typing.Any:
    """Store *value* for ``section.key`` in *scope*; return what was written."""
    schema = _schema(section)
    if key not in schema:
        raise KeyError(f"Unknown key: {section}.{key}")
    if isinstance(value, str):
        value = _convert(schema[key], value)

    path = scope_path(scope, root)
    data = _read(path)
    data.setdefault(section, {})[key] = value
    _write(path, data)
    return value


def reset_value(
    section: str,
    key: str,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> bool:
    """Drop ``section.key`` from *scope*. Returns False if it was not set."""
    path = scope_path(scope, root)
    data = _read(path)
    stored = data.get(section, {})
    if key not in stored:
        return False
    del stored[key]
    if not stored:
        del data[section]
    _write(path, data)
    return True

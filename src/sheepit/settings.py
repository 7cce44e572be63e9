"""Per-user settings file for the rendering client.

``~/.sheepit.conf`` remembers what the user chose on an earlier run:
credentials, proxy, compute method, GPU, core count, cache directory, UI
mode and tile size. At startup the stored values are merged into the
runtime :class:`sheepit.runtime.Configuration`. Anything the runtime
configuration already holds (typically from command-line flags) wins,
except the compute method, which a stored value replaces when they
differ, and the auto sign-in flag, which always takes the stored value.

The file is a flat property file::

    login=alice
    tile-size=32

Only present fields are written. After every write the file is restricted
to owner read/write where the platform supports POSIX permissions.
"""

from __future__ import annotations

import contextlib
import dataclasses
import enum
import logging
import os
import pathlib
import re
import stat
import typing

import sheepit.hardware.gpu
import sheepit.properties
import sheepit.runtime

logger = logging.getLogger("sheepit.settings")

FILE_NAME = ".sheepit.conf"

# Record field -> file key, in the order keys are written.
KEYS: dict[str, str] = {
    "cache_dir": "cache-dir",
    "compute_method": "compute-method",
    "gpu": "compute-gpu",
    "cpu_cores": "cpu-cores",
    "login": "login",
    "password": "password",
    "proxy": "proxy",
    "auto_sign_in": "auto-signin",
    "ui": "ui",
    "tile_size": "tile-size",
}
FIELDS: dict[str, str] = {key: name for name, key in KEYS.items()}

_INT_RE = re.compile(r"\+?[0-9]+")


def default_file_path() -> pathlib.Path:
    return pathlib.Path.home() / FILE_NAME


class PermissionOutcome(enum.Enum):
    """Result of restricting the settings file to its owner."""

    APPLIED = "applied"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Text <-> typed values
# ---------------------------------------------------------------------------

def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text.strip()):
        raise ValueError(f"not a non-negative integer: {text!r}")
    return int(text)


def _parse_bool(text: str) -> bool:
    return text.strip().lower() == "true"


def _parse_compute_method(text: str) -> sheepit.runtime.ComputeType:
    method = sheepit.runtime.ComputeType.parse(text)
    if method is None:
        raise ValueError(f"failed to handle compute method (raw value: {text!r})")
    return method


_DECODERS: dict[str, typing.Callable[[str], typing.Any]] = {
    "compute_method": _parse_compute_method,
    "cpu_cores": _parse_int,
    "tile_size": _parse_int,
    "auto_sign_in": _parse_bool,
}


def _format(value: typing.Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, sheepit.runtime.ComputeType):
        return value.name
    return str(value)


def decode(name: str, text: str) -> typing.Any:
    """Convert file text to the typed value of record field *name*.

    Raises ``ValueError`` when the text is not valid for the field.
    """
    decoder = _DECODERS.get(name)
    return decoder(text) if decoder is not None else text


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class SettingsRecord:
    """Stored preferences. ``None`` means the field is not configured."""

    login: str | None = None
    password: str | None = dataclasses.field(default=None, repr=False)
    proxy: str | None = None
    compute_method: sheepit.runtime.ComputeType | None = None
    gpu: str | None = None
    cpu_cores: int | None = None
    cache_dir: str | None = None
    auto_sign_in: bool | None = None
    ui: str | None = None
    tile_size: int | None = None

    def clear(self) -> None:
        for f in dataclasses.fields(self):
            setattr(self, f.name, None)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in dataclasses.fields(self))

    def get_text(self, key: str) -> str | None:
        """Return the file text for *key*, or None when absent."""
        value = getattr(self, FIELDS[key])
        return None if value is None else _format(value)

    def set_text(self, key: str, text: str | None) -> None:
        """Set the field stored under *key* from file text.

        Raises ``KeyError`` for an unknown key and ``ValueError`` for text
        the field cannot hold; the field is left unchanged in both cases.
        """
        name = FIELDS[key]
        setattr(self, name, None if text is None else decode(name, text))

    def to_properties(self) -> dict[str, str]:
        entries: dict[str, str] = {}
        for name, key in KEYS.items():
            value = getattr(self, name)
            if value is not None:
                entries[key] = _format(value)
        return entries

    @classmethod
    def from_properties(cls, entries: typing.Mapping[str, str]) -> SettingsRecord:
        """Build a record from file entries, skipping unknown keys and bad values."""
        record = cls()
        for key, text in entries.items():
            _apply_entry(record, key, text)
        return record


def _apply_entry(record: SettingsRecord, key: str, text: str) -> None:
    if key not in FIELDS:
        logger.debug("Ignoring unknown settings key %r", key)
        return
    try:
        record.set_text(key, text)
    except ValueError as exc:
        logger.warning("Discarding stored %s: %s", key, exc)
        setattr(record, FIELDS[key], None)


# ---------------------------------------------------------------------------
# File permissions
# ---------------------------------------------------------------------------

def restrict_permissions(path: pathlib.Path) -> PermissionOutcome:
    """Limit *path* to owner read/write."""
    if os.name != "posix":
        return PermissionOutcome.UNSUPPORTED
    try:
        path.chmod(stat.S_IRUSR | stat.S_IWUSR)
    except NotImplementedError:
        return PermissionOutcome.UNSUPPORTED
    except OSError:
        logger.warning("Failed to restrict permissions on %s", path, exc_info=True)
        return PermissionOutcome.FAILED
    return PermissionOutcome.APPLIED


def _exists(path: pathlib.Path) -> bool:
    """``path.exists()`` that reports an unsearchable parent as missing."""
    try:
        return path.exists()
    except OSError:
        logger.warning("Cannot check whether %s exists", path, exc_info=True)
        return False


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SettingsStore:
    """One settings record bound to one file."""

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        record: SettingsRecord | None = None,
    ) -> None:
        self._path = pathlib.Path(path) if path is not None else default_file_path()
        self._record = record if record is not None else SettingsRecord()
        self.last_permission_outcome: PermissionOutcome | None = None

    @classmethod
    def from_runtime(
        cls,
        *,
        login: str | None = None,
        password: str | None = None,
        proxy: str | None = None,
        compute_method: sheepit.runtime.ComputeType | str | None = None,
        gpu: sheepit.hardware.gpu.GPUDevice | None = None,
        cores: int | None = None,
        cache_dir: str | os.PathLike[str] | None = None,
        auto_sign_in: bool = False,
        ui: str | None = None,
        tile_size: int | None = None,
        path: str | os.PathLike[str] | None = None,
    ) -> SettingsStore:
        """Snapshot runtime values into a new store, ready to ``save()``."""
        record = SettingsRecord(
            login=login,
            password=password,
            proxy=proxy,
            cache_dir=os.fspath(cache_dir) if cache_dir is not None else None,
            auto_sign_in=auto_sign_in,
            ui=ui,
        )
        if cores is not None and cores > 0:
            record.cpu_cores = cores
        if tile_size is not None and tile_size != sheepit.runtime.UNSET:
            record.tile_size = tile_size
        if isinstance(compute_method, sheepit.runtime.ComputeType):
            record.compute_method = compute_method
        elif compute_method is not None:
            record.compute_method = sheepit.runtime.ComputeType.parse(compute_method)
        if gpu is not None:
            record.gpu = sheepit.hardware.gpu.GPURegistry.identifier(gpu)
        return cls(path, record)

    @classmethod
    def from_configuration(
        cls,
        config: sheepit.runtime.Configuration,
        path: str | os.PathLike[str] | None = None,
    ) -> SettingsStore:
        """Snapshot an effective runtime configuration."""
        return cls.from_runtime(
            login=config.login,
            password=config.password,
            proxy=config.proxy,
            compute_method=config.compute_method,
            gpu=config.gpu_device,
            cores=config.cpu_cores,
            cache_dir=config.cache_dir if config.user_specified_cache_dir else None,
            auto_sign_in=config.auto_sign_in,
            ui=config.ui_type,
            tile_size=config.tile_size,
            path=path,
        )

    @property
    def path(self) -> pathlib.Path:
        return self._path

    @property
    def record(self) -> SettingsRecord:
        return self._record

    def save(self) -> bool:
        """Write present fields to the file. Returns False if the write failed.

        The text goes to a sibling temp file first, so a failed write
        leaves the previous file intact.
        """
        entries = self._record.to_properties()
        self.last_permission_outcome = None
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8", newline="\n") as fp:
                sheepit.properties.dump(entries, fp)
            os.replace(tmp, self._path)
        except (OSError, ValueError):
            logger.error("Failed to write settings to %s", self._path, exc_info=True)
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            return False
        self.last_permission_outcome = restrict_permissions(self._path)
        logger.debug("Saved %d settings to %s", len(entries), self._path)
        return True

    def load(self) -> SettingsRecord:
        """Replace the record with the file contents.

        A missing file leaves the record empty. A read or decode failure
        keeps the entries parsed before it.
        """
        self._record.clear()
        try:
            if not self._path.exists():
                return self._record
            with self._path.open(encoding="utf-8") as fp:
                for key, text in sheepit.properties.iter_pairs(fp):
                    _apply_entry(self._record, key, text)
        except (OSError, UnicodeDecodeError, sheepit.properties.PropertiesError):
            logger.error("Failed to read settings from %s", self._path, exc_info=True)
        return self._record

    def merge(
        self,
        config: sheepit.runtime.Configuration | None,
        registry: sheepit.hardware.gpu.GPURegistry | None = None,
    ) -> None:
        """Fill unset fields of *config* from the settings file.

        Values already present in *config* are kept, with two exceptions:
        a stored compute method replaces a different runtime one, and the
        auto sign-in flag always takes the stored value (``False`` if
        absent).
        """
        if config is None:
            logger.error("Cannot merge settings from %s: no configuration given", self._path)
        record = self.load()
        if config is None:
            return

        applied: list[str] = []
        if not config.login and record.login is not None:
            config.login = record.login
            applied.append("login")
        if not config.password and record.password is not None:
            config.password = record.password
            applied.append("password")
        if not config.proxy and record.proxy is not None:
            config.proxy = record.proxy
            applied.append("proxy")
        if (
            record.compute_method is not None
            and config.compute_method is not record.compute_method
        ):
            config.compute_method = record.compute_method
            applied.append("compute_method")
        if config.gpu_device is None and record.gpu is not None:
            device = (registry or sheepit.hardware.gpu.GPURegistry()).get_device(record.gpu)
            if device is not None:
                config.gpu_device = device
                applied.append("gpu")
        if config.cpu_cores == sheepit.runtime.UNSET and record.cpu_cores is not None:
            config.cpu_cores = record.cpu_cores
            applied.append("cpu_cores")
        if (
            not config.user_specified_cache_dir
            and record.cache_dir is not None
            and _exists(pathlib.Path(record.cache_dir))
        ):
            config.set_cache_dir(record.cache_dir)
            applied.append("cache_dir")
        if config.ui_type is None and record.ui is not None:
            config.ui_type = record.ui
            applied.append("ui")
        if config.tile_size == sheepit.runtime.UNSET and record.tile_size is not None:
            config.tile_size = record.tile_size
            applied.append("tile_size")

        config.auto_sign_in = bool(record.auto_sign_in)

        if applied:
            logger.debug("Applied stored settings: %s", ", ".join(applied))

    def __repr__(self) -> str:
        return f"SettingsStore(path={str(self._path)!r}, record={self._record!r})"

"""Runtime configuration for a rendering client session.

Populated from command-line flags before the stored settings file is
merged in. Unset values use sentinels: empty string for credentials,
``None`` for optional objects, ``-1`` for counts.
"""

from __future__ import annotations

import dataclasses
import enum
import pathlib
import typing

if typing.TYPE_CHECKING:
    import sheepit.hardware.gpu

UNSET = -1


class ComputeType(enum.Enum):
    """Which devices a session may render on."""

    CPU_GPU = "CPU_GPU"
    CPU = "CPU"
    GPU = "GPU"

    @classmethod
    def parse(cls, text: str | None) -> ComputeType | None:
        """Return the member named *text*, or None when nothing matches."""
        if text is None:
            return None
        try:
            return cls[text.strip()]
        except KeyError:
            return None


@dataclasses.dataclass
class Configuration:
    login: str = ""
    password: str = ""
    proxy: str | None = None
    compute_method: ComputeType | None = None
    gpu_device: sheepit.hardware.gpu.GPUDevice | None = None
    cpu_cores: int = UNSET
    cache_dir: pathlib.Path | None = None
    user_specified_cache_dir: bool = False
    ui_type: str | None = None
    tile_size: int = UNSET
    auto_sign_in: bool = False

    def set_cache_dir(
        self, path: str | pathlib.Path, *, user_specified: bool = True
    ) -> None:
        """Record the cache directory and whether the user chose it."""
        self.cache_dir = pathlib.Path(path)
        self.user_specified_cache_dir = user_specified

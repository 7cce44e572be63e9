"""GPU device lookup.

Hardware probing lives elsewhere; the registry only answers questions
about devices it was handed.
"""

from __future__ import annotations

import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class GPUDevice:
    model: str
    memory: int
    identifier: str

    def __str__(self) -> str:
        return f"{self.model} ({self.identifier})"


class GPURegistry:
    """Known GPU devices, addressed by their stable identifier."""

    def __init__(self, devices: typing.Iterable[GPUDevice] = ()) -> None:
        self._devices = list(devices)

    def devices(self) -> list[GPUDevice]:
        return list(self._devices)

    def get_device(self, identifier: str | None) -> GPUDevice | None:
        """Resolve a stored identifier to a device.

        Exact identifier match wins; a case-insensitive model name match
        is accepted as a fallback for hand-edited files.
        """
        if not identifier:
            return None
        for device in self._devices:
            if device.identifier == identifier:
                return device
        wanted = identifier.casefold()
        for device in self._devices:
            if device.model.casefold() == wanted:
                return device
        return None

    @staticmethod
    def identifier(device: GPUDevice) -> str:
        return device.identifier

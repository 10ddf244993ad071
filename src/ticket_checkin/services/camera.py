"""Device access interfaces consumed by the camera session controller."""

from collections.abc import Callable
from typing import Protocol

from ticket_checkin.services.surfaces import PreviewSurface

DecodeCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]


class CameraHandle(Protocol):
    """An acquired camera, exclusively owned by one scan session."""

    async def attach(
        self,
        surface: PreviewSurface,
        on_decode: DecodeCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Start the decode loop, rendering into ``surface``.

        ``on_decode`` is called once per decoded frame, never re-entrantly.
        ``on_error`` is called at most once if the loop dies on its own.
        """

    async def stop(self) -> None:
        """Stop the decode loop. Safe to call repeatedly."""

    def clear(self) -> None:
        """Release the underlying device. Safe to call repeatedly."""


class CameraDevice(Protocol):
    """Capability to request camera access."""

    async def request_access(self) -> CameraHandle:
        """Acquire the camera or raise PermissionDenied."""

"""Preview surfaces the decoder renders into."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class PreviewSurface:
    """A named preview region holding the most recent camera frame."""

    surface_id: str
    latest_frame: bytes | None = None
    version: int = 0
    closed: bool = False
    _waiter: asyncio.Event | None = field(default=None, repr=False)

    def present(self, frame: bytes) -> None:
        """Publish a new JPEG frame to viewers."""
        if self.closed:
            return
        self.latest_frame = frame
        self.version += 1
        self._wake()

    def close(self) -> None:
        """Mark the surface removed and wake any viewers."""
        self.closed = True
        self._wake()

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield frames as they are presented until the surface closes."""
        seen = 0
        while not self.closed:
            if self.version == seen:
                if self._waiter is None:
                    self._waiter = asyncio.Event()
                await self._waiter.wait()
                continue
            seen = self.version
            if self.latest_frame is not None:
                yield self.latest_frame

    def _wake(self) -> None:
        waiter, self._waiter = self._waiter, None
        if waiter is not None:
            waiter.set()


class SurfaceRegistry:
    """Tracks which preview surfaces the UI shell currently has mounted."""

    def __init__(self) -> None:
        self._surfaces: dict[str, PreviewSurface] = {}

    def mount(self, surface_id: str) -> PreviewSurface:
        """Create the surface if needed and return it."""
        surface = self._surfaces.get(surface_id)
        if surface is None:
            surface = PreviewSurface(surface_id=surface_id)
            self._surfaces[surface_id] = surface
            logger.debug("Mounted surface %s", surface_id)
        return surface

    def unmount(self, surface_id: str) -> None:
        """Remove the surface; a no-op when it is not mounted."""
        surface = self._surfaces.pop(surface_id, None)
        if surface is not None:
            surface.close()
            logger.debug("Unmounted surface %s", surface_id)

    def get(self, surface_id: str) -> PreviewSurface | None:
        """Return a mounted surface, if present."""
        return self._surfaces.get(surface_id)

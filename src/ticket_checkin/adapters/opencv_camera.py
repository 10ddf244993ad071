"""OpenCV-backed camera device and QR decode loop."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import cv2

from ticket_checkin.errors import PermissionDenied
from ticket_checkin.services.camera import (
    CameraDevice,
    CameraHandle,
    DecodeCallback,
    ErrorCallback,
)
from ticket_checkin.services.surfaces import PreviewSurface

logger = logging.getLogger(__name__)

FrameEncoder = Callable[[Any], bytes | None]


def encode_jpeg(frame: Any, quality: int = 70) -> bytes | None:
    """Encode a BGR frame as JPEG bytes for preview."""
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        return None
    return buffer.tobytes()


@dataclass
class OpenCvCameraHandle(CameraHandle):
    """Decode loop over an opened ``cv2.VideoCapture``."""

    capture: Any
    fps: int = 10
    max_failed_reads: int = 30
    detector: Any = field(default_factory=cv2.QRCodeDetector)
    frame_encoder: FrameEncoder = field(default=encode_jpeg)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _stop_requested: bool = field(default=False, init=False, repr=False)
    _cleared: bool = field(default=False, init=False, repr=False)

    async def attach(
        self,
        surface: PreviewSurface,
        on_decode: DecodeCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Start the decode loop as a background task."""
        if self._cleared:
            raise RuntimeError("camera handle already released")
        if self._task is not None:
            raise RuntimeError("decoder already attached")
        self._stop_requested = False
        self._task = asyncio.create_task(
            self._decode_loop(surface, on_decode, on_error),
            name=f"qr-decode-{surface.surface_id}",
        )

    async def stop(self) -> None:
        """Ask the decode loop to exit and wait for its in-flight read."""
        self._stop_requested = True
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.warning("Decode loop ended with error: %s", exc)

    def clear(self) -> None:
        """Release the capture device once."""
        if self._cleared:
            return
        self._cleared = True
        self.capture.release()

    async def _decode_loop(
        self,
        surface: PreviewSurface,
        on_decode: DecodeCallback,
        on_error: ErrorCallback,
    ) -> None:
        try:
            await self._read_frames(surface, on_decode)
        except Exception as exc:
            logger.warning("Decode loop on %s died: %s", surface.surface_id, exc)
            if not self._stop_requested:
                on_error(str(exc) or type(exc).__name__)

    async def _read_frames(
        self, surface: PreviewSurface, on_decode: DecodeCallback
    ) -> None:
        interval = 1.0 / max(self.fps, 1)
        failed_reads = 0
        while not self._stop_requested:
            ok, frame = await asyncio.to_thread(self.capture.read)
            if self._stop_requested:
                break
            if not ok:
                failed_reads += 1
                if failed_reads >= self.max_failed_reads:
                    raise RuntimeError(
                        f"no frame from camera after {failed_reads} reads"
                    )
            else:
                failed_reads = 0
                text, preview = await asyncio.to_thread(self._process, frame)
                if preview is not None:
                    surface.present(preview)
                if text and not self._stop_requested:
                    on_decode(text)
            await asyncio.sleep(interval)

    def _process(self, frame: Any) -> tuple[str, bytes | None]:
        return self._decode(frame), self.frame_encoder(frame)

    def _decode(self, frame: Any) -> str:
        # Most frames contain no code; detector errors count as a miss.
        try:
            text, _points, _straight = self.detector.detectAndDecode(frame)
        except cv2.error:
            return ""
        return text.strip() if text else ""


@dataclass
class OpenCvCameraDevice(CameraDevice):
    """Opens a local camera by index with ``cv2.VideoCapture``."""

    camera_index: int = 0
    fps: int = 10
    jpeg_quality: int = 70
    max_failed_reads: int = 30
    capture_factory: Callable[[int], Any] = field(default=cv2.VideoCapture)

    async def request_access(self) -> OpenCvCameraHandle:
        """Open the camera, raising PermissionDenied when it is unavailable."""
        try:
            capture = await asyncio.to_thread(self.capture_factory, self.camera_index)
        except cv2.error as exc:
            raise PermissionDenied(str(exc)) from exc
        if not capture.isOpened():
            capture.release()
            raise PermissionDenied(f"camera {self.camera_index} could not be opened")
        quality = self.jpeg_quality
        return OpenCvCameraHandle(
            capture=capture,
            fps=self.fps,
            max_failed_reads=self.max_failed_reads,
            frame_encoder=lambda frame: encode_jpeg(frame, quality),
        )

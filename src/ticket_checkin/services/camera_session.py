"""Camera session lifecycle: acquire, decode, release."""

import asyncio
import itertools
import logging
from collections.abc import Callable
from functools import partial

from ticket_checkin.domain.scanning import PayloadHandler, ScannerState, ScanSession
from ticket_checkin.errors import (
    CameraFailure,
    PermissionDenied,
    ScannerError,
    SurfaceUnavailable,
)
from ticket_checkin.services.camera import CameraDevice
from ticket_checkin.services.surfaces import SurfaceRegistry

logger = logging.getLogger(__name__)

StateListener = Callable[[ScannerState], None]


class CameraSessionController:
    """Owns the camera handle and the decode loop for one scanner.

    At most one ``ScanSession`` holds the device at a time. Every path out of
    an active state goes through ``_release``, which is the only place that
    stops or clears the device handle.
    """

    def __init__(  # noqa: PLR0913
        self,
        device: CameraDevice,
        surfaces: SurfaceRegistry,
        *,
        surface_id: str = "qr-reader",
        attach_attempts: int = 20,
        attach_delay_seconds: float = 0.1,
        release_grace_seconds: float = 0.0,
    ) -> None:
        self._device = device
        self._surfaces = surfaces
        self.surface_id = surface_id
        self._attach_attempts = max(attach_attempts, 1)
        self._attach_delay = attach_delay_seconds
        self._release_grace = release_grace_seconds
        self._session: ScanSession | None = None
        self._session_ids = itertools.count(1)
        self._listeners: list[StateListener] = []
        self._handoffs: set[asyncio.Task[None]] = set()
        self._released_at: float | None = None
        self.last_error: ScannerError | None = None

    @property
    def state(self) -> ScannerState:
        if self._session is None:
            return ScannerState.IDLE
        return self._session.state

    @property
    def active(self) -> bool:
        return self._session is not None

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every state transition."""
        self._listeners.append(listener)

    async def start(self, on_payload: PayloadHandler) -> None:
        """Acquire the camera and scan until one payload is decoded.

        Returns once the session is Scanning, or quietly if a concurrent
        ``stop()`` discarded it. ``on_payload`` runs after the device has
        been released.
        """
        if not await self._wait_until_free():
            return
        session = ScanSession(id=next(self._session_ids), on_payload=on_payload)
        self._session = session
        self.last_error = None
        self._transition(session, ScannerState.REQUESTING_PERMISSION)

        scanning = False
        try:
            try:
                session.handle = await self._device.request_access()
            except PermissionDenied as exc:
                self._record_error(session, exc)
                raise
            except Exception as exc:
                denied = PermissionDenied(str(exc))
                self._record_error(session, denied)
                raise denied from exc
            if session.cancelled:
                logger.info("Scan session %d stopped while awaiting camera", session.id)
                return

            self._transition(session, ScannerState.STARTING)
            await self._attach(session)
            if session.cancelled:
                logger.info("Scan session %d stopped while starting", session.id)
                return

            self._transition(session, ScannerState.SCANNING)
            scanning = True
        finally:
            if not scanning:
                await self._release(session)

    async def stop(self) -> None:
        """Stop the active session and wait until the device is released."""
        session = self._session
        if session is None:
            return
        if session.state is ScannerState.STOPPING:
            await session.released.wait()
            return
        session.cancelled = True
        self._transition(session, ScannerState.STOPPING)
        if session.handle is None:
            # Acquisition still outstanding; start() releases once it resolves.
            await session.released.wait()
            return
        await self._release(session)

    async def join(self) -> None:
        """Wait for in-flight hand-offs and failure releases to finish."""
        while self._handoffs:
            await asyncio.gather(*list(self._handoffs))

    async def _wait_until_free(self) -> bool:
        while True:
            current = self._session
            if current is None:
                remaining = self._grace_remaining()
                if remaining <= 0:
                    return True
                await asyncio.sleep(remaining)
                continue
            if current.state is ScannerState.STOPPING:
                await current.released.wait()
                continue
            logger.info(
                "Scan session %d already %s; ignoring start",
                current.id,
                current.state.value,
            )
            return False

    def _grace_remaining(self) -> float:
        if self._released_at is None or self._release_grace <= 0:
            return 0.0
        elapsed = asyncio.get_running_loop().time() - self._released_at
        return self._release_grace - elapsed

    async def _attach(self, session: ScanSession) -> None:
        cause: str | None = None
        for attempt in range(1, self._attach_attempts + 1):
            if session.cancelled:
                return
            surface = self._surfaces.get(self.surface_id)
            if surface is not None:
                try:
                    await session.handle.attach(
                        surface,
                        partial(self._on_decoded, session),
                        partial(self._on_failed, session),
                    )
                    return
                except Exception as exc:
                    cause = str(exc)
                    logger.warning(
                        "Attach attempt %d/%d to %s failed: %s",
                        attempt,
                        self._attach_attempts,
                        self.surface_id,
                        exc,
                    )
            if attempt < self._attach_attempts:
                await asyncio.sleep(self._attach_delay)
        if session.cancelled:
            return
        error = SurfaceUnavailable(self.surface_id, cause)
        self._record_error(session, error)
        raise error

    def _on_decoded(self, session: ScanSession, text: str) -> None:
        if not text or session.state is not ScannerState.SCANNING:
            return
        self._transition(session, ScannerState.STOPPING)
        self._track(
            asyncio.create_task(
                self._hand_off(session, text), name=f"scan-handoff-{session.id}"
            )
        )

    def _on_failed(self, session: ScanSession, cause: str) -> None:
        if session.state is not ScannerState.SCANNING:
            return
        session.cancelled = True
        self._record_error(session, CameraFailure(cause))
        self._transition(session, ScannerState.STOPPING)
        self._track(
            asyncio.create_task(
                self._release(session), name=f"scan-release-{session.id}"
            )
        )

    async def _hand_off(self, session: ScanSession, payload: str) -> None:
        await self._release(session)
        try:
            await session.on_payload(payload)
        except Exception:
            logger.exception("Payload handler failed for session %d", session.id)

    async def _release(self, session: ScanSession) -> None:
        if session.releasing:
            await session.released.wait()
            return
        session.releasing = True
        handle, session.handle = session.handle, None
        try:
            if handle is not None:
                try:
                    await handle.stop()
                except Exception as exc:
                    logger.warning("Error stopping decoder: %s", exc)
                finally:
                    try:
                        handle.clear()
                    except Exception as exc:
                        logger.warning("Error releasing camera: %s", exc)
        finally:
            self._released_at = asyncio.get_running_loop().time()
            session.released.set()
            if self._session is session:
                self._session = None
                self._transition(session, ScannerState.IDLE)

    def _track(self, task: asyncio.Task[None]) -> None:
        self._handoffs.add(task)
        task.add_done_callback(self._handoffs.discard)

    def _record_error(self, session: ScanSession, error: ScannerError) -> None:
        session.last_error = error
        self.last_error = error
        logger.warning("Scan session %d failed: %s", session.id, error)

    def _transition(self, session: ScanSession, state: ScannerState) -> None:
        previous = session.state
        session.state = state
        logger.debug(
            "Scan session %d: %s -> %s", session.id, previous.value, state.value
        )
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Scanner state listener failed")

"""Scan station orchestration: camera session, validation and UI updates."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ticket_checkin.domain.scanning import ScannerState, ValidationOutcome
from ticket_checkin.errors import DispatcherBusy, ScannerError
from ticket_checkin.services.camera_session import CameraSessionController
from ticket_checkin.services.outcomes import (
    ScanResultView,
    present_outcome,
    ticket_details,
)
from ticket_checkin.services.surfaces import SurfaceRegistry
from ticket_checkin.services.validation import ValidationDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationEvent:
    """Update pushed to UI subscribers."""

    type: str
    state: ScannerState
    data: dict[str, Any]
    error: str | None = None


class ScanStation:
    """Wires the camera controller to the validation dispatcher.

    After every decode the controller stays idle until staff explicitly
    ask for the next scan.
    """

    def __init__(
        self,
        controller: CameraSessionController,
        dispatcher: ValidationDispatcher,
        surfaces: SurfaceRegistry,
        *,
        event_queue_size: int = 16,
    ) -> None:
        self.controller = controller
        self.dispatcher = dispatcher
        self.surfaces = surfaces
        self._event_queue_size = event_queue_size
        self._subscribers: list[asyncio.Queue[StationEvent]] = []
        self.last_outcome: ValidationOutcome | None = None
        self.last_result: ScanResultView | None = None
        self.last_ticket: dict[str, str | None] | None = None
        self.error: str | None = None
        self.validating = False
        controller.add_listener(self._on_state_change)

    @property
    def state(self) -> ScannerState:
        return self.controller.state

    def subscribe(self) -> asyncio.Queue[StationEvent]:
        """Register a UI subscriber queue."""
        queue: asyncio.Queue[StationEvent] = asyncio.Queue(
            maxsize=self._event_queue_size
        )
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[StationEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def start_scanning(self) -> dict[str, Any]:
        """Begin a scan; controller failures are recorded, not raised."""
        self.error = None
        try:
            await self.controller.start(self._handle_payload)
        except ScannerError as exc:
            self.error = exc.user_message
            self._publish("error", error=exc.user_message)
        return self.snapshot()

    async def stop_scanning(self) -> dict[str, Any]:
        """Stop scanning and release the camera."""
        await self.controller.stop()
        return self.snapshot()

    async def reset(self) -> dict[str, Any]:
        """Clear the last result; restart the camera if it was running."""
        was_active = self.controller.active
        self.last_outcome = None
        self.last_result = None
        self.last_ticket = None
        self.error = None
        self._publish("reset")
        if was_active:
            await self.controller.stop()
            return await self.start_scanning()
        return self.snapshot()

    async def close(self) -> None:
        """Release the camera when the shell goes away."""
        await self.controller.stop()
        await self.controller.join()
        self.surfaces.unmount(self.controller.surface_id)

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of the station for the UI."""
        return {
            "state": self.state.value,
            "validating": self.validating,
            "error": self.error,
            "result": _result_payload(self.last_result),
            "last_ticket": self.last_ticket,
        }

    async def _handle_payload(self, payload: str) -> None:
        self.validating = True
        self.last_result = None
        self._publish("validating", data={"payload": payload})
        try:
            outcome = await self.dispatcher.submit(payload)
        except DispatcherBusy as exc:
            logger.warning("Dropped scan: %s", exc)
            return
        finally:
            self.validating = False
        self.last_outcome = outcome
        self.last_result = present_outcome(outcome)
        details = ticket_details(outcome)
        if details is not None:
            self.last_ticket = details
        self._publish(
            "outcome",
            data={
                "status": outcome.status.value,
                "reason": outcome.reason.value if outcome.reason else None,
                "result": _result_payload(self.last_result),
                "ticket": details,
            },
        )

    def _on_state_change(self, state: ScannerState) -> None:
        surface_id = self.controller.surface_id
        if state is ScannerState.STARTING:
            self.surfaces.mount(surface_id)
        elif state is ScannerState.IDLE:
            self.surfaces.unmount(surface_id)
            if self.controller.last_error is not None:
                self.error = self.controller.last_error.user_message
        self._publish("state", error=self.error)

    def _publish(
        self,
        event_type: str,
        *,
        data: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        event = StationEvent(
            type=event_type, state=self.state, data=data or {}, error=error
        )
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(event)


def _result_payload(result: ScanResultView | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "kind": result.kind,
        "title": result.title,
        "message": result.message,
        "retryable": result.retryable,
    }

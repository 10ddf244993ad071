"""FastAPI application factory."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from ticket_checkin.api.admin import router as admin_router
from ticket_checkin.api.dependencies import get_container, require_staff
from ticket_checkin.api.models import IssueTicketRequest, LoginRequest
from ticket_checkin.app_logging import configure_logging
from ticket_checkin.containers import AppContainer
from ticket_checkin.errors import (
    AdminRequired,
    CheckinError,
    DispatcherBusy,
    FormValidationError,
    NotAuthenticated,
    ScannerError,
    TicketApiError,
)
from ticket_checkin.services.scan_station import StationEvent
from ticket_checkin.services.surfaces import PreviewSurface

_MJPEG_BOUNDARY = "frame"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to release resources on shutdown")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(CheckinError)
    async def checkin_error_handler(
        request: Request, exc: CheckinError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code, content={"detail": exc.user_message}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/auth/login")
    async def login(
        body: LoginRequest, state_container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        """Log a staff member in."""
        session = await state_container.auth_service.login(body.username, body.password)
        return {"user": session.user.to_payload()}

    @app.post("/auth/logout")
    async def logout(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, str]:
        """Log out, stopping any active scan first."""
        await state_container.scan_station.stop_scanning()
        state_container.auth_service.logout()
        return {"status": "ok"}

    @app.get("/auth/me")
    async def me(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the logged-in staff member."""
        user = state_container.auth_service.require_user().user
        return {
            "user": user.to_payload(),
            "is_admin": state_container.auth_service.is_admin,
        }

    @app.get("/tickets/stats", dependencies=[Depends(require_staff)])
    async def ticket_stats(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return ticket counters."""
        return {"stats": await state_container.ticket_service.stats()}

    @app.post("/tickets/issue", dependencies=[Depends(require_staff)])
    async def issue_ticket(
        body: IssueTicketRequest,
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Assign a ticket to an email."""
        ticket = await state_container.ticket_service.issue_ticket(body.email)
        return {"ticket": ticket}

    @app.get("/tickets", dependencies=[Depends(require_staff)])
    async def list_tickets(
        request: Request,
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """List tickets; query parameters are passed through as filters."""
        filters = dict(request.query_params)
        return {"tickets": await state_container.ticket_service.list_tickets(**filters)}

    @app.get("/tickets/search", dependencies=[Depends(require_staff)])
    async def search_tickets(
        email: str, state_container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        """Search tickets by email."""
        return {"tickets": await state_container.ticket_service.search(email)}

    @app.get("/scanner/state", dependencies=[Depends(require_staff)])
    async def scanner_state(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the scanner snapshot."""
        return state_container.scan_station.snapshot()

    @app.post("/scanner/start", dependencies=[Depends(require_staff)])
    async def scanner_start(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Start scanning for the next ticket."""
        return await state_container.scan_station.start_scanning()

    @app.post("/scanner/stop", dependencies=[Depends(require_staff)])
    async def scanner_stop(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Stop scanning and release the camera."""
        return await state_container.scan_station.stop_scanning()

    @app.post("/scanner/reset", dependencies=[Depends(require_staff)])
    async def scanner_reset(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Clear the last result, restarting the camera if it was running."""
        return await state_container.scan_station.reset()

    @app.get("/scanner/preview", dependencies=[Depends(require_staff)])
    async def scanner_preview(
        state_container: AppContainer = Depends(get_container),
    ) -> StreamingResponse:
        """Stream the camera preview as MJPEG while scanning."""
        station = state_container.scan_station
        surface = station.surfaces.get(station.controller.surface_id)
        if surface is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Scanner is not running"
            )
        return StreamingResponse(
            _mjpeg_stream(surface),
            media_type=f"multipart/x-mixed-replace; boundary={_MJPEG_BOUNDARY}",
        )

    @app.get("/scanner/events", dependencies=[Depends(require_staff)])
    async def scanner_events(
        state_container: AppContainer = Depends(get_container),
    ) -> StreamingResponse:
        """Server-sent events for scanner state and validation outcomes."""
        return StreamingResponse(
            _event_stream(state_container), media_type="text/event-stream"
        )

    return app


def _status_for(exc: CheckinError) -> int:  # noqa: PLR0911
    if isinstance(exc, NotAuthenticated):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AdminRequired):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, FormValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (ScannerError, DispatcherBusy)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, TicketApiError):
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            return status.HTTP_401_UNAUTHORIZED
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _mjpeg_stream(surface: PreviewSurface) -> AsyncIterator[bytes]:
    async for frame in surface.frames():
        yield (
            f"--{_MJPEG_BOUNDARY}\r\nContent-Type: image/jpeg\r\n"
            f"Content-Length: {len(frame)}\r\n\r\n"
        ).encode() + frame + b"\r\n"


async def _event_stream(container: AppContainer) -> AsyncIterator[str]:
    station = container.scan_station
    queue = station.subscribe()
    try:
        yield _sse("snapshot", station.snapshot())
        while True:
            event: StationEvent = await queue.get()
            yield _sse(
                event.type,
                {
                    "state": event.state.value,
                    "data": event.data,
                    "error": event.error,
                },
            )
    finally:
        station.unsubscribe(queue)


def _sse(event_type: str, payload: dict[str, object]) -> str:
    return f"event: {event_type}\ndata: {json.dumps(payload)}\n\n"

"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from ticket_checkin.adapters.opencv_camera import OpenCvCameraDevice
from ticket_checkin.adapters.ticket_api_client import HttpxTicketApiClient
from ticket_checkin.config import Settings
from ticket_checkin.services.activity import ActivityService
from ticket_checkin.services.auth import (
    AuthService,
    FileSessionStore,
    InMemorySessionStore,
    SessionStore,
)
from ticket_checkin.services.camera_session import CameraSessionController
from ticket_checkin.services.scan_station import ScanStation
from ticket_checkin.services.surfaces import SurfaceRegistry
from ticket_checkin.services.tickets import TicketService
from ticket_checkin.services.users import UserAdminService
from ticket_checkin.services.validation import ValidationDispatcher


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    ticket_service: TicketService
    user_admin_service: UserAdminService
    activity_service: ActivityService
    scan_station: ScanStation
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    api_client = HttpxTicketApiClient.create(
        resolved_settings.api_base_url, timeout=resolved_settings.api_timeout_seconds
    )
    store: SessionStore = (
        FileSessionStore(Path(resolved_settings.session_file).expanduser())
        if resolved_settings.session_file
        else InMemorySessionStore()
    )
    auth_service = AuthService(client=api_client, store=store)
    auth_service.restore()
    api_client.token_provider = lambda: auth_service.token
    api_client.on_unauthorized = auth_service.handle_unauthorized

    surfaces = SurfaceRegistry()
    controller = CameraSessionController(
        OpenCvCameraDevice(
            camera_index=resolved_settings.camera_index,
            fps=resolved_settings.scan_fps,
            jpeg_quality=resolved_settings.preview_jpeg_quality,
            max_failed_reads=resolved_settings.camera_max_failed_reads,
        ),
        surfaces,
        surface_id=resolved_settings.surface_id,
        attach_attempts=resolved_settings.surface_attach_attempts,
        attach_delay_seconds=resolved_settings.surface_attach_delay_seconds,
        release_grace_seconds=resolved_settings.release_grace_seconds,
    )
    dispatcher = ValidationDispatcher(
        validator=api_client,
        timeout_seconds=resolved_settings.validation_timeout_seconds,
    )
    scan_station = ScanStation(controller, dispatcher, surfaces)

    async def close_resources() -> None:
        await scan_station.close()
        await api_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        ticket_service=TicketService(api_client, auth_service),
        user_admin_service=UserAdminService(api_client, auth_service),
        activity_service=ActivityService(api_client, auth_service),
        scan_station=scan_station,
        close_resources=close_resources,
    )

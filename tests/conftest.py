"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from ticket_checkin.adapters.ticket_api_client import TicketApiClient
from ticket_checkin.config import Settings
from ticket_checkin.containers import AppContainer
from ticket_checkin.domain.models import StaffSession, StaffUser
from ticket_checkin.errors import PermissionDenied, TicketApiError
from ticket_checkin.services.activity import ActivityService
from ticket_checkin.services.auth import AuthService, InMemorySessionStore
from ticket_checkin.services.camera import DecodeCallback, ErrorCallback
from ticket_checkin.services.camera_session import CameraSessionController
from ticket_checkin.services.scan_station import ScanStation
from ticket_checkin.services.surfaces import PreviewSurface, SurfaceRegistry
from ticket_checkin.services.tickets import TicketService
from ticket_checkin.services.users import UserAdminService
from ticket_checkin.services.validation import ValidationDispatcher

ADMIN = StaffUser(id="u-1", username="admin", email="admin@example.com", role="admin")
ISSUER = StaffUser(id="u-2", username="door", email="door@example.com", role="issuer")


@dataclass
class FakeCameraHandle:
    """Camera handle that records lifecycle calls."""

    attach_failures: int = 0
    surface: PreviewSurface | None = None
    on_decode: DecodeCallback | None = None
    on_error: ErrorCallback | None = None
    attach_calls: int = 0
    stop_calls: int = 0
    clear_calls: int = 0

    @property
    def released(self) -> bool:
        return self.clear_calls > 0

    async def attach(
        self,
        surface: PreviewSurface,
        on_decode: DecodeCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.attach_calls += 1
        if self.attach_failures:
            self.attach_failures -= 1
            raise RuntimeError("decoder attach failed")
        self.surface = surface
        self.on_decode = on_decode
        self.on_error = on_error

    def emit(self, text: str) -> None:
        """Simulate the decode loop reporting a code."""
        if self.on_decode is not None and self.stop_calls == 0:
            self.on_decode(text)

    def fail(self, cause: str) -> None:
        """Simulate the decode loop dying on its own."""
        if self.on_error is not None and self.stop_calls == 0:
            self.on_error(cause)

    async def stop(self) -> None:
        self.stop_calls += 1
        await asyncio.sleep(0)

    def clear(self) -> None:
        self.clear_calls += 1


@dataclass
class FakeCameraDevice:
    """Camera device whose permission prompt can be held open."""

    grant: bool = True
    attach_failures: int = 0
    gate: asyncio.Event | None = None
    handles: list[FakeCameraHandle] = field(default_factory=list)
    requests: int = 0
    max_held: int = 0

    async def request_access(self) -> FakeCameraHandle:
        self.requests += 1
        if self.gate is not None:
            await self.gate.wait()
        if not self.grant:
            raise PermissionDenied("user dismissed prompt")
        self.max_held = max(self.max_held, self.held + 1)
        handle = FakeCameraHandle(attach_failures=self.attach_failures)
        self.handles.append(handle)
        return handle

    @property
    def current(self) -> FakeCameraHandle:
        return self.handles[-1]

    @property
    def held(self) -> int:
        return sum(1 for handle in self.handles if not handle.released)


def ticket_data(ticket_id: str = "42", email: str = "a@b.com") -> dict[str, object]:
    return {
        "ticketID": ticket_id,
        "email": email,
        "usedAt": "2025-03-01T18:30:00Z",
        "issuedBy": "door",
    }


@dataclass
class FakeTicketApiClient(TicketApiClient):
    """In-memory ticket API that records calls."""

    validate_results: list[object] = field(default_factory=list)
    validate_delay: float = 0.0
    validate_calls: list[str] = field(default_factory=list)
    assign_error: str | None = None
    create_user_error: str | None = None
    assigned: list[str] = field(default_factory=list)
    users: list[dict[str, object]] = field(default_factory=list)
    activity_filters: list[dict[str, str]] = field(default_factory=list)
    ticket_filters: list[dict[str, str]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    login_user: StaffUser = ADMIN

    async def login(self, username: str, password: str) -> dict[str, object]:
        if password != "secret":
            raise TicketApiError("Invalid credentials", status_code=401)
        return {"token": f"token-{username}", "user": self.login_user.to_payload()}

    async def get_profile(self) -> dict[str, object]:
        return {"user": self.login_user.to_payload()}

    async def get_users(self) -> list[dict[str, object]]:
        return list(self.users)

    async def create_user(self, user: dict[str, object]) -> dict[str, object]:
        if self.create_user_error:
            raise TicketApiError(self.create_user_error, status_code=400)
        created = {"id": f"u-{len(self.users) + 10}", **user}
        created.pop("password", None)
        self.users.append(created)
        return created

    async def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)

    async def get_ticket_stats(self) -> dict[str, object]:
        return {"total": 65, "assigned": len(self.assigned), "used": 0}

    async def assign_ticket(self, email: str) -> dict[str, object]:
        if self.assign_error:
            raise TicketApiError(self.assign_error, status_code=400)
        self.assigned.append(email)
        return {"ticketID": str(len(self.assigned)), "email": email}

    async def validate_ticket(self, qr_code: str) -> dict[str, object]:
        self.validate_calls.append(qr_code)
        if self.validate_delay:
            await asyncio.sleep(self.validate_delay)
        result = self.validate_results.pop(0) if self.validate_results else ticket_data()
        if isinstance(result, Exception):
            raise result
        return result

    async def get_tickets(self, filters: dict[str, str]) -> dict[str, object]:
        self.ticket_filters.append(filters)
        return {"tickets": []}

    async def search_tickets(self, email: str) -> dict[str, object]:
        return {"tickets": [{"ticketID": "7", "email": email}]}

    async def initialize_tickets(self) -> dict[str, object]:
        return {"created": 65}

    async def get_activity_logs(self, filters: dict[str, str]) -> dict[str, object]:
        self.activity_filters.append(filters)
        return {"logs": [], "page": int(filters.get("page", "1"))}

    async def get_system_stats(self) -> dict[str, object]:
        return {"logins": 3}

    async def get_user_stats(self, user_id: str) -> dict[str, object]:
        return {"user_id": user_id, "tickets_issued": 4}


def build_controller(
    device: FakeCameraDevice,
    surfaces: SurfaceRegistry,
    *,
    attach_attempts: int = 3,
) -> CameraSessionController:
    return CameraSessionController(
        device,
        surfaces,
        surface_id="qr-reader",
        attach_attempts=attach_attempts,
        attach_delay_seconds=0,
    )


def logged_in(auth: AuthService, user: StaffUser = ADMIN) -> AuthService:
    auth.session = StaffSession(token="token", user=user)
    return auth


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://tickets.test/api",
        surface_attach_delay_seconds=0,
        validation_timeout_seconds=1,
    )


@pytest.fixture
def api_client() -> FakeTicketApiClient:
    return FakeTicketApiClient()


@pytest.fixture
def camera() -> FakeCameraDevice:
    return FakeCameraDevice()


@pytest.fixture
def auth_service(api_client: FakeTicketApiClient) -> AuthService:
    return AuthService(client=api_client, store=InMemorySessionStore())


@pytest.fixture
def container(
    settings: Settings,
    api_client: FakeTicketApiClient,
    camera: FakeCameraDevice,
    auth_service: AuthService,
) -> AppContainer:
    surfaces = SurfaceRegistry()
    controller = build_controller(camera, surfaces)
    dispatcher = ValidationDispatcher(
        validator=api_client, timeout_seconds=settings.validation_timeout_seconds
    )
    scan_station = ScanStation(controller, dispatcher, surfaces)

    async def close_resources() -> None:
        await scan_station.close()

    return AppContainer(
        settings=settings,
        auth_service=auth_service,
        ticket_service=TicketService(api_client, auth_service),
        user_admin_service=UserAdminService(api_client, auth_service),
        activity_service=ActivityService(api_client, auth_service),
        scan_station=scan_station,
        close_resources=close_resources,
    )

"""Tests for the FastAPI shell."""

from fastapi.testclient import TestClient

from ticket_checkin.api.app import create_app
from tests.conftest import ISSUER, FakeTicketApiClient, logged_in


def test_health(container) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_login_then_me(container) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))

    response = client.post("/auth/login", json={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "admin"

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["is_admin"] is True


def test_bad_login_is_unauthorized(container) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))

    response = client.post("/auth/login", json={"username": "admin", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_staff_routes_require_login(container) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))

    response = client.get("/scanner/state")

    assert response.status_code == 401
    assert response.json()["detail"] == "Please log in to continue."


def test_scanner_start_and_stop(container, camera) -> None:  # type: ignore[no-untyped-def]
    logged_in(container.auth_service, ISSUER)

    with TestClient(create_app(container)) as client:
        started = client.post("/scanner/start")
        assert started.status_code == 200
        assert started.json()["state"] == "scanning"

        stopped = client.post("/scanner/stop")
        assert stopped.json()["state"] == "idle"

        state = client.get("/scanner/state")
        assert state.json()["result"] is None

    assert camera.current.clear_calls == 1


def test_scanner_permission_error_in_snapshot(container, camera) -> None:  # type: ignore[no-untyped-def]
    camera.grant = False
    logged_in(container.auth_service)

    with TestClient(create_app(container)) as client:
        response = client.post("/scanner/start")

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    assert "Camera permission denied" in response.json()["error"]


def test_preview_requires_running_scanner(container) -> None:  # type: ignore[no-untyped-def]
    logged_in(container.auth_service)
    client = TestClient(create_app(container))

    response = client.get("/scanner/preview")

    assert response.status_code == 404


def test_issue_ticket_error_is_bad_request(
    container, api_client: FakeTicketApiClient
) -> None:  # type: ignore[no-untyped-def]
    api_client.assign_error = "Email already has a ticket"
    logged_in(container.auth_service, ISSUER)
    client = TestClient(create_app(container))

    response = client.post("/tickets/issue", json={"email": "guest@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "This email already has a ticket assigned."


def test_issue_ticket_success(container, api_client: FakeTicketApiClient) -> None:  # type: ignore[no-untyped-def]
    logged_in(container.auth_service, ISSUER)
    client = TestClient(create_app(container))

    response = client.post("/tickets/issue", json={"email": "guest@example.com"})

    assert response.status_code == 200
    assert response.json()["ticket"]["email"] == "guest@example.com"


def test_logout_stops_scanner(container, camera) -> None:  # type: ignore[no-untyped-def]
    logged_in(container.auth_service)

    with TestClient(create_app(container)) as client:
        client.post("/scanner/start")
        response = client.post("/auth/logout")

    assert response.status_code == 200
    assert container.auth_service.session is None
    assert camera.current.clear_calls == 1


def test_me_without_session_is_unauthorized(container) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))

    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Please log in to continue."

"""Tests for the httpx ticket API client."""

import asyncio
import json

import httpx
import pytest

from ticket_checkin.adapters.ticket_api_client import HttpxTicketApiClient
from ticket_checkin.errors import TicketApiError, TicketApiUnavailable


def _client(handler, **kwargs) -> HttpxTicketApiClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    return HttpxTicketApiClient(
        base_url="https://tickets.test/api", http_client=async_client, **kwargs
    )


def test_validate_sends_bearer_token_and_unwraps_data() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"success": True, "data": {"ticketID": "42", "email": "a@b.com"}},
        )

    client = _client(handler, token_provider=lambda: "tok-1")

    data = asyncio.run(client.validate_ticket("TICKET-42"))

    assert data == {"ticketID": "42", "email": "a@b.com"}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/tickets/validate"
    assert request.headers["Authorization"] == "Bearer tok-1"
    assert json.loads(request.content.decode()) == {"qrCode": "TICKET-42"}


def test_requests_without_token_omit_authorization() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(200, json={"total": 65})

    client = _client(handler)

    assert asyncio.run(client.get_ticket_stats()) == {"total": 65}


def test_error_response_carries_server_reason() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Ticket already used"})

    client = _client(handler)

    with pytest.raises(TicketApiError) as excinfo:
        asyncio.run(client.validate_ticket("TICKET-42"))

    assert str(excinfo.value) == "Ticket already used"
    assert excinfo.value.status_code == 400


def test_error_without_body_uses_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    client = _client(handler)

    with pytest.raises(TicketApiError) as excinfo:
        asyncio.run(client.get_ticket_stats())

    assert "status code 500" in str(excinfo.value)


def test_success_false_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "Invalid QR code"})

    client = _client(handler)

    with pytest.raises(TicketApiError, match="Invalid QR code"):
        asyncio.run(client.validate_ticket("garbage"))


def test_unauthorized_response_notifies_session() -> None:
    expired: list[bool] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Token expired"})

    client = _client(
        handler,
        token_provider=lambda: "stale",
        on_unauthorized=lambda: expired.append(True),
    )

    with pytest.raises(TicketApiError) as excinfo:
        asyncio.run(client.get_profile())

    assert expired == [True]
    assert excinfo.value.status_code == 401


def test_transport_error_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(TicketApiUnavailable):
        asyncio.run(client.validate_ticket("TICKET-42"))


def test_filters_are_sent_as_query_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"logs": []}})

    client = _client(handler)

    asyncio.run(client.get_activity_logs({"action": "login", "page": "2"}))
    asyncio.run(client.search_tickets("a@b.com"))

    assert seen[0].url.path == "/api/activity/logs"
    assert seen[0].url.params["action"] == "login"
    assert seen[0].url.params["page"] == "2"
    assert seen[1].url.params["email"] == "a@b.com"


def test_get_users_accepts_wrapped_list() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/auth/users"
        return httpx.Response(200, json={"users": [{"id": "u-1"}]})

    client = _client(handler)

    assert asyncio.run(client.get_users()) == [{"id": "u-1"}]


def test_delete_user_targets_user_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    client = _client(handler)

    asyncio.run(client.delete_user("u-9"))

    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/api/auth/users/u-9"


def test_undecodable_body_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all"
        )

    client = _client(handler)

    with pytest.raises(TicketApiUnavailable):
        asyncio.run(client.validate_ticket("TICKET-42"))


def test_redirect_loop_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    transport = httpx.MockTransport(handler)
    client = HttpxTicketApiClient(
        base_url="https://tickets.test/api",
        http_client=httpx.AsyncClient(
            transport=transport, follow_redirects=True, max_redirects=2
        ),
    )

    with pytest.raises(TicketApiUnavailable):
        asyncio.run(client.get_ticket_stats())

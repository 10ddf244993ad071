"""Remote ticket/user API client."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ticket_checkin.errors import TicketApiError, TicketApiUnavailable

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]
UnauthorizedHandler = Callable[[], None]


class TicketApiClient(Protocol):
    """Interface for the remote ticket and staff API."""

    async def login(self, username: str, password: str) -> dict[str, object]:
        """Authenticate and return ``{"token": ..., "user": {...}}``."""

    async def get_profile(self) -> dict[str, object]:
        """Return the logged-in staff profile."""

    async def get_users(self) -> list[dict[str, object]]:
        """Return all staff accounts."""

    async def create_user(self, user: dict[str, object]) -> dict[str, object]:
        """Create a staff account."""

    async def delete_user(self, user_id: str) -> None:
        """Delete a staff account."""

    async def get_ticket_stats(self) -> dict[str, object]:
        """Return ticket counters."""

    async def assign_ticket(self, email: str) -> dict[str, object]:
        """Assign the next free ticket to an email."""

    async def validate_ticket(self, qr_code: str) -> dict[str, object]:
        """Validate a decoded QR payload and mark the ticket used."""

    async def get_tickets(self, filters: dict[str, str]) -> dict[str, object]:
        """List tickets matching filters."""

    async def search_tickets(self, email: str) -> dict[str, object]:
        """Search tickets by email."""

    async def initialize_tickets(self) -> dict[str, object]:
        """Create the ticket pool on the server."""

    async def get_activity_logs(self, filters: dict[str, str]) -> dict[str, object]:
        """Return audit log entries."""

    async def get_system_stats(self) -> dict[str, object]:
        """Return system-wide activity counters."""

    async def get_user_stats(self, user_id: str) -> dict[str, object]:
        """Return activity counters for one staff account."""


def _no_token() -> str | None:
    return None


def _ignore_unauthorized() -> None:
    return None


@dataclass
class HttpxTicketApiClient(TicketApiClient):
    """Ticket API client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0
    token_provider: TokenProvider = field(default=_no_token)
    on_unauthorized: UnauthorizedHandler = field(default=_ignore_unauthorized)

    @classmethod
    def create(cls, base_url: str, timeout: float = 15.0) -> "HttpxTicketApiClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(
                headers={"Content-Type": "application/json"}
            ),
            timeout=timeout,
        )

    async def login(self, username: str, password: str) -> dict[str, object]:
        """Authenticate staff credentials."""
        return await self._request(
            "POST", "/auth/login", json={"username": username, "password": password}
        )

    async def get_profile(self) -> dict[str, object]:
        """Fetch the current profile."""
        return await self._request("GET", "/auth/me")

    async def get_users(self) -> list[dict[str, object]]:
        """List staff accounts."""
        data = await self._request("GET", "/auth/users")
        if isinstance(data, dict):
            users = data.get("users", [])
            return users if isinstance(users, list) else []
        return data if isinstance(data, list) else []

    async def create_user(self, user: dict[str, object]) -> dict[str, object]:
        """Register a staff account."""
        return await self._request("POST", "/auth/register", json=user)

    async def delete_user(self, user_id: str) -> None:
        """Delete a staff account."""
        await self._request("DELETE", f"/auth/users/{user_id}")

    async def get_ticket_stats(self) -> dict[str, object]:
        """Fetch ticket counters."""
        return await self._request("GET", "/tickets/stats")

    async def assign_ticket(self, email: str) -> dict[str, object]:
        """Assign a ticket to an email."""
        return await self._request("POST", "/tickets/assign", json={"email": email})

    async def validate_ticket(self, qr_code: str) -> dict[str, object]:
        """Validate a QR payload."""
        return await self._request(
            "POST", "/tickets/validate", json={"qrCode": qr_code}
        )

    async def get_tickets(self, filters: dict[str, str]) -> dict[str, object]:
        """List tickets."""
        return await self._request("GET", "/tickets", params=filters or None)

    async def search_tickets(self, email: str) -> dict[str, object]:
        """Search tickets by email."""
        return await self._request(
            "GET", "/tickets/search", params={"email": email}
        )

    async def initialize_tickets(self) -> dict[str, object]:
        """Initialize the ticket pool."""
        return await self._request("POST", "/tickets/initialize")

    async def get_activity_logs(self, filters: dict[str, str]) -> dict[str, object]:
        """List audit log entries."""
        return await self._request("GET", "/activity/logs", params=filters or None)

    async def get_system_stats(self) -> dict[str, object]:
        """Fetch system activity counters."""
        return await self._request("GET", "/activity/stats")

    async def get_user_stats(self, user_id: str) -> dict[str, object]:
        """Fetch per-user activity counters."""
        return await self._request("GET", f"/activity/users/{user_id}/stats")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, object] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        headers: dict[str, str] = {}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("ticket_api %s %s: timeout", method, path)
            raise TicketApiUnavailable(f"Request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("ticket_api %s %s: network error - %s", method, path, exc)
            raise TicketApiUnavailable(str(exc) or "Network request failed") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "ticket_api %s %s: %s - %s", method, path, type(exc).__name__, exc
            )
            raise TicketApiUnavailable(str(exc) or "Request failed") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self.on_unauthorized()
        if response.is_error:
            message = _error_message(response)
            logger.info(
                "ticket_api %s %s: HTTP %d - %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise TicketApiError(message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise TicketApiError(
                "Malformed response from ticket API", status_code=response.status_code
            ) from exc
        if isinstance(body, dict) and body.get("success") is False:
            raise TicketApiError(
                str(body.get("error") or "Request failed"),
                status_code=response.status_code,
            )
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body


def _error_message(response: httpx.Response) -> str:
    """Extract the server's reason string from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if value:
                return str(value)
    return f"Request failed with status code {response.status_code}"

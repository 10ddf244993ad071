"""Issuer account management for administrators."""

from dataclasses import dataclass

from ticket_checkin.adapters.ticket_api_client import TicketApiClient
from ticket_checkin.errors import FormValidationError, TicketApiError
from ticket_checkin.services.auth import AuthService
from ticket_checkin.services.tickets import EMAIL_PATTERN

MIN_PASSWORD_LENGTH = 6
ROLES = frozenset({"issuer", "admin"})


@dataclass
class UserAdminService:
    """Create, list and delete staff accounts."""

    client: TicketApiClient
    auth: AuthService

    async def list_users(self) -> list[dict[str, object]]:
        self.auth.require_admin()
        return await self.client.get_users()

    async def create_user(
        self, username: str, email: str, password: str, role: str = "issuer"
    ) -> dict[str, object]:
        """Validate and register a new staff account."""
        self.auth.require_admin()
        username = username.strip()
        email = email.strip().lower()
        if not username or not email or not password:
            raise FormValidationError("All fields are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise FormValidationError("Password must be at least 6 characters long")
        if not EMAIL_PATTERN.match(email):
            raise FormValidationError("Please enter a valid email address")
        if role not in ROLES:
            raise FormValidationError("Role must be issuer or admin")
        try:
            return await self.client.create_user(
                {
                    "username": username,
                    "email": email,
                    "password": password,
                    "role": role,
                }
            )
        except TicketApiError as exc:
            if "already exists" in str(exc).lower():
                raise FormValidationError(
                    "Username or email already exists.", log_message=str(exc)
                ) from exc
            raise

    async def delete_user(self, user_id: str) -> None:
        self.auth.require_admin()
        await self.client.delete_user(user_id)

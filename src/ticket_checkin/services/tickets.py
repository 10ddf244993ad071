"""Ticket issuance and lookup."""

import logging
import re
from dataclasses import dataclass

from ticket_checkin.adapters.ticket_api_client import TicketApiClient
from ticket_checkin.config import parse_ticket_filters
from ticket_checkin.errors import FormValidationError, TicketApiError
from ticket_checkin.services.auth import AuthService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_ISSUE_ERRORS: tuple[tuple[str, str], ...] = (
    ("already has a ticket", "This email already has a ticket assigned."),
    ("no tickets available", "No tickets available. All tickets have been issued."),
    ("invalid email format", "Please enter a valid email address."),
)


def normalize_email(raw: str) -> str:
    """Trim and lowercase an email, raising FormValidationError if invalid."""
    email = raw.strip().lower()
    if not email:
        raise FormValidationError("Please enter an email address")
    if not EMAIL_PATTERN.match(email):
        raise FormValidationError("Please enter a valid email address")
    return email


def issue_error_message(message: str) -> str:
    """Translate an assignment failure into a staff-facing message."""
    lowered = message.lower()
    for pattern, text in _ISSUE_ERRORS:
        if pattern in lowered:
            return text
    return "Failed to issue ticket. Please try again."


@dataclass
class TicketService:
    """Issue tickets and query ticket data."""

    client: TicketApiClient
    auth: AuthService

    async def issue_ticket(self, raw_email: str) -> dict[str, object]:
        """Assign the next free ticket to an email."""
        self.auth.require_user()
        email = normalize_email(raw_email)
        try:
            ticket = await self.client.assign_ticket(email)
        except TicketApiError as exc:
            if exc.status_code == 401:
                raise
            raise FormValidationError(
                issue_error_message(str(exc)), log_message=str(exc)
            ) from exc
        logger.info("Issued ticket to %s", email)
        return ticket

    async def stats(self) -> dict[str, object]:
        """Return ticket counters for the dashboard."""
        self.auth.require_user()
        return await self.client.get_ticket_stats()

    async def list_tickets(self, **filters: object) -> dict[str, object]:
        """List tickets, ignoring empty filters."""
        self.auth.require_user()
        return await self.client.get_tickets(parse_ticket_filters(**filters))

    async def search(self, raw_email: str) -> dict[str, object]:
        """Search tickets by email."""
        self.auth.require_user()
        email = raw_email.strip().lower()
        if not email:
            raise FormValidationError("Please enter an email address")
        return await self.client.search_tickets(email)

    async def initialize(self) -> dict[str, object]:
        """Create the ticket pool (admin only)."""
        self.auth.require_admin()
        return await self.client.initialize_tickets()

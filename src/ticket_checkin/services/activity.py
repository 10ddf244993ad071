"""Activity log queries for the admin monitor."""

from dataclasses import dataclass

from ticket_checkin.adapters.ticket_api_client import TicketApiClient
from ticket_checkin.config import parse_ticket_filters
from ticket_checkin.errors import FormValidationError
from ticket_checkin.services.auth import AuthService

ACTIONS = frozenset(
    {
        "ticket_issued",
        "ticket_validated",
        "user_created",
        "user_deleted",
        "login",
        "logout",
    }
)


@dataclass
class ActivityService:
    """Read-only access to audit logs and usage stats."""

    client: TicketApiClient
    auth: AuthService

    async def list_logs(
        self,
        action: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        page: int = 1,
    ) -> dict[str, object]:
        """Return a page of audit log entries."""
        self.auth.require_admin()
        if action and action not in ACTIONS:
            raise FormValidationError(f"Unknown activity action: {action}")
        filters = parse_ticket_filters(
            action=action,
            startDate=start_date,
            endDate=end_date,
            page=max(page, 1),
        )
        return await self.client.get_activity_logs(filters)

    async def system_stats(self) -> dict[str, object]:
        self.auth.require_admin()
        return await self.client.get_system_stats()

    async def user_stats(self, user_id: str) -> dict[str, object]:
        self.auth.require_admin()
        return await self.client.get_user_stats(user_id)

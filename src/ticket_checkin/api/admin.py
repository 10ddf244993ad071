"""Admin API endpoints for staff accounts, tickets and activity."""

from fastapi import APIRouter, Depends

from ticket_checkin.api.dependencies import get_container, require_admin
from ticket_checkin.api.models import CreateUserRequest
from ticket_checkin.containers import AppContainer

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


@router.get("/users")
async def list_users(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return all staff accounts."""
    return {"users": await container.user_admin_service.list_users()}


@router.post("/users")
async def create_user(
    body: CreateUserRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Create an issuer or admin account."""
    user = await container.user_admin_service.create_user(
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return {"user": user}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    """Delete a staff account."""
    await container.user_admin_service.delete_user(user_id)
    return {"status": "ok"}


@router.post("/tickets/initialize")
async def initialize_tickets(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Create the ticket pool on the server."""
    return {"result": await container.ticket_service.initialize()}


@router.get("/activity")
async def activity_logs(  # noqa: PLR0913
    action: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = 1,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return a page of the audit log."""
    return {
        "logs": await container.activity_service.list_logs(
            action=action, start_date=start_date, end_date=end_date, page=page
        )
    }


@router.get("/activity/stats")
async def activity_stats(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return system-wide activity counters."""
    return {"stats": await container.activity_service.system_stats()}


@router.get("/activity/users/{user_id}")
async def activity_user_stats(
    user_id: str, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Return activity counters for one staff account."""
    return {"stats": await container.activity_service.user_stats(user_id)}

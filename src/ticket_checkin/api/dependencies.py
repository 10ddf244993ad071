"""Shared FastAPI dependencies."""

from fastapi import Depends, Request

from ticket_checkin.containers import AppContainer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_staff(container: AppContainer = Depends(get_container)) -> None:
    """Ensure a staff member is logged in."""
    container.auth_service.require_user()


async def require_admin(container: AppContainer = Depends(get_container)) -> None:
    """Ensure the logged-in staff member is an administrator."""
    container.auth_service.require_admin()

"""Staff authentication and session persistence."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ticket_checkin.adapters.ticket_api_client import TicketApiClient
from ticket_checkin.domain.models import StaffSession, StaffUser
from ticket_checkin.errors import (
    AdminRequired,
    FormValidationError,
    NotAuthenticated,
    TicketApiError,
)

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Persistence interface for the logged-in staff session."""

    def load(self) -> StaffSession | None:
        """Return the stored session, if any."""

    def save(self, session: StaffSession) -> None:
        """Persist a session."""

    def clear(self) -> None:
        """Forget the stored session."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Session store that lives for the process lifetime."""

    session: StaffSession | None = None

    def load(self) -> StaffSession | None:
        return self.session

    def save(self, session: StaffSession) -> None:
        self.session = session

    def clear(self) -> None:
        self.session = None


@dataclass
class FileSessionStore(SessionStore):
    """Session store backed by a JSON file."""

    path: Path

    def load(self) -> StaffSession | None:
        """Read the session file, discarding it if unreadable."""
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return StaffSession(
                token=str(raw["token"]), user=StaffUser.from_payload(raw["user"])
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable session file %s: %s", self.path, exc)
            self.clear()
            return None

    def save(self, session: StaffSession) -> None:
        """Write the session file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": session.token, "user": session.user.to_payload()}
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        """Remove the session file."""
        self.path.unlink(missing_ok=True)


@dataclass
class AuthService:
    """Login, logout and role checks for staff."""

    client: TicketApiClient
    store: SessionStore = field(default_factory=InMemorySessionStore)
    session: StaffSession | None = field(default=None, init=False)

    @property
    def token(self) -> str | None:
        return self.session.token if self.session else None

    @property
    def current_user(self) -> StaffUser | None:
        return self.session.user if self.session else None

    @property
    def is_admin(self) -> bool:
        return bool(self.session and self.session.user.is_admin)

    def restore(self) -> StaffSession | None:
        """Load a previously persisted session."""
        self.session = self.store.load()
        return self.session

    async def login(self, username: str, password: str) -> StaffSession:
        """Authenticate against the ticket API and persist the session."""
        username = username.strip()
        if not username or not password:
            raise FormValidationError("Please enter both username and password")
        data = await self.client.login(username, password)
        token = data.get("token")
        user = data.get("user")
        if not token or not isinstance(user, dict):
            raise TicketApiError("Login response is missing token or user")
        session = StaffSession(token=str(token), user=StaffUser.from_payload(user))
        self.session = session
        self.store.save(session)
        logger.info("Staff %s logged in as %s", session.user.username, session.user.role)
        return session

    def logout(self) -> None:
        """Forget the current session."""
        if self.session:
            logger.info("Staff %s logged out", self.session.user.username)
        self.session = None
        self.store.clear()

    def handle_unauthorized(self) -> None:
        """Drop the session after the API rejects its token."""
        if self.session is not None:
            logger.warning("Session for %s expired", self.session.user.username)
        self.logout()

    async def refresh_profile(self) -> StaffUser:
        """Reload the current user's profile from the API."""
        session = self.require_user()
        data = await self.client.get_profile()
        payload = data.get("user", data) if isinstance(data, dict) else data
        user = StaffUser.from_payload(payload)
        self.session = StaffSession(token=session.token, user=user)
        self.store.save(self.session)
        return user

    def require_user(self) -> StaffSession:
        """Return the active session or raise NotAuthenticated."""
        if self.session is None:
            raise NotAuthenticated()
        return self.session

    def require_admin(self) -> StaffSession:
        """Return the active admin session or raise."""
        session = self.require_user()
        if not session.user.is_admin:
            raise AdminRequired()
        return session

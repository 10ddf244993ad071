"""Domain models for scan sessions and ticket validation."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ticket_checkin.errors import ScannerError

PayloadHandler = Callable[[str], Awaitable[None]]


class ScannerState(str, Enum):
    """Camera session lifecycle.

    IDLE -> REQUESTING_PERMISSION -> STARTING -> SCANNING -> STOPPING -> IDLE.
    STOPPING is reachable from every active state.
    """

    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    STARTING = "starting"
    SCANNING = "scanning"
    STOPPING = "stopping"


class ValidationStatus(str, Enum):
    """Lifecycle of a single validation attempt."""

    PENDING = "pending"
    SUCCESS = "success"
    REJECTED = "rejected"
    ERRORED = "errored"


class RejectionReason(str, Enum):
    """Why the remote API refused a payload."""

    NOT_A_TICKET = "not_a_ticket"
    UNASSIGNED = "unassigned"
    ALREADY_USED = "already_used"


@dataclass
class ScanSession:
    """One logical attempt to use the camera."""

    id: int
    on_payload: PayloadHandler
    state: ScannerState = ScannerState.IDLE
    handle: Any | None = None
    last_error: ScannerError | None = None
    cancelled: bool = False
    releasing: bool = False
    released: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass(frozen=True)
class TicketValidation:
    """Ticket details returned by a successful validation."""

    ticket_id: str
    email: str | None
    used_at: str | None
    issued_by: str | None

    @classmethod
    def from_payload(cls, data: object) -> "TicketValidation":
        """Build from the API ``data`` object, raising ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError("validation response is not an object")
        ticket_id = data.get("ticketID")
        if ticket_id is None or ticket_id == "":
            raise ValueError("validation response is missing ticketID")
        return cls(
            ticket_id=str(ticket_id),
            email=_optional_str(data.get("email")),
            used_at=_optional_str(data.get("usedAt")),
            issued_by=_optional_str(data.get("issuedBy")),
        )


@dataclass
class ValidationAttempt:
    """An in-flight or completed call to validate a payload."""

    payload: str
    status: ValidationStatus = ValidationStatus.PENDING


@dataclass(frozen=True)
class ValidationOutcome:
    """Final result of a validation attempt."""

    payload: str
    status: ValidationStatus
    ticket: TicketValidation | None = None
    reason: RejectionReason | None = None
    cause: str | None = None

    @property
    def retryable(self) -> bool:
        """Errored outcomes may succeed if the same code is scanned again."""
        return self.status is ValidationStatus.ERRORED

    @classmethod
    def success(cls, payload: str, ticket: TicketValidation) -> "ValidationOutcome":
        return cls(payload=payload, status=ValidationStatus.SUCCESS, ticket=ticket)

    @classmethod
    def rejected(cls, payload: str, reason: RejectionReason) -> "ValidationOutcome":
        return cls(payload=payload, status=ValidationStatus.REJECTED, reason=reason)

    @classmethod
    def errored(cls, payload: str, cause: str) -> "ValidationOutcome":
        return cls(payload=payload, status=ValidationStatus.ERRORED, cause=cause)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)

"""Single-flight ticket validation."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from ticket_checkin.domain.scanning import (
    RejectionReason,
    TicketValidation,
    ValidationAttempt,
    ValidationOutcome,
)
from ticket_checkin.errors import DispatcherBusy, TicketApiError, TicketApiUnavailable

logger = logging.getLogger(__name__)

_REJECTION_PATTERNS: tuple[tuple[str, RejectionReason], ...] = (
    ("invalid qr code", RejectionReason.NOT_A_TICKET),
    ("not a valid ticket", RejectionReason.NOT_A_TICKET),
    ("not assigned", RejectionReason.UNASSIGNED),
    ("already used", RejectionReason.ALREADY_USED),
)


class TicketValidator(Protocol):
    """Remote call that validates a decoded QR payload."""

    async def validate_ticket(self, qr_code: str) -> dict[str, object]:
        """Return ticket details or raise TicketApiError."""


def classify_failure(message: str) -> RejectionReason | None:
    """Map a server failure reason to a rejection, or None if not a rejection."""
    lowered = message.lower()
    for pattern, reason in _REJECTION_PATTERNS:
        if pattern in lowered:
            return reason
    return None


@dataclass
class ValidationDispatcher:
    """Turns decoded payloads into validation outcomes, one at a time."""

    validator: TicketValidator
    timeout_seconds: float = 10.0
    pending: ValidationAttempt | None = field(default=None, init=False)
    last_attempt: ValidationAttempt | None = field(default=None, init=False)

    @property
    def busy(self) -> bool:
        return self.pending is not None

    async def submit(self, payload: str) -> ValidationOutcome:
        """Validate ``payload`` with exactly one remote call.

        Raises DispatcherBusy if another attempt is still pending.
        """
        if self.pending is not None:
            raise DispatcherBusy(payload)
        attempt = ValidationAttempt(payload=payload)
        self.pending = attempt
        self.last_attempt = attempt
        try:
            outcome = await self._validate(payload)
        finally:
            self.pending = None
        attempt.status = outcome.status
        logger.info(
            "Validation of %r: %s%s",
            payload,
            outcome.status.value,
            f" ({outcome.reason.value})" if outcome.reason else "",
        )
        return outcome

    async def _validate(self, payload: str) -> ValidationOutcome:
        try:
            data = await asyncio.wait_for(
                self.validator.validate_ticket(payload), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            return ValidationOutcome.errored(payload, "Validation request timed out")
        except TicketApiUnavailable as exc:
            return ValidationOutcome.errored(payload, str(exc))
        except TicketApiError as exc:
            reason = classify_failure(str(exc))
            if reason is None:
                return ValidationOutcome.errored(payload, str(exc))
            return ValidationOutcome.rejected(payload, reason)

        try:
            ticket = TicketValidation.from_payload(data)
        except ValueError as exc:
            logger.warning("Malformed validation response for %r: %s", payload, exc)
            return ValidationOutcome.errored(payload, f"Malformed response: {exc}")
        return ValidationOutcome.success(payload, ticket)

"""Staff-facing presentation of validation outcomes."""

from dataclasses import dataclass

from ticket_checkin.domain.scanning import (
    RejectionReason,
    ValidationOutcome,
    ValidationStatus,
)


@dataclass(frozen=True)
class ScanResultView:
    """Result card shown after a scan."""

    kind: str
    title: str
    message: str
    retryable: bool = False


_REJECTION_VIEWS: dict[RejectionReason, ScanResultView] = {
    RejectionReason.NOT_A_TICKET: ScanResultView(
        kind="error",
        title="Invalid Ticket",
        message="This QR code is not a valid ticket.",
    ),
    RejectionReason.UNASSIGNED: ScanResultView(
        kind="warning",
        title="Unassigned Ticket",
        message="This ticket has not been assigned to anyone yet.",
    ),
    RejectionReason.ALREADY_USED: ScanResultView(
        kind="error",
        title="Already Used",
        message="This ticket has already been used for entry.",
    ),
}


def present_outcome(outcome: ValidationOutcome) -> ScanResultView:
    """Build the result card for an outcome."""
    if outcome.status is ValidationStatus.SUCCESS and outcome.ticket is not None:
        ticket = outcome.ticket
        return ScanResultView(
            kind="success",
            title="Ticket Validated!",
            message=(
                f"Ticket {ticket.ticket_id} for {ticket.email} "
                "has been successfully validated."
            ),
        )
    if outcome.status is ValidationStatus.REJECTED and outcome.reason is not None:
        return _REJECTION_VIEWS[outcome.reason]
    return ScanResultView(
        kind="error",
        title="Validation Error",
        message="Failed to validate ticket. Scan the code again to retry.",
        retryable=True,
    )


def ticket_details(outcome: ValidationOutcome) -> dict[str, str | None] | None:
    """Return the "last validated ticket" panel for successful outcomes."""
    if outcome.status is not ValidationStatus.SUCCESS or outcome.ticket is None:
        return None
    return {
        "ticket_id": outcome.ticket.ticket_id,
        "email": outcome.ticket.email,
        "validated_at": outcome.ticket.used_at,
        "issued_by": outcome.ticket.issued_by,
    }

"""Exception hierarchy for the check-in client."""


class CheckinError(Exception):
    """Base class for errors raised by ticket_checkin."""

    def __init__(self, user_message: str, *, log_message: str | None = None) -> None:
        super().__init__(log_message or user_message)
        self.user_message = user_message


class ScannerError(CheckinError):
    """Raised when a scan session cannot be started."""


class PermissionDenied(ScannerError):
    """Camera access was refused or the device could not be opened."""

    def __init__(self, cause: str | None = None) -> None:
        super().__init__(
            "Camera permission denied. Please enable camera access and try again.",
            log_message=f"camera access denied: {cause}" if cause else None,
        )
        self.cause = cause


class SurfaceUnavailable(ScannerError):
    """No rendering surface accepted the decoder within the retry window."""

    def __init__(self, surface_id: str, cause: str | None = None) -> None:
        super().__init__(
            "Failed to start camera. The scanner view is not available.",
            log_message=(
                f"surface {surface_id!r} unavailable"
                + (f": {cause}" if cause else "")
            ),
        )
        self.surface_id = surface_id
        self.cause = cause


class CameraFailure(ScannerError):
    """The decode loop died while scanning."""

    def __init__(self, cause: str) -> None:
        super().__init__(
            "Camera stopped unexpectedly. Please start scanning again.",
            log_message=f"decode loop failed: {cause}",
        )
        self.cause = cause


class DispatcherBusy(CheckinError):
    """A validation attempt is already pending."""

    def __init__(self, payload: str) -> None:
        super().__init__(
            "A ticket is already being validated.",
            log_message=f"validation already pending, dropped payload {payload!r}",
        )
        self.payload = payload


class TicketApiError(CheckinError):
    """The remote ticket API reported a failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TicketApiUnavailable(TicketApiError):
    """The remote ticket API could not be reached."""


class NotAuthenticated(CheckinError):
    """No staff session is active."""

    def __init__(self) -> None:
        super().__init__("Please log in to continue.")


class AdminRequired(CheckinError):
    """The active staff session is not an administrator."""

    def __init__(self) -> None:
        super().__init__("Administrator access is required.")


class FormValidationError(CheckinError):
    """User input was rejected before reaching the remote API."""

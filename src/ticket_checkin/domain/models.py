"""Domain models for staff accounts."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StaffUser:
    """A staff account as reported by the ticket API."""

    id: str
    username: str
    email: str | None
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_payload(cls, data: dict[str, object]) -> "StaffUser":
        user_id = data.get("id", data.get("_id", ""))
        email = data.get("email")
        return cls(
            id=str(user_id),
            username=str(data.get("username", "")),
            email=str(email) if email is not None else None,
            role=str(data.get("role", "issuer")),
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }


@dataclass(frozen=True)
class StaffSession:
    """An authenticated staff session."""

    token: str
    user: StaffUser

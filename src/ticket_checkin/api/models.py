"""Request models for the local check-in API."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Staff credentials."""

    username: str
    password: str


class IssueTicketRequest(BaseModel):
    """Email to assign a ticket to."""

    email: str


class CreateUserRequest(BaseModel):
    """New staff account."""

    username: str
    email: str
    password: str
    role: str = Field(default="issuer")

"""ASGI entrypoint for the check-in API."""

from ticket_checkin.api.app import create_app
from ticket_checkin.containers import build_container

app = create_app(build_container())

"""ASGI entrypoint for the check-in wizard API."""

from checkin_wizard.api.app import create_app
from checkin_wizard.containers import build_container

app = create_app(build_container())

"""ASGI entrypoint for the box tracker API."""

from box_tracker.api.app import create_app
from box_tracker.containers import build_container

app = create_app(build_container())

"""ASGI entrypoint for the hemp admin API."""

from hemp_admin.api.app import create_app
from hemp_admin.containers import build_container

app = create_app(build_container())

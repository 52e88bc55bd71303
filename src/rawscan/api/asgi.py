"""ASGI entrypoint for the RawScan API."""

from rawscan.api.app import create_app
from rawscan.containers import build_container

app = create_app(build_container())

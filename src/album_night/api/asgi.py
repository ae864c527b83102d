"""ASGI entrypoint for the album night API."""

from album_night.api.app import create_app
from album_night.containers import build_container

app = create_app(build_container())

"""ASGI entrypoint for the movies API."""

from movies_crud.api.app import create_app
from movies_crud.containers import build_container

app = create_app(build_container())

"""ASGI entrypoint for the NutriBalance API."""

from nutri_balance.api.app import create_app
from nutri_balance.containers import build_container

app = create_app(build_container())

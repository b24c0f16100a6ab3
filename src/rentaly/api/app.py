"""ASGI entrypoint: `uvicorn rentaly.api.app:app`."""

from rentaly.api.factory import create_app

app = create_app()

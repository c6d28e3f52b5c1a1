"""Middleware registration."""

from fastapi import FastAPI

from mirrorplay.config import Settings
from mirrorplay.middleware.cors import setup_cors
from mirrorplay.middleware.error_handler import setup_error_handlers
from mirrorplay.middleware.logging import setup_logging
from mirrorplay.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    CORS is added last so it also wraps error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)

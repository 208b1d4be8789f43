"""Middleware registration."""

from fastapi import FastAPI

from tradeya.config import Settings
from tradeya.middleware.error_handler import setup_error_handlers
from tradeya.middleware.logging import setup_logging
from tradeya.middleware.request_id import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, register error handlers and the request context middleware."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)

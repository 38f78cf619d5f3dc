"""Middleware registration."""

from fastapi import FastAPI

from vpe.config import Settings
from vpe.middleware.cors import setup_cors
from vpe.middleware.error_handler import setup_error_handlers
from vpe.middleware.logging import setup_logging
from vpe.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order; CORS is added last so it
    wraps error responses too.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)

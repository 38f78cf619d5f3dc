"""Shared FastAPI dependencies."""

from fastapi import Request

from vpe.database import get_session as _get_session
from vpe.engine.facade import ProgressionEngine

get_db = _get_session


def get_engine(request: Request) -> ProgressionEngine:
    """The process-wide engine built at startup. Its locks must be shared by every request."""
    return request.app.state.engine

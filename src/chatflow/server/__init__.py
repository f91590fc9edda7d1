"""HTTP surface: FastAPI app, wire models and error translation."""

from chatflow.server.api import app, create_app
from chatflow.server.models import (
    HealthResponse,
    ResetResponse,
    RunRequest,
    RunResponse,
    SessionStateResponse,
)

__all__ = [
    "app",
    "create_app",
    "RunRequest",
    "RunResponse",
    "HealthResponse",
    "SessionStateResponse",
    "ResetResponse",
]

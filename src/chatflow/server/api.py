"""chatflow FastAPI Application.

Provides REST API endpoints for running chatbot flows. Each POST is one
independent request-response cycle; conversation state lives in the
session store between requests.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import APIRouter, FastAPI, HTTPException, Request

from chatflow import __version__
from chatflow.config.loader import ConfigLoader
from chatflow.config.models import ChatflowConfig
from chatflow.core.errors import ChatflowError, ValidationError
from chatflow.core.security import sanitize_session_key, sanitize_user_message
from chatflow.graph.repository import DirectoryFlowRepository
from chatflow.observability.logging import ContextLogger, setup_logging
from chatflow.runtime.service import ChatService, Failure
from chatflow.server.dependencies import OwnerDep, ServiceDep
from chatflow.server.errors import create_error_response, global_exception_handler
from chatflow.server.models import (
    HealthResponse,
    ReadinessResponse,
    ResetResponse,
    RunRequest,
    RunResponse,
    SessionStateResponse,
    VersionResponse,
)
from chatflow.session.models import AwaitingNode
from chatflow.session.store import create_session_store

logger = logging.getLogger(__name__)
request_logger = ContextLogger("chatflow.server.requests")

CONFIG_ENV_VAR = "CHATFLOW_CONFIG_PATH"
DEFAULT_CONFIG_FILE = "chatflow.yaml"


def _load_config() -> ChatflowConfig | None:
    config_path = os.environ.get(CONFIG_ENV_VAR)
    if not config_path and os.path.exists(DEFAULT_CONFIG_FILE):
        config_path = DEFAULT_CONFIG_FILE

    if not config_path:
        logger.warning(
            f"{CONFIG_ENV_VAR} not set and {DEFAULT_CONFIG_FILE} not found. Using defaults."
        )
        return ChatflowConfig()

    logger.info(f"Reading chatflow config {config_path}")
    try:
        return ConfigLoader.load(config_path)
    except (ChatflowError, FileNotFoundError) as e:
        logger.error(f"Config {config_path} is unusable, serving nothing: {e}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the session store and flow repository for the life of the process."""
    from dotenv import load_dotenv

    load_dotenv()

    config = _load_config()
    if config is None:
        yield
        return

    log_cfg = config.settings.logging
    setup_logging(log_cfg.level, log_cfg.json_file, log_cfg.trace)

    persistence = config.settings.persistence
    try:
        async with create_session_store(persistence.backend, path=persistence.path) as sessions:
            flows = DirectoryFlowRepository(config.flows.directory, ttl=config.flows.cache_ttl)
            app.state.config = config
            app.state.service = ChatService.from_config(config, flows, sessions)
            logger.info("ChatService initialized and ready.")
            yield
            logger.info("ChatService cleanup...")
    finally:
        app.state.service = None


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe."""
    service = getattr(request.app.state, "service", None)
    status: Literal["healthy", "starting"] = "healthy" if service else "starting"
    return HealthResponse(status=status, version=__version__)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe."""
    service = getattr(request.app.state, "service", None)
    if not service:
        return ReadinessResponse(
            ready=False, message="Service not initialized", checks={"service": False}
        )
    return ReadinessResponse(ready=True, message="Service is ready", checks={"service": True})


@router.post("/chatbots/{flow_id}/run", response_model=RunResponse)
async def run_chatbot(
    flow_id: str,
    body: RunRequest,
    service: ServiceDep,
    owner_id: OwnerDep,
) -> RunResponse:
    """Send one user message to a chatbot flow and return its reply."""
    endpoint = f"/chatbots/{flow_id}/run"
    try:
        message = sanitize_user_message(body.message)
        session_key = sanitize_session_key(body.session_key) if body.session_key else None
    except ValidationError as e:
        raise create_error_response(e, body.session_key, endpoint) from e

    log = request_logger.with_context(flow_id=flow_id, session_key=session_key)
    log.debug(f"Inbound message for flow {flow_id}")

    outcome = await service.handle_message(
        flow_id, message, session_key=session_key, owner_id=owner_id
    )
    if isinstance(outcome, Failure):
        raise create_error_response(outcome.error, outcome.session_key, endpoint)

    log.debug(f"Run halted: {outcome.result.halt_reason.value} after {outcome.result.steps} steps")
    return RunResponse(reply=outcome.reply, session_key=outcome.session_key)


@router.get(
    "/chatbots/{flow_id}/sessions/{session_key}", response_model=SessionStateResponse
)
async def get_session_state(
    flow_id: str,
    session_key: str,
    service: ServiceDep,
) -> SessionStateResponse:
    """Get the stored conversation state for a session key."""
    session = await service.get_session(flow_id, session_key)
    if session is None:
        raise HTTPException(status_code=404, detail={"error": "Session not found"})

    status: Literal["fresh", "awaiting"] = (
        "awaiting" if isinstance(session.resume_point, AwaitingNode) else "fresh"
    )
    return SessionStateResponse(
        flow_id=session.flow_id,
        session_key=session.session_key,
        status=status,
        last_node_id=session.last_node_id,
        last_message=session.last_message,
        version=session.version,
        updated_at=session.updated_at,
    )


@router.delete("/chatbots/{flow_id}/sessions/{session_key}", response_model=ResetResponse)
async def reset_session(
    flow_id: str,
    session_key: str,
    service: ServiceDep,
) -> ResetResponse:
    """Reset a conversation so the next message starts from the trigger."""
    if await service.reset_session(flow_id, session_key):
        return ResetResponse(success=True, message="Conversation reset")
    return ResetResponse(success=False, message="No conversation for this session key")


@router.get("/version", response_model=VersionResponse)
def get_version() -> VersionResponse:
    major, minor, patch = (__version__.split(".", 2) + ["0", "0"])[:3]
    return VersionResponse(
        version=__version__,
        major=int(major) if major.isdigit() else 0,
        minor=int(minor) if minor.isdigit() else 0,
        patch=patch,
    )


def create_app(service: ChatService | None = None) -> FastAPI:
    """Factory function.

    With an explicit ``service`` the app skips config loading entirely
    (used by tests and embedding applications).
    """
    app = FastAPI(
        title="chatflow",
        description="Conversational flow execution engine",
        version=__version__,
        lifespan=None if service is not None else lifespan,
    )
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(router)
    if service is not None:
        app.state.service = service
    return app


app = create_app()

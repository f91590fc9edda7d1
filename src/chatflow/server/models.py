"""Wire schemas for the chatflow HTTP API.

Field aliases keep the camelCase names the chat widget sends and expects.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from chatflow.core.security import MAX_MESSAGE_LENGTH, MAX_SESSION_KEY_LENGTH


class RunRequest(BaseModel):
    """Request model for sending a user message to a flow."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(max_length=MAX_MESSAGE_LENGTH, description="User's input message")
    session_key: str | None = Field(
        default=None,
        alias="sessionKey",
        max_length=MAX_SESSION_KEY_LENGTH,
        description="Conversation key (phone number, user id); defaults to web-session",
    )


class RunResponse(BaseModel):
    """Response model for a processed message.

    ``reply`` is plain text, or a JSON-encoded button/media payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    reply: str = Field(description="Reply text or JSON-encoded payload")
    session_key: str = Field(alias="sessionKey")


class SessionStateResponse(BaseModel):
    """Response model for the session state endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    flow_id: str = Field(alias="flowId")
    session_key: str = Field(alias="sessionKey")
    status: Literal["fresh", "awaiting"]
    last_node_id: str | None = Field(alias="lastNodeId")
    last_message: str | None = Field(alias="lastMessage")
    version: int
    updated_at: datetime = Field(alias="updatedAt")


class ResetResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    """Liveness: ``starting`` until the lifespan has attached a service."""

    status: Literal["healthy", "starting"]
    version: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class ReadinessResponse(BaseModel):
    ready: bool
    message: str
    checks: dict[str, bool] | None = None


class VersionResponse(BaseModel):
    version: str
    major: int
    minor: int
    patch: str = Field(description="Third component, possibly with a pre-release suffix")

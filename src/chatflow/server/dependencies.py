"""FastAPI dependencies for server endpoints.

Uses dependency injection instead of global state for better
testability and multi-worker safety.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from chatflow.runtime.service import ChatService


def get_service(request: Request) -> ChatService:
    """Dependency to get the initialized ChatService.

    Raises:
        HTTPException: 503 if the service is not initialized
    """
    service = getattr(request.app.state, "service", None)

    if service is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "Service temporarily unavailable",
                "message": "Server is starting up. Please try again in a few seconds.",
            },
        )
    return service  # type: ignore[no-any-return]


def get_owner_id(x_owner_id: Annotated[str | None, Header()] = None) -> str | None:
    """Caller identity as established by the authenticating proxy."""
    return x_owner_id or None


# Type aliases for cleaner endpoint signatures
ServiceDep = Annotated[ChatService, Depends(get_service)]
OwnerDep = Annotated[str | None, Depends(get_owner_id)]

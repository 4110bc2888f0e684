"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from chat_relay.dependencies import RelayStateDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    active_connections: int
    registered_users: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(relay: RelayStateDep) -> HealthResponse:
    """
    Report relay status.

    The relay has no external dependencies, so a response always means
    healthy. The counts are the open transports and the registered
    nicknames as of the last liveness sweep.

    Returns:
        HealthResponse: Status and connection counts.
    """
    return HealthResponse(
        status="healthy",
        active_connections=len(relay.connections.live_handles()),
        registered_users=len(relay.registry),
    )

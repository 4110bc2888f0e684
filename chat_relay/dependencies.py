"""
Dependency injection helpers for FastAPI.

Example:
    ```python
    from fastapi import APIRouter
    from chat_relay.dependencies import RelayStateDep

    router = APIRouter()

    @router.get("/users")
    async def users(relay: RelayStateDep) -> list[str]:
        return relay.registry.current_nicknames()
    ```
"""

from typing import Annotated

from fastapi import Depends, Request

from chat_relay.state import RelayState


def get_relay_state(request: Request) -> RelayState:
    """
    Return the relay state owned by the running application.

    Args:
        request: The incoming HTTP request.

    Returns:
        RelayState: State created by the application factory.
    """
    return request.app.state.relay


RelayStateDep = Annotated[RelayState, Depends(get_relay_state)]

# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
from asyncio import create_task, gather
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chat_relay.logging import logger
from chat_relay.routing import collect_subrouters
from chat_relay.settings import app_settings
from chat_relay.state import RelayState
from chat_relay.tasks.liveness_sweep import liveness_sweep_task


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application startup and shutdown.

    Startup starts the liveness sweep for the relay owned by ``app``.
    Shutdown cancels background tasks and waits for them, using gather()
    with return_exceptions=True so a task failing while cancelling does
    not abort the shutdown, then flushes and stops the broadcast writers.
    """
    logger.info(f"Listening on port {app_settings.PORT}")
    tasks = [
        create_task(
            liveness_sweep_task(
                app.state.relay, app_settings.LIVENESS_SWEEP_INTERVAL_SECONDS
            )
        )
    ]
    logger.info("Created task for liveness sweep")

    yield

    logger.info("Application shutdown initiated")
    logger.info(f"Cancelling {len(tasks)} background tasks")
    for task in tasks:
        task.cancel()
    await gather(*tasks, return_exceptions=True)
    await app.state.relay.connections.shutdown()
    logger.info("Application shutdown complete")


def application() -> FastAPI:
    """
    Initializes and configures the relay application.

    Each call creates a fresh `RelayState` (registry, connection manager and
    dispatcher) stored on `app.state.relay`, so independent applications
    never share participants.

    Routers are collected from `api/http` and `api/ws/consumers` by
    `collect_subrouters()`.
    """
    app = FastAPI(
        title="Chat relay",
        description="Real-time chat message relay over websockets",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.relay = RelayState()

    app.include_router(collect_subrouters())

    return app

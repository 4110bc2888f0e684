"""
Liveness sweep task.

Disconnects are not handled when they happen. Instead this task
periodically compares the registry with the websockets the transport
still reports as open, drops the stale entries and announces the new
participant list. A closed connection therefore disappears from the
``users`` list within one sweep interval.
"""

import asyncio

from chat_relay.constants import TASK_ERROR_BACKOFF_SECONDS
from chat_relay.logging import logger
from chat_relay.state import RelayState
from chat_relay.utils.metrics import registry_prunes_total


def sweep_once(state: RelayState) -> bool:
    """
    Run a single reconciliation pass.

    Args:
        state: The relay to sweep.

    Returns:
        True if entries were pruned and a ``users`` event was broadcast.
    """
    if not state.registry.prune(state.connections.live_handles()):
        return False

    registry_prunes_total.inc()
    state.dispatcher.announce_users()
    return True


async def liveness_sweep_task(state: RelayState, interval: float) -> None:
    """
    Sweep the registry every ``interval`` seconds until cancelled.

    Unexpected errors are logged and the loop continues after a short
    backoff.

    Args:
        state: The relay to sweep.
        interval: Seconds between sweeps.
    """
    logger.info(f"Starting liveness sweep task (interval {interval}s)")

    while True:
        try:
            await asyncio.sleep(interval)
            sweep_once(state)

        except asyncio.CancelledError:
            logger.info("Liveness sweep task cancelled!")
            break

        except Exception as ex:
            logger.error(f"Error in liveness_sweep_task: {ex}", exc_info=True)
            await asyncio.sleep(TASK_ERROR_BACKOFF_SECONDS)

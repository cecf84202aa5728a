"""
Server-sent event stream of a run's progress.

The stream polls the store once per interval; nothing pushes updates.
It ends on a terminal run status, an unknown run, the poll cap, or a
client disconnect.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from gradely.models import TERMINAL_RUN_STATUSES
from gradely.store import Store

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
MAX_POLLS = 120


def sse_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def stream_run_events(
    store: Store,
    run_id: str,
    interval: float = POLL_INTERVAL_SECONDS,
    max_polls: int = MAX_POLLS,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield `message` frames with the run's status and logs, then one `end` frame.

    At most `max_polls` message frames are emitted for a run that never
    reaches a terminal status.
    """
    polls = 0
    while True:
        if is_disconnected is not None and await is_disconnected():
            logger.info(f"Client disconnected from run {run_id} after {polls} polls")
            return

        run = store.find_run(run_id)
        if run is None:
            yield sse_event("end", {"error": "not_found"})
            return

        yield sse_event("message", {"status": run.status, "logs": run.logs})
        polls += 1

        if run.status in TERMINAL_RUN_STATUSES or polls >= max_polls:
            yield sse_event("end", {"done": True})
            return

        await asyncio.sleep(interval)

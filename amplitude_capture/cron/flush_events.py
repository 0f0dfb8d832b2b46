"""Cron job: periodically flush buffered capture events to Amplitude.

Flow:
1. Wait `interval` seconds (or until `stop` is set).
2. `SendMiddleware.flush` drains the event buffer and uploads one batch.
3. Every error left in the error buffer is drained and logged.

Lossy by design: a failed batch is logged, not retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from amplitude_capture.middleware import SendMiddleware
from amplitude_capture.settings import AMPLITUDE_FLUSH_INTERVAL, AMPLITUDE_FLUSH_TIMEOUT

logger = logging.getLogger("amplitude_capture.cron.flush_events")


def drain_errors(sender: SendMiddleware) -> List[BaseException]:
    """Pop every buffered error without blocking."""
    errors: List[BaseException] = []
    while (err := sender.next_error()) is not None:
        errors.append(err)
    return errors


async def flush_once(sender: SendMiddleware, timeout: Optional[float] = AMPLITUDE_FLUSH_TIMEOUT) -> None:
    await sender.flush(timeout)
    for err in drain_errors(sender):
        logger.warning("amplitude.capture_error %s: %s", type(err).__name__, err)


async def run_periodic_flush(
    sender: SendMiddleware,
    *,
    interval: float = AMPLITUDE_FLUSH_INTERVAL,
    timeout: Optional[float] = AMPLITUDE_FLUSH_TIMEOUT,
    stop: Optional[asyncio.Event] = None,
) -> None:
    """Flush `sender` every `interval` seconds until `stop` is set.

    A final flush runs on the way out so a clean shutdown does not strand
    buffered events.
    """
    stop = stop or asyncio.Event()
    while True:
        try:
            await asyncio.wait_for(stop.wait(), interval)
        except asyncio.TimeoutError:
            pass
        await flush_once(sender, timeout)
        if stop.is_set():
            return

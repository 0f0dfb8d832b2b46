"""ASGI middleware that turns inbound requests into buffered Amplitude events.

Events and errors are held in fixed-capacity buffers. Nothing in the request
path ever blocks on them: a full event buffer drops the event and records an
`EventDroppedError`, a full error buffer drops the error. `flush` is meant to
be called periodically (see `amplitude_capture.cron.flush_events`).
"""

from __future__ import annotations

import asyncio
import logging
import os
import queue
from dataclasses import dataclass
from time import perf_counter
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from amplitude_capture.errors import EventDroppedError
from amplitude_capture.models.events import BatchEventsSuccessSummary, Event
from amplitude_capture.settings import MAX_ERRORS, MAX_EVENTS, get_env_int
from amplitude_capture.utils.request_events import event_from_request

if TYPE_CHECKING:  # pragma: no cover
    from amplitude_capture.client import AmplitudeClient

logger = logging.getLogger("amplitude_capture.middleware")


@dataclass(frozen=True)
class MiddlewareConfig:
    """Capture settings, fixed before the middleware handles any traffic."""

    environment: str = ""
    app_version: str = ""
    user_header: str = ""
    device_header: str = ""
    max_events: int = MAX_EVENTS
    max_errors: int = MAX_ERRORS

    def __post_init__(self) -> None:
        # queue.Queue treats 0 as unbounded
        if self.max_events < 1 or self.max_errors < 1:
            raise ValueError("buffer capacities must be at least 1")

    @property
    def tracking(self) -> bool:
        """Whether requests can be attributed to a user or device at all."""
        return bool(self.user_header or self.device_header)

    @classmethod
    def from_env(cls) -> "MiddlewareConfig":
        return cls(
            environment=os.getenv("AMPLITUDE_ENVIRONMENT", ""),
            app_version=os.getenv("AMPLITUDE_APP_VERSION", ""),
            user_header=os.getenv("AMPLITUDE_USER_HEADER", ""),
            device_header=os.getenv("AMPLITUDE_DEVICE_HEADER", ""),
            max_events=get_env_int("AMPLITUDE_MAX_EVENTS", MAX_EVENTS),
            max_errors=get_env_int("AMPLITUDE_MAX_ERRORS", MAX_ERRORS),
        )


class SendMiddleware:
    """Buffers request events and flushes them to the Batch Event Upload API."""

    def __init__(self, client: "AmplitudeClient", config: Optional[MiddlewareConfig] = None):
        self.client = client
        self.config = config or MiddlewareConfig()
        self._events: "queue.Queue[Event]" = queue.Queue(maxsize=self.config.max_events)
        self._errors: "queue.Queue[BaseException]" = queue.Queue(maxsize=self.config.max_errors)

    # ------------------------------------------------------------------
    # Buffers
    # ------------------------------------------------------------------

    @property
    def pending_events(self) -> int:
        return self._events.qsize()

    @property
    def pending_errors(self) -> int:
        return self._errors.qsize()

    def send(self, event: Event) -> bool:
        """Buffer an event; a full buffer records the drop as an error."""
        try:
            self._events.put_nowait(event)
        except queue.Full:
            logger.debug("amplitude.event_dropped", extra={"event_type": event.event_type})
            self.send_error(EventDroppedError(event.event_type, event.user_id, event.device_id))
            return False
        return True

    def send_error(self, exc: BaseException) -> bool:
        """Buffer an error; silently lost once the error buffer is full."""
        try:
            self._errors.put_nowait(exc)
        except queue.Full:
            return False
        return True

    def next_event(self) -> Optional[Event]:
        try:
            return self._events.get_nowait()
        except queue.Empty:
            return None

    def next_error(self) -> Optional[BaseException]:
        try:
            return self._errors.get_nowait()
        except queue.Empty:
            return None

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    def handle(self, app: ASGIApp) -> ASGIApp:
        """Wrap an ASGI app; returns it untouched when nothing is tracked."""
        if not self.config.tracking:
            return app
        return CaptureMiddleware(app, sender=self)

    def capture(self, request: Request, latency_ms: int) -> Optional[Event]:
        """Derive and buffer the event for a completed request."""
        cfg = self.config
        user_id = request.headers.get(cfg.user_header, "") if cfg.user_header else ""
        device_id = request.headers.get(cfg.device_header, "") if cfg.device_header else ""
        # Requests must belong to a user or device to be tracked
        if not user_id and not device_id:
            return None

        try:
            event = event_from_request(request, user_id, device_id)
            event.set_latency(latency_ms)
            event.set_environment(cfg.environment)
            event.set_app_version(cfg.app_version)
        except Exception as exc:
            self.send_error(exc)
            return None

        self.send(event)
        return event

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def _drain(self, loop: asyncio.AbstractEventLoop, deadline: Optional[float]) -> Optional[List[Event]]:
        """Take up to one buffer's worth of events; None once past deadline."""
        events: List[Event] = []
        for _ in range(self.config.max_events):
            if deadline is not None and loop.time() >= deadline:
                return None
            event = self.next_event()
            if event is None:
                break
            events.append(event)
        return events

    async def flush(self, timeout: Optional[float] = None) -> Optional[BatchEventsSuccessSummary]:
        """Send all buffered events as one batch.

        Delivery is at most once: drained events are never re-buffered, and
        every failure (including running out of `timeout`) is recorded in the
        error buffer instead of raised.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        events = self._drain(loop, deadline)
        if events is None:
            self.send_error(asyncio.TimeoutError("amplitude: flush deadline exceeded"))
            return None
        if not events:
            return None

        remaining = None if deadline is None else deadline - loop.time()
        try:
            summary = await self.client.events.send(events, timeout=remaining)
        except asyncio.CancelledError as exc:
            self.send_error(exc)
            raise
        except Exception as exc:
            self.send_error(exc)
            return None

        logger.info(
            "amplitude: total=%d, size=%d, time=%d events were flushed",
            summary.events_ingested,
            summary.payload_size_bytes,
            summary.server_upload_time,
        )
        return summary


class CaptureMiddleware(BaseHTTPMiddleware):
    """Time each request and hand it to a `SendMiddleware` for capture.

    Prefer `SendMiddleware.handle`; this class also works with
    ``app.add_middleware(CaptureMiddleware, sender=...)``.
    """

    def __init__(self, app: ASGIApp, sender: SendMiddleware):
        super().__init__(app)
        self.sender = sender

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:  # type: ignore[override]
        if not self.sender.config.tracking:
            return await call_next(request)

        start = perf_counter()
        response = await call_next(request)
        latency_ms = int((perf_counter() - start) * 1000)

        self.sender.capture(request, latency_ms)
        return response

"""Amplitude analytics client and request-capture middleware."""

__version__ = "0.1.0"

__all__ = [
    "AmplitudeClient",
    "APIError",
    "AmplitudeError",
    "BatchEventsSuccessSummary",
    "CaptureMiddleware",
    "Event",
    "EventDroppedError",
    "MiddlewareConfig",
    "SendMiddleware",
    "event_from_request",
]

from amplitude_capture.client import AmplitudeClient
from amplitude_capture.errors import AmplitudeError, APIError, EventDroppedError
from amplitude_capture.middleware import CaptureMiddleware, MiddlewareConfig, SendMiddleware
from amplitude_capture.models import BatchEventsSuccessSummary, Event
from amplitude_capture.utils.request_events import event_from_request

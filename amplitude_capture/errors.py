"""Exceptions raised by the Amplitude client and capture middleware."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx


class AmplitudeError(Exception):
    """Base exception for all amplitude-capture errors."""


class APIError(AmplitudeError):
    """A non-2xx response from the Amplitude API.

    The error body is not well-defined, so everything the API sent back is
    kept in ``context``. ``code`` and ``message`` read the two fields every
    Amplitude error carries; anything else (e.g. ``missing_field``) is
    available through ``context`` directly.
    """

    def __init__(self, response: Optional[httpx.Response], context: Optional[Dict[str, Any]] = None):
        self.response = response
        self.context: Dict[str, Any] = context or {}
        super().__init__(str(self))

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        """Build the error from a response body.

        A JSON `null` body yields an empty envelope. Any other body that is
        not a JSON object raises instead of returning an envelope.
        """
        context = response.json()
        if context is None:
            context = {}
        if not isinstance(context, dict):
            raise ValueError(f"expected a JSON object in error body, got {type(context).__name__}")
        return cls(response, context)

    @property
    def status_code(self) -> int:
        return self.response.status_code if self.response is not None else 0

    @property
    def code(self) -> int:
        raw = self.context.get("code")
        # bool is an int subclass but never a valid code
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return int(raw)
        return 0

    @property
    def message(self) -> str:
        raw = self.context.get("error")
        if isinstance(raw, str):
            return raw
        return ""

    def __str__(self) -> str:
        return f"error code {self.code} received with message {self.message}"


class EventDroppedError(AmplitudeError):
    """Raised (into the error buffer) when the event buffer is full."""

    def __init__(self, event_type: str, user_id: Optional[str], device_id: Optional[str]):
        self.event_type = event_type
        self.user_id = user_id or ""
        self.device_id = device_id or ""
        super().__init__(
            f"amplitude: event={self.event_type}, user={self.user_id}, "
            f"device={self.device_id} was dropped"
        )

"""HTTP client for working with the Amplitude APIs.

`AmplitudeClient` owns request construction (base URL, auth body, JSON
encoding, headers) and response handling (JSON decoding, error envelopes,
timeouts). Resource-specific calls live on thin service objects such as
`client.events`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from amplitude_capture.errors import APIError
from amplitude_capture.services.events import EventsService
from amplitude_capture.settings import (
    AMPLITUDE_API_KEY,
    AMPLITUDE_BASE_URL,
    AMPLITUDE_USER_AGENT,
    DEFAULT_BASE_URL,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_MEDIA_TYPE,
    DEFAULT_USER_AGENT,
)

if TYPE_CHECKING:  # pragma: no cover
    from amplitude_capture.middleware import MiddlewareConfig, SendMiddleware

logger = logging.getLogger("amplitude_capture.client")

ModelT = TypeVar("ModelT", bound=BaseModel)

# Sent as the body of every request
RequestBody = Dict[str, Any]


class AmplitudeClient:
    """Async client for the Amplitude HTTP API."""

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        # Services use relative endpoints resolved against this URL
        self.base_url = httpx.URL(base_url)
        self.user_agent = user_agent
        self.api_key = api_key

        self._owns_http = http_client is None
        # No transport timeout of its own; `send(timeout=...)` bounds each call
        self._http = http_client or httpx.AsyncClient(timeout=None)

        self.events = EventsService(self)

    @classmethod
    def from_env(cls, http_client: Optional[httpx.AsyncClient] = None) -> "AmplitudeClient":
        """Build a client from AMPLITUDE_* environment settings."""
        return cls(
            AMPLITUDE_API_KEY,
            base_url=AMPLITUDE_BASE_URL,
            user_agent=AMPLITUDE_USER_AGENT,
            http_client=http_client,
        )

    def send_middleware(self, config: Optional["MiddlewareConfig"] = None) -> "SendMiddleware":
        """Create a capture middleware that uploads through this client."""
        from amplitude_capture.middleware import SendMiddleware  # noqa: WPS433 (runtime import)

        return SendMiddleware(self, config)

    def new_request_body(self) -> RequestBody:
        """Return a request body carrying authentication, if configured."""
        body: RequestBody = {}
        if self.api_key:
            body["api_key"] = self.api_key
        return body

    def build_request(self, method: str, endpoint: str = "", body: Optional[RequestBody] = None) -> httpx.Request:
        """Build a request to be sent to Amplitude.

        An empty endpoint targets the base URL itself.
        """
        url = self.base_url.join(endpoint) if endpoint else self.base_url

        headers = {"Accept": DEFAULT_MEDIA_TYPE}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        content: Optional[bytes] = None
        if body is not None:
            content = json.dumps(body, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = DEFAULT_CONTENT_TYPE

        return httpx.Request(method or "GET", url, headers=headers, content=content)

    async def send(
        self,
        request: Optional[httpx.Request],
        model: Optional[Type[ModelT]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[ModelT]:
        """Send a request and decode the response into `model`.

        `timeout` bounds the whole call in seconds. When the call fails after
        the deadline has passed, the timeout wins over the transport error.
        """
        if request is None:
            raise ValueError("no request passed")

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        if timeout is not None and timeout <= 0:
            raise asyncio.TimeoutError()

        try:
            response = await asyncio.wait_for(self._http.send(request), timeout)
        except httpx.HTTPError as exc:
            if deadline is not None and loop.time() >= deadline:
                raise asyncio.TimeoutError() from exc
            raise

        logger.debug(
            "amplitude.request",
            extra={"method": request.method, "url": str(request.url), "status_code": response.status_code},
        )

        if not 200 <= response.status_code <= 299:
            raise APIError.from_response(response)

        # Only JSON responses are supported (and so does the Amplitude API)
        if model is None:
            return None
        if not response.content:
            return model()
        return model.model_validate_json(response.content)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "AmplitudeClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

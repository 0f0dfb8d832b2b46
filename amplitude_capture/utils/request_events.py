"""Derive analytics events from inbound HTTP requests."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from starlette.requests import Request

from amplitude_capture.models.events import Event
from amplitude_capture.utils.user_agent import parse_user_agent


def now_millis() -> int:
    return int(time.time() * 1000)


def query_properties(request: Request) -> Dict[str, Any]:
    """Every query parameter as ``name -> [values...]`` (repeats kept)."""
    props: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        props.setdefault(key, []).append(value)
    return props


def event_from_request(request: Optional[Request], user_id: Optional[str], device_id: Optional[str]) -> Event:
    """Create an event named ``"<METHOD> <path>"`` from a request."""
    if request is None:
        raise ValueError("no request passed")

    headers = request.headers
    ua = parse_user_agent(headers.get("user-agent"))

    return Event(
        user_id=user_id or None,
        device_id=device_id or None,
        event_type=f"{request.method} {request.url.path}",
        # Proxy chains are passed through verbatim
        ip=headers.get("x-forwarded-for") or None,
        language=headers.get("accept-language") or None,
        time=now_millis(),
        event_properties=query_properties(request),
        os_name=ua.browser or None,
        os_version=ua.browser_version or None,
        device_manufacturer=ua.engine or None,
        device_model=ua.engine_version or None,
        platform=ua.platform or None,
    )

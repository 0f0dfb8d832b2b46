"""Best-effort user-agent parsing for request-derived events."""

from __future__ import annotations

import re
from dataclasses import dataclass

from user_agents import parse

_ENGINE_RE = re.compile(r"\b(AppleWebKit|Gecko|Trident|Presto|EdgeHTML|Blink)/([\w.]+)")
_COMMENT_RE = re.compile(r"\(([^;)]*)")

_UNKNOWN = "Other"


@dataclass(frozen=True)
class UserAgentInfo:
    browser: str = ""
    browser_version: str = ""
    engine: str = ""
    engine_version: str = ""
    platform: str = ""


def _platform(ua: str) -> str:
    match = _COMMENT_RE.search(ua)
    if not match:
        return ""
    platform = match.group(1).strip()
    if platform.startswith("Windows"):
        return "Windows"
    return platform


def parse_user_agent(ua: str | None) -> UserAgentInfo:
    """Parse a User-Agent header. Never raises; unknown parts are empty."""
    if not ua:
        return UserAgentInfo()

    parsed = parse(ua)
    browser = parsed.browser.family if parsed.browser.family != _UNKNOWN else ""
    browser_version = parsed.browser.version_string if browser else ""

    engine = engine_version = ""
    match = _ENGINE_RE.search(ua)
    if match:
        engine, engine_version = match.group(1), match.group(2)

    return UserAgentInfo(
        browser=browser,
        browser_version=browser_version,
        engine=engine,
        engine_version=engine_version,
        platform=_platform(ua),
    )

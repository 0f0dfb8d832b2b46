from __future__ import annotations

"""Pytest fixtures for amplitude-capture.

The remote Amplitude API is replaced with an `httpx.MockTransport` (see
`tests.amplitude_stub`) so every request is recorded in-process and never
touches the network.
"""

import os
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Runtime env for the library
# ---------------------------------------------------------------------------

os.environ.setdefault("LOG_LEVEL", "WARNING")

# Ensure project root on PYTHONPATH so `import amplitude_capture` works when
# pytest is run from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from amplitude_capture.client import AmplitudeClient  # noqa: E402
from amplitude_capture.middleware import MiddlewareConfig, SendMiddleware  # noqa: E402
from tests.amplitude_stub import SUCCESS_BODY, FakeAmplitude, make_client  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_api() -> FakeAmplitude:
    return FakeAmplitude(json_body=SUCCESS_BODY)


@pytest.fixture()
def client(fake_api: FakeAmplitude) -> AmplitudeClient:
    return make_client(fake_api)


@pytest.fixture()
def sender(client: AmplitudeClient) -> SendMiddleware:
    """Capture middleware tracking both user and device headers."""
    config = MiddlewareConfig(
        environment="test",
        app_version="v0",
        user_header="User-Id",
        device_header="Device-Id",
    )
    return client.send_middleware(config)

import asyncio
import json
import time

import httpx
import pytest
from pydantic import ValidationError

from amplitude_capture.client import AmplitudeClient
from amplitude_capture.errors import APIError
from amplitude_capture.models import BatchEventsSuccessSummary
from amplitude_capture.settings import DEFAULT_BASE_URL, DEFAULT_USER_AGENT
from tests.amplitude_stub import BASE_URL, SUCCESS_BODY, FakeAmplitude, make_client


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_defaults():
    c = AmplitudeClient("your-amplitude-key")
    assert c.base_url == httpx.URL(DEFAULT_BASE_URL)
    assert c.user_agent == DEFAULT_USER_AGENT
    assert c.events.client is c


def test_owned_http_client_has_no_transport_timeout():
    c = AmplitudeClient("")
    assert c._owns_http
    assert c._http.timeout == httpx.Timeout(None)


def test_request_body_without_api_key():
    assert AmplitudeClient("").new_request_body() == {}


def test_request_body_with_api_key():
    assert AmplitudeClient("12345").new_request_body() == {"api_key": "12345"}


def test_build_request_without_endpoint():
    req = AmplitudeClient("").build_request("GET")
    assert req.url == httpx.URL(DEFAULT_BASE_URL)
    assert req.headers["Accept"] == "application/json"
    assert req.headers["User-Agent"] == DEFAULT_USER_AGENT
    assert "Content-Type" not in req.headers


def test_build_request_with_endpoint():
    req = AmplitudeClient("").build_request("POST", "/endpoint")
    assert str(req.url) == DEFAULT_BASE_URL + "/endpoint"
    assert req.method == "POST"


def test_build_request_with_body():
    req = AmplitudeClient("").build_request("POST", "", {"key": "value"})
    assert json.loads(req.content) == {"key": "value"}
    assert req.headers["Content-Type"] == "application/json"


def test_build_request_keeps_non_ascii():
    req = AmplitudeClient("").build_request("POST", "", {"city": "Zürich"})
    assert "Zürich".encode("utf-8") in req.content


def test_build_request_rejects_unencodable_body():
    with pytest.raises(TypeError):
        AmplitudeClient("").build_request("POST", "", {"errors": object()})


# ---------------------------------------------------------------------------
# send()
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_without_request():
    with pytest.raises(ValueError, match="no request passed"):
        await AmplitudeClient("").send(None)


@pytest.mark.asyncio
async def test_send_expired_timeout_skips_network():
    api = FakeAmplitude(json_body=SUCCESS_BODY)
    c = make_client(api)

    with pytest.raises(asyncio.TimeoutError):
        await c.send(c.build_request("GET"), timeout=0)

    assert api.requests == []


@pytest.mark.asyncio
async def test_send_timeout_wins_over_transport_error():
    """A transport failure that lands after the deadline surfaces as a timeout."""

    def _slow_failure(request: httpx.Request) -> Exception:
        time.sleep(0.05)  # blocks the loop past the deadline
        return httpx.ConnectError("connection refused", request=request)

    c = make_client(FakeAmplitude(raises=_slow_failure))

    with pytest.raises(asyncio.TimeoutError):
        await c.send(c.build_request("GET"), timeout=0.01)


@pytest.mark.asyncio
async def test_send_propagates_transport_error():
    c = make_client(FakeAmplitude(raises=lambda r: httpx.ConnectError("connection refused", request=r)))

    with pytest.raises(httpx.ConnectError):
        await c.send(c.build_request("GET"), timeout=5)


@pytest.mark.asyncio
async def test_send_http_error():
    c = make_client(FakeAmplitude(400, json_body={"code": 400, "error": "bad request"}))

    with pytest.raises(APIError) as exc:
        await c.send(c.build_request("GET"))

    assert exc.value.status_code == 400
    assert exc.value.code == 400
    assert exc.value.message == "bad request"


@pytest.mark.asyncio
async def test_send_http_error_with_bad_body():
    c = make_client(FakeAmplitude(502, content=b"bad gateway"))

    with pytest.raises(json.JSONDecodeError):
        await c.send(c.build_request("GET"))


@pytest.mark.asyncio
async def test_send_bad_decode_value():
    c = make_client(FakeAmplitude(200, content=b"bad response"))

    with pytest.raises(ValidationError):
        await c.send(c.build_request("GET"), BatchEventsSuccessSummary)


@pytest.mark.asyncio
async def test_send_no_response_body():
    c = make_client(FakeAmplitude(200))
    assert await c.send(c.build_request("GET")) is None
    assert await c.send(c.build_request("GET"), BatchEventsSuccessSummary) == BatchEventsSuccessSummary()


@pytest.mark.asyncio
async def test_send_decodes_model(client, fake_api):
    summary = await client.send(client.build_request("GET", "/summary"), BatchEventsSuccessSummary)

    assert summary.events_ingested == 50
    assert str(fake_api.requests[0].url) == BASE_URL + "/summary"


@pytest.mark.asyncio
async def test_close_leaves_caller_client_open(fake_api):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_api))
    async with AmplitudeClient("", base_url=BASE_URL, http_client=http_client):
        pass
    assert not http_client.is_closed
    await http_client.aclose()

from http import HTTPStatus
from typing import Any

import httpx
import pytest

from src.models.location import Failed, Found, NotFound
from src.tracker.lookup_client import LookupClient
from tests.common import BadJsonResponse, MockResponse, make_failing_async_client, make_fake_async_client

RELAY_URL = "http://relay.test/iptracker"


def _client() -> LookupClient:
    return LookupClient(RELAY_URL, timeout_seconds=1.0)


@pytest.mark.asyncio
async def test_found_response_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, str, Any]] = []
    payload = {
        "ip": "203.0.113.5",
        "latitude": 40.7,
        "longitude": -74.0,
        "city": "New York",
        "region": "New York",
        "country_name": "United States",
        "type": "ipv4",
        "continent_name": "North America",
    }
    monkeypatch.setattr(
        httpx, "AsyncClient", make_fake_async_client(MockResponse(HTTPStatus.OK, payload), calls)
    )

    outcome = await _client().lookup("")

    assert isinstance(outcome, Found)
    record = outcome.record
    assert record.ip == "203.0.113.5"
    assert record.city == "New York"
    assert record.country_name == "United States"
    assert record.connection_type == "ipv4"
    assert record.coordinate == (-74.0, 40.7)
    assert record.timezone_id is None
    assert calls == [("POST", RELAY_URL, {"sentIp": ""})]


@pytest.mark.asyncio
async def test_query_is_sent_verbatim(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, str, Any]] = []
    response = MockResponse(HTTPStatus.OK, {"ip": "x", "latitude": 1, "longitude": 2})
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response, calls))

    await _client().lookup("  example.com ")

    assert calls[0][2] == {"sentIp": "  example.com "}


@pytest.mark.asyncio
async def test_not_found_detail_is_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    response = MockResponse(HTTPStatus.NOT_FOUND, {"detail": "Not Found"})
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    assert await _client().lookup("not-a-real-host") == NotFound()


@pytest.mark.asyncio
async def test_not_found_detail_wins_over_http_200(monkeypatch: pytest.MonkeyPatch) -> None:
    response = MockResponse(HTTPStatus.OK, {"detail": "Not Found"})
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    assert isinstance(await _client().lookup("nope"), NotFound)


@pytest.mark.asyncio
async def test_error_field_is_failed(monkeypatch: pytest.MonkeyPatch) -> None:
    response = MockResponse(HTTPStatus.BAD_GATEWAY, {"error": "Upstream failure"})
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    assert await _client().lookup("8.8.8.8") == Failed(reason="Upstream failure")


@pytest.mark.asyncio
async def test_timeout_is_failed_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(httpx, "AsyncClient", make_failing_async_client(RELAY_URL, httpx.ReadTimeout))

    assert await _client().lookup("8.8.8.8") == Failed(reason="timeout")


@pytest.mark.asyncio
async def test_network_failure_is_failed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(httpx, "AsyncClient", make_failing_async_client(RELAY_URL))

    outcome = await _client().lookup("8.8.8.8")

    assert isinstance(outcome, Failed)
    assert "ConnectError" in outcome.reason


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        BadJsonResponse(HTTPStatus.INTERNAL_SERVER_ERROR),
        MockResponse(HTTPStatus.OK, ["not", "an", "object"]),
        MockResponse(HTTPStatus.OK, {"ip": "8.8.8.8"}),
        MockResponse(HTTPStatus.OK, {"ip": "8.8.8.8", "latitude": 1.0}),
        MockResponse(HTTPStatus.OK, {"ip": "8.8.8.8", "latitude": "north", "longitude": 2.0}),
    ],
)
async def test_malformed_responses_are_failed(monkeypatch: pytest.MonkeyPatch, response: MockResponse) -> None:
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    assert isinstance(await _client().lookup("8.8.8.8"), Failed)

from collections.abc import Callable
from typing import Any

import httpx


class MockResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = {} if payload is None else payload
        self.text = text

    def json(self) -> Any:
        return self._payload


class BadJsonResponse(MockResponse):
    def json(self) -> Any:
        raise ValueError("not json")


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient.

    Every request is appended to `calls` as (method, url, params_or_json) so
    tests can assert on what was sent.
    """

    def __init__(self, response: MockResponse, calls: list[tuple[str, str, Any]] | None = None) -> None:
        self._response = response
        self.calls = calls if calls is not None else []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        self.calls.append(("GET", url, params))
        return self._response

    async def post(self, url: str, json: Any = None) -> MockResponse:
        self.calls.append(("POST", url, json))
        return self._response


class FailingAsyncClient:
    """Async client whose requests raise an httpx transport error.

    `exc_type` selects the error, e.g. httpx.ConnectError or httpx.ReadTimeout.
    """

    def __init__(self, url: str, exc_type: type[httpx.RequestError] = httpx.ConnectError) -> None:
        self._url = url
        self._exc_type = exc_type

    async def __aenter__(self) -> "FailingAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    def _raise(self, method: str) -> MockResponse:
        request = httpx.Request(method, self._url)
        raise self._exc_type("Network failure", request=request)

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        return self._raise("GET")

    async def post(self, url: str, json: Any = None) -> MockResponse:
        return self._raise("POST")


def make_fake_async_client(
    response: MockResponse,
    calls: list[tuple[str, str, Any]] | None = None,
) -> Callable[..., MockAsyncClient]:
    """Factory for a fake httpx.AsyncClient returning a fixed response.

    This avoids repeating the same stub definition in every test.
    """

    def _fake_client(*args: Any, **kwargs: Any) -> MockAsyncClient:
        return MockAsyncClient(response, calls)

    return _fake_client


def make_failing_async_client(
    url: str,
    exc_type: type[httpx.RequestError] = httpx.ConnectError,
) -> Callable[..., FailingAsyncClient]:
    def _fake_client(*args: Any, **kwargs: Any) -> FailingAsyncClient:
        return FailingAsyncClient(url, exc_type)

    return _fake_client

from typing import Any

import httpx
from pydantic import ValidationError

from src.logger import logger
from src.models.location import Failed, Found, LocationRecord, LookupOutcome, NotFound


class LookupClient:
    """Client for the relay's lookup endpoint.

    `lookup` never raises: transport, decoding and relay errors all come back as
    `Failed`, and the relay's not-found answer comes back as `NotFound`. The
    HTTP status is informational only; the body decides the outcome.
    """

    def __init__(self, relay_url: str, timeout_seconds: float = 10.0) -> None:
        self._relay_url = relay_url
        self._timeout_seconds = timeout_seconds

    async def lookup(self, query: str) -> LookupOutcome:
        """Resolve `query` (empty string = the caller's own address) through the relay."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.post(self._relay_url, json={"sentIp": query})
        except httpx.TimeoutException:
            return Failed(reason="timeout")
        except httpx.RequestError as exc:
            return Failed(reason=f"relay request failed: {type(exc).__name__}")

        try:
            data = response.json()
        except ValueError:
            return Failed(reason=f"relay returned non-JSON body (HTTP {response.status_code})")

        return self._interpret(data)

    @staticmethod
    def _interpret(data: Any) -> LookupOutcome:
        if not isinstance(data, dict):
            return Failed(reason="relay response is not a JSON object")

        detail = data.get("detail")
        if isinstance(detail, str) and detail.strip().lower() == "not found":
            return NotFound()

        if "error" in data:
            return Failed(reason=str(data["error"]) or "relay reported an error")

        if data.get("latitude") is None or data.get("longitude") is None:
            return Failed(reason="response missing coordinates")

        try:
            record = LocationRecord(
                ip=str(data.get("ip") or ""),
                city=data.get("city"),
                region=data.get("region"),
                country_name=data.get("country_name"),
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
                connection_type=data.get("type"),
            )
            return Found(record=record)
        except ValidationError as exc:
            logger.debug(f"Relay payload rejected by LocationRecord: {exc.errors()}")
            return Failed(reason="relay response has malformed fields")

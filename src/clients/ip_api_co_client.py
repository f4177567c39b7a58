from http import HTTPStatus
from typing import Any
from urllib.parse import quote

import httpx

from src.clients.base import BaseIPLookupClient
from src.errors import InvalidIpError, IpNotFoundError, ReservedIpError, UpstreamServiceError
from src.models.common import IPGeolocationData

# ipapi.co keys that are renamed into the normalized shape; everything else passes through.
_RENAMED_KEYS = {"version", "country", "postal", "error", "reason", "reserved"}


class IpApiCo(BaseIPLookupClient):
    """Client for the https://ipapi.co/ IP geolocation API.

    Unlike ipstack, ipapi.co only accepts IP addresses; hostnames are rejected
    by the provider as invalid and surface as not found through the relay.
    """

    def __init__(self, base_url: str = "https://ipapi.co", timeout_seconds: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def lookup_ip(self, ip: str) -> IPGeolocationData:
        """Look up geolocation information for an explicit IP address."""
        url = f"{self._base_url}/{quote(ip, safe='')}/json/"
        return await self._request(url)

    async def lookup_client_ip(self) -> IPGeolocationData:
        """Look up geolocation information for the calling address."""
        url = f"{self._base_url}/json/"
        return await self._request(url)

    async def _request(self, url: str) -> IPGeolocationData:
        """Perform the HTTP request and normalize the response.

        The ipapi.co API returns a JSON payload that may contain an "error" flag
        even when using HTTP 200. We normalize that into typed exceptions and
        a stable response shape, following the documented error semantics:
        https://ipapi.co/api/#specific-location-field6
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Request to IP provider failed: {repr(exc)}") from exc

        self._handle_http_errors(response)

        data = self._parse_json(response)
        self._handle_provider_error(data)

        return self._normalize_payload(data)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Map HTTP status codes from the provider to domain-specific errors."""
        status_code = response.status_code

        if status_code == HTTPStatus.NOT_FOUND:
            raise IpNotFoundError("No geolocation information found for this IP address.")

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            raise UpstreamServiceError("IP provider rate limit or quota exceeded (HTTP 429).")

        if status_code == HTTPStatus.FORBIDDEN:
            raise UpstreamServiceError("Authentication with IP provider failed (HTTP 403).")

        if status_code >= HTTPStatus.BAD_REQUEST:
            # Remaining 4xx and every 5xx are upstream failures from our point of view.
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """Normalize ipapi.co error payloads into domain exceptions.

        Examples:
            { "error": true, "reason": "Invalid IP Address", "ip": "..." }
            { "error": true, "reason": "Reserved IP Address", "ip": "127.0.0.1", "reserved": true }
            { "error": true, "reason": "RateLimited", "message": "..." }
        """
        if not data.get("error"):
            return

        reason = str(data.get("reason") or data.get("message") or "Unknown error from ipapi.co")
        lower_reason = reason.lower()

        if data.get("reserved") is True or "reserved" in lower_reason:
            raise ReservedIpError(reason)

        if "invalid" in lower_reason:
            raise InvalidIpError(reason)

        if "ratelimited" in lower_reason or "quota" in lower_reason:
            raise UpstreamServiceError(f"IP provider rate limit or quota exceeded: {reason}")

        raise UpstreamServiceError(reason)

    @staticmethod
    def _parse_json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(f"Failed to decode IP provider response as JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamServiceError("IP provider response is not a JSON object.")
        return data

    @staticmethod
    def _normalize_payload(data: dict[str, Any]) -> IPGeolocationData:
        """Map ipapi.co's response into our normalized schema.

        ipapi.co reports the address family as "IPv4"/"IPv6" in `version`; it
        becomes `type` in the lower-case form ipstack uses.
        """
        version = data.get("version")
        passthrough = {key: value for key, value in data.items() if key not in _RENAMED_KEYS}
        result = IPGeolocationData.model_validate(
            {
                **passthrough,
                "ip": str(data.get("ip") or ""),
                "type": str(version).lower() if version else None,
                "country_code": data.get("country"),
                "zip": data.get("postal"),
            }
        )

        if not result.has_coordinates:
            raise IpNotFoundError("No geolocation information found for this IP address.")
        return result

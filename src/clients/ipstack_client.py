from http import HTTPStatus
from typing import Any
from urllib.parse import quote

import httpx

from src.clients.base import BaseIPLookupClient
from src.errors import InvalidIpError, IpNotFoundError, ReservedIpError, UpstreamServiceError
from src.models.common import IPGeolocationData

# https://ipstack.com/documentation#errors
_NOT_FOUND_CODES = {404}
_INVALID_IP_CODES = {106}


class IpStack(BaseIPLookupClient):
    """Client for the http://api.ipstack.com standard lookup API.

    ipstack resolves both IP addresses and hostnames. The response already uses
    snake_case keys close to our normalized shape, so every field it returns is
    passed through and only `region_name` is renamed.
    """

    def __init__(
        self,
        access_key: str,
        base_url: str = "http://api.ipstack.com",
        timeout_seconds: float = 5.0,
    ) -> None:
        self._access_key = access_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def lookup_ip(self, ip: str) -> IPGeolocationData:
        """Look up geolocation information for an explicit IP address or hostname."""
        url = f"{self._base_url}/{quote(ip, safe='')}"
        return await self._request(url)

    async def lookup_client_ip(self) -> IPGeolocationData:
        """Look up the requester's own address via the /check endpoint."""
        url = f"{self._base_url}/check"
        return await self._request(url)

    async def _request(self, url: str) -> IPGeolocationData:
        """Perform the HTTP request and normalize the response.

        ipstack answers HTTP 200 for most failures and reports them in the body
        as {"success": false, "error": {"code": ..., "type": ..., "info": ...}}.
        """
        if not self._access_key:
            raise UpstreamServiceError("ipstack access key is not configured.")

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params={"access_key": self._access_key})
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
            raise IpNotFoundError("No geolocation information found for this query.")

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            raise UpstreamServiceError("IP provider rate limit or quota exceeded (HTTP 429).")

        if status_code >= HTTPStatus.BAD_REQUEST:
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """Normalize ipstack error payloads into domain exceptions.

        Examples:
            {"success": false, "error": {"code": 101, "type": "invalid_access_key"}}
            {"success": false, "error": {"code": 104, "type": "usage_limit_reached"}}
            {"success": false, "error": {"code": 106, "type": "invalid_ip_address"}}
        """
        if data.get("success") is not False and "error" not in data:
            return

        error = data.get("error")
        if not isinstance(error, dict):
            raise UpstreamServiceError(str(error or "Unknown error from ipstack"))

        code = error.get("code")
        error_type = str(error.get("type") or "")
        info = str(error.get("info") or error_type or "Unknown error from ipstack")

        if code in _NOT_FOUND_CODES or "not_found" in error_type:
            raise IpNotFoundError(info)

        if code in _INVALID_IP_CODES or error_type == "invalid_ip_address":
            raise InvalidIpError(info)

        if "limit" in error_type:
            raise UpstreamServiceError(f"IP provider rate limit or quota exceeded: {info}")

        raise UpstreamServiceError(f"ipstack error {code}: {info}")

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
        """Map ipstack's response into our normalized schema.

        Reserved ranges come back as a "successful" record with a null type and
        null coordinates; both that and any other coordinate-less record are
        reported as not found.
        """
        passthrough = {key: value for key, value in data.items() if key != "region_name"}
        result = IPGeolocationData.model_validate(
            {
                **passthrough,
                "ip": str(data.get("ip") or ""),
                "region": data.get("region_name"),
            }
        )

        if not result.has_coordinates:
            if data.get("type") is None:
                raise ReservedIpError(f"No public geolocation for {result.ip or 'this query'}.")
            raise IpNotFoundError("No geolocation information found for this query.")
        return result

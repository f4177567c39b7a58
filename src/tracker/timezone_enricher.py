from http import HTTPStatus
from typing import Any

import httpx

from src.logger import logger


class TimezoneEnricher:
    """Resolves a timezone identifier for a coordinate via the Mapbox Tilequery API.

    The tileset (by default Mapbox's public `examples.4ze9z6tv` timezone
    polygons) carries the IANA name in the `TZID` property of each feature.
    Enrichment is optional data: every failure is logged and returns None.
    """

    def __init__(
        self,
        access_token: str,
        tileset: str = "examples.4ze9z6tv",
        base_url: str = "https://api.mapbox.com",
        timeout_seconds: float = 5.0,
    ) -> None:
        self._access_token = access_token
        self._tileset = tileset
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def enrich(self, longitude: float, latitude: float) -> str | None:
        if not self._access_token:
            logger.debug("Skipping timezone enrichment: no Mapbox access token configured")
            return None

        url = f"{self._base_url}/v4/{self._tileset}/tilequery/{longitude},{latitude}.json"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params={"access_token": self._access_token})
        except httpx.RequestError as exc:
            logger.warning(f"Timezone enrichment request failed lon={longitude} lat={latitude}: {repr(exc)}")
            return None

        if response.status_code != HTTPStatus.OK:
            logger.warning(f"Timezone enrichment returned HTTP {response.status_code} lon={longitude} lat={latitude}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Timezone enrichment returned a non-JSON body")
            return None

        return self._first_tzid(data)

    @staticmethod
    def _first_tzid(data: Any) -> str | None:
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list) or not features:
            return None

        first: Any = features[0]
        properties = first.get("properties") if isinstance(first, dict) else None
        if not isinstance(properties, dict):
            return None

        tzid = properties.get("TZID")
        return str(tzid) if tzid else None

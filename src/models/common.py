from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class IPGeolocationData(BaseModel):
    """Normalized geolocation data returned by an upstream IP provider.

    The relay answers with this shape. Known fields are normalized across
    providers; any other provider field is kept as an extra and passed through
    verbatim to the caller.
    """

    model_config = ConfigDict(extra="allow")

    ip: str
    type: str | None = None
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None
    city: str | None = None
    zip: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float | None:
        """Allow latitude/longitude to be provided as strings, numbers, or null.

        Providers may return these fields as strings; this validator normalizes them
        into floats while gracefully handling missing or invalid values.
        """
        if value is None:
            return None
        try:
            # For general GPS and mapping, 5-6 decimal places (e.g., 34.052235)
            return round(float(value), 6)
        except (TypeError, ValueError):
            return None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

from enum import Enum
from typing import Annotated, Any, Literal, NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RequestToken = int


class LngLat(NamedTuple):
    """Map coordinate in (longitude, latitude) order, as map surfaces expect it."""

    longitude: float
    latitude: float


class LocationRecord(BaseModel):
    """Normalized, immutable result of a successful lookup.

    `timezone_id` is only ever filled in by timezone enrichment; `None` means
    the timezone is unknown.
    """

    model_config = ConfigDict(frozen=True)

    ip: str
    city: str | None = None
    region: str | None = None
    country_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    connection_type: str | None = None
    timezone_id: str | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float | None:
        if value is None:
            return None
        try:
            return round(float(value), 6)
        except (TypeError, ValueError):
            return None

    @model_validator(mode="after")
    def _check_coordinate_pair(self) -> Self:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be both present or both absent")
        return self

    @property
    def coordinate(self) -> LngLat | None:
        if self.latitude is None or self.longitude is None:
            return None
        return LngLat(self.longitude, self.latitude)

    def with_timezone(self, timezone_id: str | None) -> "LocationRecord":
        """Return a copy carrying the given timezone; the original is left as is."""
        return self.model_copy(update={"timezone_id": timezone_id})


class Found(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["found"] = "found"
    record: LocationRecord

    @field_validator("record")
    @classmethod
    def _require_coordinates(cls, record: LocationRecord) -> LocationRecord:
        if record.coordinate is None:
            raise ValueError("a found record must carry coordinates")
        return record


class NotFound(BaseModel):
    """The provider understood the query but holds no record for it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["not_found"] = "not_found"


class Failed(BaseModel):
    """The lookup request itself could not be completed.

    `reason` is a short diagnostic for logs; it is never shown to the user.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str


LookupOutcome = Annotated[Found | NotFound | Failed, Field(discriminator="kind")]


class Phase(str, Enum):
    """Presentation phases of the tracker."""

    idle = "idle"
    loading = "loading"
    ready = "ready"
    not_found = "not_found"
    failed = "failed"


class PresentationState(BaseModel):
    """Snapshot the UI renders from.

    Instances are frozen; every transition builds a new one so a reader never
    observes a half-applied update.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.idle
    record: LocationRecord | None = None
    # Opaque handle returned by MapSurface.place_marker.
    active_marker: Any = None
    current_token: RequestToken = 0
    notice: str | None = None

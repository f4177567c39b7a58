import pytest
from pydantic import TypeAdapter, ValidationError

from src.models.location import (
    Failed,
    Found,
    LngLat,
    LocationRecord,
    LookupOutcome,
    NotFound,
    Phase,
    PresentationState,
)


def test_record_coerces_string_coordinates() -> None:
    record = LocationRecord(ip="8.8.8.8", latitude="37.3860001", longitude="-122.0838")

    assert record.latitude == pytest.approx(37.386)
    assert record.coordinate == LngLat(longitude=-122.0838, latitude=37.386)


def test_record_without_coordinates_has_no_coordinate() -> None:
    assert LocationRecord(ip="8.8.8.8").coordinate is None


def test_record_rejects_half_a_coordinate() -> None:
    with pytest.raises(ValidationError):
        LocationRecord(ip="8.8.8.8", latitude=1.0)


def test_record_is_frozen() -> None:
    record = LocationRecord(ip="8.8.8.8", latitude=1.0, longitude=2.0)

    with pytest.raises(ValidationError):
        record.city = "Elsewhere"


def test_with_timezone_returns_new_record() -> None:
    record = LocationRecord(ip="8.8.8.8", latitude=1.0, longitude=2.0)

    enriched = record.with_timezone("Europe/Berlin")

    assert enriched.timezone_id == "Europe/Berlin"
    assert record.timezone_id is None
    assert enriched is not record


def test_found_requires_coordinates() -> None:
    with pytest.raises(ValidationError):
        Found(record=LocationRecord(ip="8.8.8.8"))


def test_outcome_is_discriminated_by_kind() -> None:
    adapter = TypeAdapter(LookupOutcome)

    assert adapter.validate_python({"kind": "not_found"}) == NotFound()
    assert adapter.validate_python({"kind": "failed", "reason": "timeout"}) == Failed(reason="timeout")
    found = adapter.validate_python({"kind": "found", "record": {"ip": "1.1.1.1", "latitude": 1, "longitude": 2}})
    assert isinstance(found, Found)


def test_initial_presentation_state() -> None:
    state = PresentationState()

    assert state.phase is Phase.idle
    assert state.record is None
    assert state.active_marker is None
    assert state.current_token == 0

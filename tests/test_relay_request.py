import pytest
from pydantic import ValidationError

from src.models.request_models import RelayLookupRequest


def test_sent_ip_is_kept_verbatim() -> None:
    """Hostnames and whitespace are not validated or trimmed; the provider decides."""
    assert RelayLookupRequest.model_validate_json('{"sentIp": "example.com"}').sent_ip == "example.com"
    assert RelayLookupRequest.model_validate_json('{"sentIp": "  "}').sent_ip == "  "


def test_empty_or_missing_sent_ip_is_self_lookup() -> None:
    assert RelayLookupRequest.model_validate_json('{"sentIp": ""}').is_self_lookup
    assert RelayLookupRequest.model_validate_json("{}").is_self_lookup
    assert not RelayLookupRequest.model_validate_json('{"sentIp": " "}').is_self_lookup


@pytest.mark.parametrize("raw", ['{"sentIp": null}', '{"sentIp": 8}', "[]", "not json"])
def test_unreadable_bodies_are_rejected(raw: str) -> None:
    with pytest.raises(ValidationError):
        RelayLookupRequest.model_validate_json(raw)

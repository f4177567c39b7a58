import os
from functools import lru_cache

from pydantic import BaseModel, Field

from src.models.request_models import Provider


class Settings(BaseModel):
    """Runtime configuration for the relay and the tracker shell.

    Values are read from environment variables by `get_settings()`; the defaults
    target a relay running locally via `run_app.py`.
    """

    lookup_provider: Provider = Provider.ipstack
    ipstack_access_key: str = ""
    provider_timeout_seconds: float = Field(default=5.0, gt=0)

    relay_url: str = "http://127.0.0.1:8000/iptracker"
    relay_timeout_seconds: float = Field(default=10.0, gt=0)

    mapbox_access_token: str = ""
    mapbox_tileset: str = "examples.4ze9z6tv"
    enrichment_timeout_seconds: float = Field(default=5.0, gt=0)


_ENV_VARS = {
    "lookup_provider": "LOOKUP_PROVIDER",
    "ipstack_access_key": "IPSTACK_ACCESS_KEY",
    "provider_timeout_seconds": "PROVIDER_TIMEOUT_SECONDS",
    "relay_url": "RELAY_URL",
    "relay_timeout_seconds": "RELAY_TIMEOUT_SECONDS",
    "mapbox_access_token": "MAPBOX_ACCESS_TOKEN",
    "mapbox_tileset": "MAPBOX_TILESET",
    "enrichment_timeout_seconds": "ENRICHMENT_TIMEOUT_SECONDS",
}


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from the given mapping (defaults to `os.environ`).

    Unset variables fall back to the model defaults; malformed values raise a
    pydantic `ValidationError`.
    """
    env = os.environ if environ is None else environ
    values = {field: env[var] for field, var in _ENV_VARS.items() if env.get(var)}
    return Settings.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    """Dependency returning the process-wide settings."""
    return load_settings()

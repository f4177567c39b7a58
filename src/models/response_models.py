from pydantic import BaseModel

from src.models.common import IPGeolocationData


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class IPLookupResponse(IPGeolocationData):
    """Response model for a successful relay lookup (provider extras included)."""


class ErrorResponse(BaseModel):
    """Body of every relay error other than not-found."""

    error: str

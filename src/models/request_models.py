from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Supported upstream IP geolocation providers."""

    ipstack = "ipstack"
    ipapi_co = "ipapi.co"


class RelayLookupRequest(BaseModel):
    """JSON body accepted by the relay's lookup endpoint.

    `sentIp` is forwarded to the provider untouched: no trimming and no IP
    syntax check, since hostnames are valid queries and the provider decides
    what it can resolve. An empty string (or a missing field) asks the relay to
    resolve the caller's own address from the connection.
    """

    model_config = ConfigDict(populate_by_name=True)

    sent_ip: str = Field(
        default="",
        alias="sentIp",
        description="IP address or hostname to look up. Empty means the caller's own address.",
        examples=["8.8.8.8", "example.com", ""],
    )

    @property
    def is_self_lookup(self) -> bool:
        return self.sent_ip == ""

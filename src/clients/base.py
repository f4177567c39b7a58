from abc import ABC, abstractmethod

from src.models.common import IPGeolocationData


class BaseIPLookupClient(ABC):
    """Abstract base for the upstream providers the relay forwards lookups to.

    Implementations map provider-specific payloads into `IPGeolocationData`
    and provider-specific failures into the exceptions in `src.errors`. A
    returned record always carries both coordinates; a record without them is
    reported as `IpNotFoundError`.
    """

    @abstractmethod
    async def lookup_ip(self, ip: str) -> IPGeolocationData:
        """Look up geolocation information for an explicit IP address or hostname."""
        raise NotImplementedError

    @abstractmethod
    async def lookup_client_ip(self) -> IPGeolocationData:
        """Look up geolocation information for the address the provider sees us calling from."""
        raise NotImplementedError

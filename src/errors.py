class AppError(Exception):
    """Base application error for the IP tracker relay."""


class IpProviderError(AppError):
    """Base error for upstream IP geolocation provider failures."""


class InvalidIpError(IpProviderError):
    """Raised when the provider rejects the query as an invalid IP address or hostname."""


class ReservedIpError(IpProviderError):
    """Raised when the query resolves to a reserved/private address (e.g. 127.0.0.1, 192.168.x.x)."""


class IpNotFoundError(IpProviderError):
    """Raised when the provider has no geolocation record for the query."""


class UpstreamServiceError(IpProviderError):
    """Raised when the upstream provider cannot be reached or answers with an error."""

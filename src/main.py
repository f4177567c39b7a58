from collections.abc import Callable
from ipaddress import ip_address
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.clients.base import BaseIPLookupClient
from src.clients.ip_api_co_client import IpApiCo
from src.clients.ipstack_client import IpStack
from src.config import Settings, get_settings
from src.cors import permissive_cors_middleware
from src.errors import InvalidIpError, IpNotFoundError, ReservedIpError, UpstreamServiceError
from src.exception_handlers import (
    pydantic_validation_exception_handler,
    unhandled_exception_handler,
)
from src.logger import logger
from src.models.common import IPGeolocationData
from src.models.request_models import Provider, RelayLookupRequest
from src.models.response_models import ErrorResponse, HealthResponse, IPLookupResponse

app = FastAPI(
    title="IP Tracker Relay",
    version="0.1.0",
    description="Relays IP/hostname geolocation lookups from the tracker to an upstream provider.",
)
logger.info("Started IP Tracker Relay")


class IpLookupProviderFactory:
    """Factory for upstream provider clients.

    Given a Provider enum, returns a concrete client configured from settings.
    """

    PROVIDERS_MAP: dict[Provider, Callable[[Settings], BaseIPLookupClient]] = {
        Provider.ipstack: lambda s: IpStack(
            access_key=s.ipstack_access_key,
            timeout_seconds=s.provider_timeout_seconds,
        ),
        Provider.ipapi_co: lambda s: IpApiCo(timeout_seconds=s.provider_timeout_seconds),
    }

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def __call__(self, provider: Provider) -> BaseIPLookupClient:
        build_client = self.PROVIDERS_MAP[provider]
        return build_client(self._settings)


def get_ip_lookup_provider_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> IpLookupProviderFactory:
    """Dependency to provide an IpLookupProviderFactory instance."""
    return IpLookupProviderFactory(settings)


def resolve_client_address(request: Request) -> str | None:
    """Derive the caller's public address from connection metadata.

    The first X-Forwarded-For entry wins. Otherwise the socket peer is used, but
    only when it is a public address; a loopback or private peer (local
    development, test clients) yields None so the provider detects the address
    itself.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    client_host = request.client.host if request.client else None
    if not client_host:
        return None
    try:
        peer = ip_address(client_host)
    except ValueError:
        return None
    return client_host if peer.is_global else None


app.middleware("http")(permissive_cors_middleware)

# Register global exception handlers using the shared handlers module.
app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.post(
    "/iptracker",
    response_model=IPLookupResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    tags=["ip"],
    summary="Look up geolocation information for an IP address or hostname.",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"description": 'Body is {"detail": "Not Found"}.'},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    },
)
async def iptracker(
    request: Request,
    provider_factory: Annotated[IpLookupProviderFactory, Depends(get_ip_lookup_provider_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IPLookupResponse | JSONResponse:
    """Look up geolocation information for the query in the JSON body.

    - A non-empty `sentIp` is forwarded to the provider as is.
    - An empty `sentIp` resolves the caller's own address (see `resolve_client_address`).
    - Invalid, reserved and unknown queries all answer 404 `{"detail": "Not Found"}`:
      the provider understood the query and has no record to show for it.
    """
    body = RelayLookupRequest.model_validate_json(await request.body())
    provider = settings.lookup_provider
    ip_lookup_client = provider_factory(provider)
    ip = body.sent_ip if not body.is_self_lookup else resolve_client_address(request)

    try:
        if ip:
            logger.info(
                "Performing relay lookup "
                f"path={request.url.path} ip={ip} self_lookup={body.is_self_lookup} provider={provider.value}"
            )
            data: IPGeolocationData = await ip_lookup_client.lookup_ip(ip)
        else:
            logger.info(
                "Performing provider-detected client lookup "
                f"path={request.url.path} client_ip={request.client.host if request.client else None} "
                f"provider={provider.value}"
            )
            data = await ip_lookup_client.lookup_client_ip()
    except (InvalidIpError, ReservedIpError, IpNotFoundError) as exc:
        logger.info(
            f"No geolocation record path={request.url.path} ip={ip} provider={provider.value} "
            f"reason={type(exc).__name__}: {exc}"
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND) from exc
    except UpstreamServiceError as exc:
        logger.exception(
            f"Upstream IP provider error during lookup path={request.url.path} ip={ip} provider={provider.value}"
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=ErrorResponse(error=str(exc)).model_dump(),
        )

    return IPLookupResponse.model_validate(data.model_dump())

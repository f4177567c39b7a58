from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.cors import CORS_HEADERS
from src.logger import logger


def _summarize_pydantic_errors(errors: list[dict[str, Any]]) -> str:
    """Collapse pydantic errors into one short line for the log."""
    parts = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", ())) or "body"
        parts.append(f"{loc}: {error.get('msg')}")
    return "; ".join(parts)


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle an unreadable lookup body (bad JSON or a non-string `sentIp`).

    Validation details stay in the log; the caller only gets a stable message.
    """
    logger.info(
        "Rejected relay request body "
        f"path={request.url.path} method={request.method} errors={_summarize_pydantic_errors(exc.errors())}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Request body must be a JSON object with a string `sentIp` field."},
        headers=CORS_HEADERS,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response.

    This handler runs outside the HTTP middleware stack, so CORS headers are
    attached here explicitly.
    """
    logger.exception(
        f"Unhandled exception while processing request: {repr(exc)} path={request.url.path} method={request.method}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred while processing the request."},
        headers=CORS_HEADERS,
    )

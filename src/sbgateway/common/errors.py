"""Shared error types and the JSON error envelope."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse


def error_response(message: str, status_code: int) -> JSONResponse:
    """Build the `{statusCode, message}` error body with a matching status."""
    return JSONResponse(
        {
            "statusCode": status_code,
            "message": message,
        },
        status_code=status_code,
    )


class GatewayError(Exception):
    """Error surfaced to the caller as a JSON error response."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> JSONResponse:
        return error_response(self.message, self.status_code)


class RequestValidationError(GatewayError):
    """Inbound payload failed schema validation."""

    status_code = 400


class MissingParameterError(GatewayError):
    """A required path parameter is absent or blank."""

    status_code = 400


class UpstreamTransportError(GatewayError):
    """No response could be obtained from the ShopBack API."""

    status_code = 500

    def __init__(self, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


async def gateway_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Starlette exception handler for GatewayError."""
    if not isinstance(exc, GatewayError):
        raise exc
    return exc.to_response()

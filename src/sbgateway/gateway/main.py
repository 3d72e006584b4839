"""Gateway HTTP server - forwards POS order requests to ShopBack."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from pydantic import BaseModel
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from sbgateway.common.errors import (
    GatewayError,
    MissingParameterError,
    gateway_error_handler,
)
from sbgateway.common.hmac import format_date
from sbgateway.common.http import RequestIdMiddleware
from sbgateway.common.logging import get_logger, setup_logging
from sbgateway.common.metrics import MetricsMiddleware, metrics_endpoint
from sbgateway.common.settings import Settings, get_settings
from sbgateway.common.tracing import setup_tracing
from sbgateway.gateway.schemas import (
    CancelRequest,
    CreateOrderRequest,
    RefundRequest,
    ScanQrRequest,
    validate_payload,
)
from sbgateway.gateway.shopback_client import ShopBackClient, UpstreamResponse

logger = get_logger(__name__)


def relay(upstream: UpstreamResponse) -> Response:
    """Return the upstream status and body to the caller unchanged."""
    if upstream.is_json:
        return JSONResponse(upstream.body, status_code=upstream.status)
    return Response(
        upstream.text,
        status_code=upstream.status,
        media_type=upstream.content_type or None,
    )


class GatewayServer:
    """HTTP handlers for the ShopBack order endpoints."""

    def __init__(self, settings: Settings, client: ShopBackClient | None = None):
        """Initialize server."""
        self._settings = settings
        self._client = client or ShopBackClient(settings)

    @property
    def client(self) -> ShopBackClient:
        return self._client

    async def startup(self) -> None:
        """Initialize components."""
        if not self._settings.shopback_access_key:
            logger.warning("ShopBack access key is not configured")
        if self._settings.log_signing_material and self._settings.log_level != "DEBUG":
            logger.warning(
                "Signing material is logged at DEBUG and will not appear",
                configured_level=self._settings.log_level,
            )
        logger.info("Gateway ready", base_url=self._client.base_url)

    async def shutdown(self) -> None:
        """Clean up resources."""
        await self._client.close()

    async def _read_payload(self, request: Request, model: type[BaseModel]) -> dict[str, Any]:
        # A request without a body carries no parameters
        if not await request.body():
            return validate_payload(model, {})
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None
        return validate_payload(model, payload)

    def _reference_id(self, request: Request) -> str:
        reference_id = request.path_params.get("referenceId", "")
        if not reference_id.strip():
            raise MissingParameterError("Reference ID is required")
        return reference_id

    # === HTTP Handlers ===

    async def handle_create_order(self, request: Request) -> Response:
        """POST /shopback/orders/create"""
        payload = await self._read_payload(request, CreateOrderRequest)
        return relay(await self._client.create_order(payload))

    async def handle_scan_qr(self, request: Request) -> Response:
        """POST /shopback/orders/scan"""
        payload = await self._read_payload(request, ScanQrRequest)
        return relay(await self._client.scan_qr(payload))

    async def handle_get_order(self, request: Request) -> Response:
        """GET /shopback/orders/{referenceId}"""
        reference_id = self._reference_id(request)
        return relay(await self._client.get_order_status(reference_id))

    async def handle_refund_order(self, request: Request) -> Response:
        """POST /shopback/orders/{referenceId}/refund"""
        reference_id = self._reference_id(request)
        payload = await self._read_payload(request, RefundRequest)
        return relay(await self._client.refund_order(reference_id, payload))

    async def handle_cancel_order(self, request: Request) -> Response:
        """POST /shopback/orders/{referenceId}/cancel"""
        reference_id = self._reference_id(request)
        payload = await self._read_payload(request, CancelRequest)
        return relay(await self._client.cancel_order(reference_id, payload))

    async def handle_health(self, _request: Request) -> JSONResponse:
        """Health check."""
        return JSONResponse({
            "status": "ok",
            "message": "Service is healthy",
            "timestamp": format_date(datetime.now(timezone.utc)),
        })


def create_app(
    settings: Settings | None = None,
    client: ShopBackClient | None = None,
) -> Starlette:
    """Create the Starlette application."""
    settings = settings or get_settings()
    server = GatewayServer(settings, client)

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await server.startup()
        yield
        await server.shutdown()

    routes = [
        Route("/health", server.handle_health, methods=["GET"]),
        Route("/metrics", metrics_endpoint, methods=["GET"]),
        Route("/shopback/orders/create", server.handle_create_order, methods=["POST"]),
        Route("/shopback/orders/scan", server.handle_scan_qr, methods=["POST"]),
        Route("/shopback/orders/{referenceId}", server.handle_get_order, methods=["GET"]),
        Route(
            "/shopback/orders/{referenceId}/refund",
            server.handle_refund_order,
            methods=["POST"],
        ),
        Route(
            "/shopback/orders/{referenceId}/cancel",
            server.handle_cancel_order,
            methods=["POST"],
        ),
    ]

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={GatewayError: gateway_error_handler},
    )

    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)
    app.add_middleware(
        MetricsMiddleware,
        exclude_paths=["/health", "/metrics"],
    )

    return app


def run_server(
    settings: Settings,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """
    Configure logging and tracing, then serve the gateway with uvicorn.

    Args:
        settings: Application settings
        host: Bind host, defaults to settings.gateway_host
        port: Bind port, defaults to settings.gateway_port
    """
    setup_logging(settings.log_level, settings.log_json)
    if settings.tracing_requested:
        setup_tracing(
            service_name=settings.tracing_service_name or "sbgateway",
            otlp_endpoint=settings.tracing_otlp_endpoint,
            enable_console=settings.tracing_console,
        )
    app = create_app(settings)

    uvicorn.run(
        app,
        host=host or settings.gateway_host,
        port=port or settings.gateway_port,
        log_level=settings.log_level.lower(),
    )


def main() -> None:
    """Entry point for the gateway server."""
    run_server(get_settings())


if __name__ == "__main__":
    main()

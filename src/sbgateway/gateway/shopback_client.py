"""HTTP client for the ShopBack in-store order API."""

import asyncio
import json
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import aiohttp

from sbgateway.common.errors import UpstreamTransportError
from sbgateway.common.hmac import DEFAULT_CONTENT_TYPE
from sbgateway.common.logging import get_logger
from sbgateway.common.metrics import record_upstream_call
from sbgateway.common.settings import Settings
from sbgateway.common.tracing import span
from sbgateway.gateway.signer import Credentials, Signer

logger = get_logger(__name__)

ORDER_PATH = "/v1/instore/order"


@dataclass(frozen=True)
class UpstreamResponse:
    """A response obtained from ShopBack, whatever its status."""

    status: int
    text: str
    content_type: str
    body: Any = None
    is_json: bool = False

    @classmethod
    def from_text(cls, status: int, text: str, content_type: str) -> "UpstreamResponse":
        if not text:
            return cls(status=status, text=text, content_type=content_type)
        try:
            body = json.loads(text)
        except ValueError:
            return cls(status=status, text=text, content_type=content_type)
        return cls(status=status, text=text, content_type=content_type, body=body, is_json=True)


def _decode_body(raw: bytes, charset: str | None) -> str:
    """Decode an upstream body, replacing bytes that do not fit its charset."""
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def order_path(reference_id: str, action: str | None = None) -> str:
    """Upstream path for an existing order, optionally with an action suffix."""
    path = f"{ORDER_PATH}/{quote(reference_id, safe='')}"
    if action:
        path = f"{path}/{action}"
    return path


class ShopBackClient:
    """
    Signs and forwards order requests to ShopBack.

    Every call is a single attempt bounded by the configured timeout. Any
    HTTP response is returned to the caller; only transport failures raise.
    """

    def __init__(self, settings: Settings, signer: Signer | None = None):
        """
        Initialize the client.

        Args:
            settings: Application settings
            signer: Signer to use; built from settings credentials if omitted
        """
        self._base_url = settings.shopback_base_url.rstrip("/")
        self._sign_full_url = settings.shopback_sign_full_url
        self._timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
        self._session: aiohttp.ClientSession | None = None
        self._signer = signer or Signer(
            Credentials.from_settings(settings),
            log_signing_material=settings.log_signing_material,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ShopBackClient":
        """Enter async context."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        await self.close()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        body: Mapping[str, Any] | None = None,
        reference_id: str | None = None,
    ) -> UpstreamResponse:
        """
        Sign and send one request.

        Args:
            operation: Operation name for logs and metrics
            method: HTTP method
            path: Upstream path below the base URL
            body: JSON body for POST requests
            reference_id: Order reference for log context

        Returns:
            The upstream response

        Raises:
            UpstreamTransportError: If no response was obtained
        """
        url = f"{self._base_url}{path}"
        signed_path = url if self._sign_full_url else path
        signature = self._signer.generate_signature(
            method, signed_path, body, DEFAULT_CONTENT_TYPE
        )
        headers = {
            **signature.as_headers(),
            "Content-Type": DEFAULT_CONTENT_TYPE,
            "Accept": "application/json",
        }
        kwargs: dict[str, Any] = {"headers": headers}
        if method != "GET":
            kwargs["json"] = dict(body or {})

        context: dict[str, Any] = {"operation": operation, "endpoint": url}
        if reference_id is not None:
            context["reference_id"] = reference_id

        logger.info("ShopBack request", method=method, **context)
        session = self._ensure_session()
        start = time.perf_counter()

        with span(
            "shopback_request",
            {"shopback.operation": operation, "http.method": method, "http.url": url},
        ) as current_span:
            try:
                response = await session.request(method, url, **kwargs)
                async with response:
                    text = _decode_body(await response.read(), response.charset)
                    upstream = UpstreamResponse.from_text(
                        response.status, text, response.content_type
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                record_upstream_call(operation, None, time.perf_counter() - start)
                detail = str(e) or type(e).__name__
                logger.error("ShopBack API error", error=detail, **context)
                raise UpstreamTransportError(
                    f"Failed to connect to ShopBack API ({url}): {detail}",
                    endpoint=url,
                ) from e

            current_span.set_attribute("http.status_code", upstream.status)

        record_upstream_call(operation, upstream.status, time.perf_counter() - start)
        logger.info("ShopBack response", status=upstream.status, **context)
        return upstream

    # === Order Operations ===

    async def create_order(self, payload: Mapping[str, Any]) -> UpstreamResponse:
        """Create a dynamic QR order."""
        return await self._send("create_order", "POST", f"{ORDER_PATH}/create", payload)

    async def scan_qr(self, payload: Mapping[str, Any]) -> UpstreamResponse:
        """Charge a consumer-presented QR code."""
        return await self._send("scan_qr", "POST", f"{ORDER_PATH}/scan", payload)

    async def get_order_status(self, reference_id: str) -> UpstreamResponse:
        """Look up an order by reference id."""
        return await self._send(
            "get_order_status",
            "GET",
            order_path(reference_id),
            reference_id=reference_id,
        )

    async def refund_order(
        self, reference_id: str, payload: Mapping[str, Any]
    ) -> UpstreamResponse:
        """Refund a paid order, fully or partially."""
        return await self._send(
            "refund_order",
            "POST",
            order_path(reference_id, "refund"),
            payload,
            reference_id=reference_id,
        )

    async def cancel_order(
        self, reference_id: str, payload: Mapping[str, Any]
    ) -> UpstreamResponse:
        """Cancel an unpaid order."""
        return await self._send(
            "cancel_order",
            "POST",
            order_path(reference_id, "cancel"),
            payload,
            reference_id=reference_id,
        )

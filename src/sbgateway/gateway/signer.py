"""ShopBack request signer (SB1-HMAC-SHA256)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sbgateway.common.hmac import (
    DEFAULT_CONTENT_TYPE,
    build_authorization,
    build_string_to_sign,
    content_digest,
    format_date,
    sign,
    verify,
)
from sbgateway.common.logging import get_logger
from sbgateway.common.settings import Settings

logger = get_logger(__name__)

Timestamp = datetime | str


@dataclass(frozen=True)
class Credentials:
    """ShopBack access key pair, loaded once at startup."""

    access_key: str
    access_key_secret: str = field(repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Credentials":
        return cls(
            access_key=settings.shopback_access_key,
            access_key_secret=settings.shopback_access_key_secret.get_secret_value(),
        )


@dataclass(frozen=True)
class SignatureResult:
    """Headers material produced for one signed request."""

    authorization: str
    date: str
    content_digest: str

    def as_headers(self) -> dict[str, str]:
        return {
            "Authorization": self.authorization,
            "Date": self.date,
        }


class Signer:
    """
    Deterministic signer for ShopBack API requests.

    The signing string is five newline-joined lines: uppercased method,
    content type, date, path and content digest. Its HMAC-SHA256 under the
    access key secret is sent as `SB1-HMAC-SHA256 {access_key}:{signature}`.
    """

    def __init__(self, credentials: Credentials, log_signing_material: bool = False):
        """
        Initialize the signer.

        Args:
            credentials: Access key pair used for every signature
            log_signing_material: Log signing strings and signatures at DEBUG
        """
        self._credentials = credentials
        self._log_signing_material = log_signing_material

    @property
    def access_key(self) -> str:
        return self._credentials.access_key

    def generate_signature(
        self,
        method: str,
        path: str,
        body: Mapping[str, Any] | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
        timestamp: Timestamp | None = None,
    ) -> SignatureResult:
        """
        Sign a request.

        Args:
            method: HTTP verb, uppercased before signing
            path: Exact URL or path the request is sent to
            body: JSON body; empty or None signs an empty digest
            content_type: MIME type of the body
            timestamp: Signing time; a string is used verbatim, None means now

        Returns:
            SignatureResult with the Authorization and Date header values
        """
        date = _resolve_date(timestamp)
        digest = content_digest(body)
        string_to_sign = build_string_to_sign(method, content_type, date, path, digest)
        signature = sign(self._credentials.access_key_secret, string_to_sign)

        if self._log_signing_material:
            logger.debug(
                "Signed request",
                string_to_sign=string_to_sign,
                signature=signature,
            )

        return SignatureResult(
            authorization=build_authorization(self._credentials.access_key, signature),
            date=date,
            content_digest=digest,
        )

    def get_authorization_header(
        self,
        method: str,
        path: str,
        body: Mapping[str, Any] | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
        timestamp: Timestamp | None = None,
    ) -> str:
        """Return only the Authorization header value."""
        return self.generate_signature(method, path, body, content_type, timestamp).authorization

    def validate_signature(
        self,
        provided_signature: str,
        method: str,
        path: str,
        body: Mapping[str, Any] | None,
        content_type: str,
        timestamp: Timestamp,
    ) -> bool:
        """
        Check a previously produced Authorization value.

        The timestamp must be the one the original signer used (normally the
        Date header string); it is never regenerated here.
        """
        expected = self.generate_signature(method, path, body, content_type, timestamp)
        return verify(expected.authorization, provided_signature)


def _resolve_date(timestamp: Timestamp | None) -> str:
    if timestamp is None:
        return format_date(datetime.now(timezone.utc))
    if isinstance(timestamp, str):
        return timestamp
    return format_date(timestamp)

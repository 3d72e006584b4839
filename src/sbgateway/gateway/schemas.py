"""Inbound payload schemas for the ShopBack order endpoints."""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

from sbgateway.common.errors import RequestValidationError

_url_adapter: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)
_TYPE_TAGS = frozenset({"int", "float", "str", "bool", "dict", "list"})


def _reject_bool(value: Any) -> Any:
    # JSON true/false would otherwise coerce to 1/0
    if isinstance(value, bool):
        raise ValueError("must be a number")
    return value


def _check_amount(value: int | float) -> int | float:
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    if value < 1:
        raise ValueError("must be at least 1")
    return value


def _check_numeric(value: int | float | str) -> int | float | str:
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise ValueError("must be a number") from None
    else:
        number = value
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return value


def _check_url(value: str) -> str:
    # Validate only; the caller's exact string is forwarded and signed
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid URL") from None
    return value


Amount = Annotated[int | float, BeforeValidator(_reject_bool), AfterValidator(_check_amount)]
Numeric = Annotated[
    int | float | StrictStr, BeforeValidator(_reject_bool), AfterValidator(_check_numeric)
]
Url = Annotated[StrictStr, AfterValidator(_check_url)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Partner(_Payload):
    merchantId: StrictStr
    merchantCategoryCode: Numeric | None = None
    merchantTradingName: StrictStr | None = None
    merchantEntityId: StrictStr | None = None


class OrderMetadata(_Payload):
    terminalReference: StrictStr | None = None
    merchantOrderReference: StrictStr | None = None


class RefundMetadata(_Payload):
    terminalReference: StrictStr | None = None


class _OrderBase(_Payload):
    posId: StrictStr
    country: Annotated[StrictStr, Field(min_length=2, max_length=2)]
    amount: Amount
    currency: Annotated[StrictStr, Field(min_length=3, max_length=3)]
    referenceId: StrictStr
    partner: Partner | None = None
    orderMetadata: OrderMetadata | None = None
    webhookUrl: Url | None = None


class CreateOrderRequest(_OrderBase):
    """POST /shopback/orders/create"""

    qrType: StrictStr


class ScanQrRequest(_OrderBase):
    """POST /shopback/orders/scan"""

    consumerQrPayload: StrictStr


class RefundRequest(_Payload):
    """POST /shopback/orders/{referenceId}/refund"""

    amount: Amount
    reason: StrictStr | None = None
    referenceId: StrictStr | None = None
    posId: StrictStr | None = None
    refundMetadata: RefundMetadata | None = None


class CancelRequest(_Payload):
    """POST /shopback/orders/{referenceId}/cancel"""

    reason: StrictStr | None = None


def _first_error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    # Union members append their type tag to loc; stop at the first one
    loc: list[str] = []
    for part in error["loc"]:
        if isinstance(part, str) and (part in _TYPE_TAGS or not part.isidentifier()):
            break
        loc.append(str(part))
    field = ".".join(loc) or "body"
    reason = error["msg"]
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]
    return f"{field}: {reason}"


def validate_payload(model: type[BaseModel], payload: Any) -> dict[str, Any]:
    """
    Validate an inbound payload and return the body to forward.

    Only declared fields the caller actually sent are kept, with their
    original JSON values.

    Raises:
        RequestValidationError: On the first violated field
    """
    if not isinstance(payload, dict):
        raise RequestValidationError("Invalid request parameters: body: must be a JSON object")
    try:
        validated = model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(
            f"Invalid request parameters: {_first_error_message(exc)}"
        ) from exc
    return validated.model_dump(mode="json", exclude_unset=True)

"""Tests for inbound payload validation."""

import pytest

from sbgateway.common.errors import RequestValidationError
from sbgateway.gateway.schemas import (
    CancelRequest,
    CreateOrderRequest,
    RefundRequest,
    ScanQrRequest,
    validate_payload,
)


def _error_message(model, payload) -> str:
    with pytest.raises(RequestValidationError) as exc_info:
        validate_payload(model, payload)
    assert exc_info.value.status_code == 400
    return exc_info.value.message


class TestCreateOrder:
    """Test create order validation."""

    def test_valid_payload_forwarded(self, create_order_payload):
        result = validate_payload(CreateOrderRequest, create_order_payload)
        assert result == create_order_payload

    def test_unknown_fields_dropped(self, create_order_payload):
        create_order_payload["internalNote"] = "do not forward"
        create_order_payload["partner"]["extra"] = True

        result = validate_payload(CreateOrderRequest, create_order_payload)

        assert "internalNote" not in result
        assert "extra" not in result["partner"]

    def test_absent_optionals_not_added(self, create_order_payload):
        for key in ("partner", "orderMetadata", "webhookUrl"):
            del create_order_payload[key]

        result = validate_payload(CreateOrderRequest, create_order_payload)

        assert set(result) == {"posId", "country", "amount", "currency", "referenceId", "qrType"}

    def test_amount_type_preserved(self, create_order_payload):
        create_order_payload["amount"] = 12.5
        assert validate_payload(CreateOrderRequest, create_order_payload)["amount"] == 12.5
        create_order_payload["amount"] = 100
        assert isinstance(validate_payload(CreateOrderRequest, create_order_payload)["amount"], int)

    @pytest.mark.parametrize("field", ["posId", "country", "amount", "currency", "referenceId", "qrType"])
    def test_required_fields(self, create_order_payload, field):
        del create_order_payload[field]
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert message.startswith("Invalid request parameters: ")
        assert field in message

    def test_amount_minimum(self, create_order_payload):
        create_order_payload["amount"] = 0
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert "amount: must be at least 1" in message

    @pytest.mark.parametrize(
        "amount,reason",
        [
            (float("nan"), "must be a finite number"),
            (float("inf"), "must be a finite number"),
            (True, "must be a number"),
            (False, "must be a number"),
        ],
    )
    def test_amount_rejects_non_finite_and_boolean(self, create_order_payload, amount, reason):
        create_order_payload["amount"] = amount
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert message == f"Invalid request parameters: amount: {reason}"

    def test_merchant_category_code_rejects_boolean_and_nan(self, create_order_payload):
        for value in (True, "nan", float("inf")):
            create_order_payload["partner"]["merchantCategoryCode"] = value
            message = _error_message(CreateOrderRequest, create_order_payload)
            assert "partner.merchantCategoryCode" in message

    def test_amount_must_be_number(self, create_order_payload):
        create_order_payload["amount"] = "ten"
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert "Invalid request parameters: amount:" in message

    @pytest.mark.parametrize("country", ["S", "SGP"])
    def test_country_length(self, create_order_payload, country):
        create_order_payload["country"] = country
        assert "country" in _error_message(CreateOrderRequest, create_order_payload)

    def test_currency_length(self, create_order_payload):
        create_order_payload["currency"] = "SG"
        assert "currency" in _error_message(CreateOrderRequest, create_order_payload)

    def test_partner_requires_merchant_id(self, create_order_payload):
        create_order_payload["partner"] = {"merchantTradingName": "Cafe"}
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert "partner.merchantId" in message

    def test_merchant_category_code_numeric(self, create_order_payload):
        create_order_payload["partner"]["merchantCategoryCode"] = "5812"
        result = validate_payload(CreateOrderRequest, create_order_payload)
        assert result["partner"]["merchantCategoryCode"] == "5812"

        create_order_payload["partner"]["merchantCategoryCode"] = "food"
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert "partner.merchantCategoryCode" in message

    def test_webhook_url_kept_verbatim(self, create_order_payload):
        create_order_payload["webhookUrl"] = "https://merchant.example"
        result = validate_payload(CreateOrderRequest, create_order_payload)
        assert result["webhookUrl"] == "https://merchant.example"

    def test_webhook_url_invalid(self, create_order_payload):
        create_order_payload["webhookUrl"] = "not a url"
        message = _error_message(CreateOrderRequest, create_order_payload)
        assert "webhookUrl: must be a valid URL" in message

    def test_body_must_be_object(self):
        assert "body" in _error_message(CreateOrderRequest, ["not", "an", "object"])
        assert "body" in _error_message(CreateOrderRequest, None)


class TestScanQr:
    def test_requires_consumer_qr_payload(self, create_order_payload):
        del create_order_payload["qrType"]
        message = _error_message(ScanQrRequest, create_order_payload)
        assert "consumerQrPayload" in message

    def test_valid(self, create_order_payload):
        del create_order_payload["qrType"]
        create_order_payload["consumerQrPayload"] = "000201010212"
        result = validate_payload(ScanQrRequest, create_order_payload)
        assert result["consumerQrPayload"] == "000201010212"
        assert "qrType" not in result


class TestRefund:
    def test_missing_amount(self):
        message = _error_message(RefundRequest, {"reason": "damaged"})
        assert "amount" in message

    def test_valid(self):
        payload = {
            "amount": 500,
            "reason": "damaged",
            "posId": "pos-1",
            "referenceId": "refund-1",
            "refundMetadata": {"terminalReference": "T-9"},
        }
        assert validate_payload(RefundRequest, payload) == payload


    @pytest.mark.parametrize("amount", [float("nan"), float("-inf"), True])
    def test_amount_rejects_non_finite_and_boolean(self, amount):
        assert "amount" in _error_message(RefundRequest, {"amount": amount})

    def test_empty_body_cites_amount(self):
        message = _error_message(RefundRequest, {})
        assert message == "Invalid request parameters: amount: Field required"


class TestCancel:
    def test_empty_is_valid(self):
        assert validate_payload(CancelRequest, {}) == {}

    def test_reason_must_be_string(self):
        assert "reason" in _error_message(CancelRequest, {"reason": 42})

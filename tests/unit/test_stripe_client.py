"""Unit tests for the Stripe REST client and webhook signature checks."""
import hashlib
import hmac
from urllib.parse import parse_qsl

import httpx
import pytest

from homecare.services.stripe_client import (
    SignatureVerificationError,
    StripeClient,
    StripeError,
    encode_form,
    verify_webhook_signature,
)

pytestmark = pytest.mark.unit

SECRET = "whsec_unit"


def sign(payload: bytes, timestamp: int, secret: str = SECRET) -> str:
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class TestEncodeForm:
    def test_nested_structures_use_bracket_keys(self):
        pairs = encode_form({
            "customer": "cus_1",
            "metadata": {"user_id": "u1"},
            "line_items": [{"price": "price_1", "quantity": 1}],
            "cancel_at_period_end": False,
            "skip": None,
        })
        assert pairs == [
            ("customer", "cus_1"),
            ("metadata[user_id]", "u1"),
            ("line_items[0][price]", "price_1"),
            ("line_items[0][quantity]", "1"),
            ("cancel_at_period_end", "false"),
        ]


class TestVerifyWebhookSignature:
    def test_valid_signature(self):
        payload = b'{"id": "evt_1"}'
        verify_webhook_signature(payload, sign(payload, 1000), SECRET, tolerance=300, now=1100)

    def test_any_matching_v1_is_accepted(self):
        payload = b"{}"
        header = sign(payload, 1000) + ",v1=deadbeef"
        verify_webhook_signature(payload, header, SECRET, now=1000)

    def test_tampered_payload_rejected(self):
        header = sign(b'{"amount": 1}', 1000)
        with pytest.raises(SignatureVerificationError):
            verify_webhook_signature(b'{"amount": 2}', header, SECRET, now=1000)

    def test_wrong_secret_rejected(self):
        payload = b"{}"
        with pytest.raises(SignatureVerificationError):
            verify_webhook_signature(payload, sign(payload, 1000, "whsec_other"), SECRET, now=1000)

    def test_stale_timestamp_rejected(self):
        payload = b"{}"
        with pytest.raises(SignatureVerificationError, match="tolerance"):
            verify_webhook_signature(payload, sign(payload, 1000), SECRET, tolerance=300, now=1400)

    @pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", "v1=00"])
    def test_malformed_headers_rejected(self, header):
        with pytest.raises(SignatureVerificationError):
            verify_webhook_signature(b"{}", header, SECRET, now=1000)


class TestStripeClient:
    def _client(self, handler):
        return StripeClient("sk_test_unit", transport=httpx.MockTransport(handler))

    def test_post_is_form_encoded_with_auth(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["idempotency"] = request.headers.get("idempotency-key")
            seen["form"] = dict(parse_qsl(request.content.decode()))
            return httpx.Response(200, json={"id": "cus_1"})

        client = self._client(handler)
        result = client.create_customer("a@example.com", "Alice", "user-1")

        assert result == {"id": "cus_1"}
        assert seen["method"] == "POST"
        assert seen["path"] == "/v1/customers"
        assert seen["auth"] == "Bearer sk_test_unit"
        assert seen["idempotency"] == "customer-user-1"
        assert seen["form"] == {"email": "a@example.com", "name": "Alice", "metadata[user_id]": "user-1"}

    def test_get_sends_query_params(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.params["customer"] == "cus_1"
            assert request.url.params["status"] == "active"
            return httpx.Response(200, json={"data": [{"id": "sub_1"}]})

        assert self._client(handler).list_subscriptions("cus_1") == [{"id": "sub_1"}]

    def test_error_response_raises_stripe_error(self):
        def handler(request):
            return httpx.Response(402, json={"error": {"message": "Card declined", "code": "card_declined"}})

        with pytest.raises(StripeError) as exc_info:
            self._client(handler).retrieve_subscription("sub_1")
        assert exc_info.value.status_code == 402
        assert exc_info.value.code == "card_declined"
        assert "Card declined" in str(exc_info.value)

    def test_missing_upcoming_invoice_returns_none(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"message": "No upcoming invoices"}})

        assert self._client(handler).preview_upcoming_invoice("cus_1") is None

    def test_connection_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(StripeError, match="connection"):
            self._client(handler).list_invoices("cus_1")

    def test_change_price_prorates(self):
        def handler(request):
            form = dict(parse_qsl(request.content.decode()))
            assert form["items[0][id]"] == "si_1"
            assert form["items[0][price]"] == "price_new"
            assert form["proration_behavior"] == "create_prorations"
            assert form["cancel_at_period_end"] == "false"
            return httpx.Response(200, json={"id": "sub_1", "status": "active"})

        assert self._client(handler).change_subscription_price("sub_1", "si_1", "price_new")["id"] == "sub_1"

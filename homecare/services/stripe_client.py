"""
Stripe REST Client

A small wrapper over the Stripe HTTP API using httpx. Requests are
form-encoded with the secret key as a Bearer token. Only the calls the
billing flows need are exposed.

Webhook signatures are verified locally (HMAC-SHA256 over "{t}.{payload}").
"""
import hashlib
import hmac
import time
from urllib.parse import urlencode
from typing import Any, Dict, Iterator, List, Optional

import httpx

from homecare.config import get_settings
from homecare.utils.logging import get_logger

logger = get_logger(__name__)


class StripeError(RuntimeError):
    """Raised when Stripe rejects a request or can't be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SignatureVerificationError(ValueError):
    """Raised when a webhook's Stripe-Signature header doesn't check out."""


def encode_form(data: Dict[str, Any], prefix: str = "") -> List[tuple]:
    """
    Flatten nested dicts/lists into Stripe's bracketed form keys.

    {"metadata": {"user_id": "u1"}, "items": [{"price": "p"}]} becomes
    [("metadata[user_id]", "u1"), ("items[0][price]", "p")].
    """
    pairs = []
    for key, value in data.items():
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(encode_form(value, full_key))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                item_key = f"{full_key}[{index}]"
                if isinstance(item, dict):
                    pairs.extend(encode_form(item, item_key))
                else:
                    pairs.append((item_key, _form_value(item)))
        else:
            pairs.append((full_key, _form_value(value)))
    return pairs


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class StripeClient:
    """Synchronous Stripe API client."""

    def __init__(self, secret_key: str, api_base: str = "https://api.stripe.com/v1",
                 timeout: float = 15.0, transport: Optional[httpx.BaseTransport] = None):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self._client = httpx.Client(
            base_url=self.api_base,
            timeout=timeout,
            headers={"Authorization": f"Bearer {secret_key}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None,
                idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        headers = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        form = encode_form(data or {})
        try:
            if method.upper() in {"GET", "DELETE"}:
                response = self._client.request(method.upper(), path, params=form, headers=headers)
            else:
                response = self._client.request(
                    method.upper(),
                    path,
                    content=urlencode(form).encode("utf-8"),
                    headers={**headers, "Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            logger.error(f"Stripe connection error on {method} {path}: {exc}")
            raise StripeError(f"Stripe API connection error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise StripeError("Stripe API returned invalid JSON.", response.status_code) from exc

        if response.is_error:
            error = payload.get("error", {}) if isinstance(payload, dict) else {}
            message = error.get("message") or f"Stripe API error ({response.status_code})"
            logger.warning(f"Stripe API error on {method} {path}: {message}")
            raise StripeError(message, response.status_code, error.get("code"))

        return payload

    # Customers

    def create_customer(self, email: str, name: Optional[str], user_id: str) -> Dict[str, Any]:
        return self.request(
            "POST",
            "/customers",
            data={"email": email, "name": name, "metadata": {"user_id": user_id}},
            idempotency_key=f"customer-{user_id}",
        )

    # Checkout

    def create_checkout_session(self, customer_id: str, price_id: str, success_url: str,
                                cancel_url: str, metadata: Dict[str, str],
                                mode: str = "subscription") -> Dict[str, Any]:
        """Hosted checkout. ``mode`` is "subscription" for plans, "payment" for one-off reports."""
        data = {
            "mode": mode,
            "customer": customer_id,
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if mode == "subscription":
            data["subscription_data"] = {"metadata": metadata}
        return self.request("POST", "/checkout/sessions", data=data)

    # Subscriptions

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/subscriptions/{subscription_id}")

    def list_subscriptions(self, customer_id: str, status: str = "active", limit: int = 1) -> List[Dict[str, Any]]:
        response = self.request(
            "GET",
            "/subscriptions",
            data={"customer": customer_id, "status": status, "limit": limit},
        )
        return response.get("data", [])

    def set_cancel_at_period_end(self, subscription_id: str, cancel: bool = True) -> Dict[str, Any]:
        return self.request(
            "POST",
            f"/subscriptions/{subscription_id}",
            data={"cancel_at_period_end": cancel},
        )

    def change_subscription_price(self, subscription_id: str, item_id: str, price_id: str) -> Dict[str, Any]:
        return self.request(
            "POST",
            f"/subscriptions/{subscription_id}",
            data={
                "items": [{"id": item_id, "price": price_id}],
                "proration_behavior": "create_prorations",
                "cancel_at_period_end": False,
            },
        )

    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/subscriptions/{subscription_id}")

    # Invoices

    def list_invoices(self, customer_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        response = self.request("GET", "/invoices", data={"customer": customer_id, "limit": limit})
        return response.get("data", [])

    def preview_upcoming_invoice(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Upcoming invoice for the customer, or None when nothing is scheduled."""
        try:
            return self.request("POST", "/invoices/create_preview", data={"customer": customer_id})
        except StripeError as exc:
            if exc.status_code in (400, 404):
                return None
            raise


def verify_webhook_signature(payload: bytes, signature_header: Optional[str], secret: str,
                             tolerance: int = 300, now: Optional[float] = None) -> None:
    """
    Check a Stripe-Signature header against the raw request body.

    Raises SignatureVerificationError when the header is missing or malformed,
    no v1 signature matches, or the timestamp is outside the tolerance.
    """
    if not signature_header:
        raise SignatureVerificationError("Missing Stripe signature")

    parts: Dict[str, List[str]] = {}
    for item in signature_header.split(","):
        if "=" in item:
            key, value = item.split("=", 1)
            parts.setdefault(key.strip(), []).append(value.strip())

    timestamp = parts.get("t", [None])[0]
    signatures = parts.get("v1", [])
    if not timestamp or not signatures:
        raise SignatureVerificationError("Invalid Stripe signature header")

    try:
        timestamp_value = int(timestamp)
    except ValueError as exc:
        raise SignatureVerificationError("Invalid Stripe signature timestamp") from exc

    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationError("Invalid Stripe signature")

    current = now if now is not None else time.time()
    if tolerance and abs(current - timestamp_value) > tolerance:
        raise SignatureVerificationError("Stripe signature timestamp outside tolerance")


def get_stripe_client() -> Iterator[Optional[StripeClient]]:
    """
    FastAPI dependency. Yields None when billing isn't configured.
    """
    settings = get_settings()
    if not settings.stripe_configured:
        yield None
        return

    client = StripeClient(settings.STRIPE_SECRET_KEY, settings.STRIPE_API_BASE)
    try:
        yield client
    finally:
        client.close()

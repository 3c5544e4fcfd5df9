"""
Duitku payment gateway client.

Encapsulates the three gateway protocol operations:

1. Get payment methods:  SHA256(merchantCode + amount + datetime + apiKey)
2. Request transaction:  MD5(merchantCode + merchantOrderId + paymentAmount + apiKey)
3. Verify callback:      MD5(merchantCode + amount + merchantOrderId + apiKey)

The gateway recomputes every signature on its side, so the amount used in a
signature must be rendered exactly as it appears in the request body (an
integer, never a float like "825000.0").

Sandbox docs: https://docs.duitku.com/api/en/
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, List, Mapping, Optional

import httpx

from domain.time import format_gateway_timestamp, utc_now
from services.errors import ConfigurationError, GatewayError, ValidationError
from services.hashing import md5, sha256
from services.settings import GatewaySettings

logger = logging.getLogger(__name__)

SUCCESS_CODE = "00"
PAYMENT_METHODS_PATH = "/webapi/api/merchant/paymentmethod/getpaymentmethod"
INQUIRY_PATH = "/webapi/api/merchant/v2/inquiry"
CALLBACK_PATH = "/api/v1/payments/callback"
EXPIRY_PERIOD_MINUTES = 1440


@dataclass(frozen=True, slots=True)
class PaymentMethod:
    code: str
    name: str
    image_url: Optional[str]
    total_fee: int


@dataclass(frozen=True, slots=True)
class TransactionResult:
    reference: str
    payment_url: str
    amount: Optional[str] = None
    va_number: Optional[str] = None
    qr_string: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CallbackPayload:
    """
    Untrusted callback form data posted by the gateway.

    Only the fields covered by the signature may drive state changes, and only
    after `DuitkuClient.verify_callback_signature` has accepted the payload.
    """
    merchant_code: str
    amount: str
    merchant_order_id: str
    result_code: str
    reference: str
    signature: str
    product_detail: str = ""
    additional_param: str = ""
    payment_code: str = ""
    merchant_user_id: str = ""
    publisher_order_id: str = ""
    sp_user_hash: str = ""
    settlement_date: str = ""
    issuer_code: str = ""

    REQUIRED_FIELDS = ("merchantCode", "amount", "merchantOrderId", "signature")

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "CallbackPayload":
        def field(name: str) -> str:
            value = form.get(name)
            return str(value) if value is not None else ""

        return cls(
            merchant_code=field("merchantCode"),
            amount=field("amount"),
            merchant_order_id=field("merchantOrderId"),
            result_code=field("resultCode"),
            reference=field("reference"),
            signature=field("signature"),
            product_detail=field("productDetail"),
            additional_param=field("additionalParam"),
            payment_code=field("paymentCode"),
            merchant_user_id=field("merchantUserId"),
            publisher_order_id=field("publisherOrderId"),
            sp_user_hash=field("spUserHash"),
            settlement_date=field("settlementDate"),
            issuer_code=field("issuerCode"),
        )

    def missing_fields(self) -> List[str]:
        """Required fields that are absent or blank. Values themselves are kept verbatim."""
        values = {
            "merchantCode": self.merchant_code,
            "amount": self.amount,
            "merchantOrderId": self.merchant_order_id,
            "signature": self.signature,
        }
        return [name for name in self.REQUIRED_FIELDS if not values[name].strip()]

    @property
    def is_success(self) -> bool:
        return self.result_code == SUCCESS_CODE


def format_amount(amount: Any) -> str:
    """
    Render an amount as the integer string used in signatures and bodies.

    Raises:
        ValidationError: If the amount is not a positive whole number
    """
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid payment amount: {amount!r}")

    try:
        value = Decimal(str(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid payment amount: {amount!r}") from None

    if not value.is_finite() or value != value.to_integral_value() or value <= 0:
        raise ValidationError(f"Payment amount must be a positive whole number, got {amount!r}")

    return str(int(value))


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split()
    first_name = parts[0] if parts else "Customer"
    return first_name, " ".join(parts[1:])


class DuitkuClient:
    """
    Signed client for the Duitku merchant API.

    Settings are loaded from the environment on first use unless passed in.
    Outbound requests use a bounded timeout and retry connection failures a
    few times at the transport level; gateway error responses are not retried.
    """

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._http_client = http_client
        self._clock = clock

    @property
    def settings(self) -> GatewaySettings:
        if self._settings is None:
            self._settings = GatewaySettings.from_env()
        return self._settings

    @property
    def http(self) -> httpx.Client:
        if self._http_client is None:
            settings = self.settings
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(settings.timeout_seconds),
                transport=httpx.HTTPTransport(retries=settings.max_retries),
            )
        return self._http_client

    def close(self) -> None:
        if self._http_client is not None:
            self._http_client.close()

    def _post(self, path: str, body: dict[str, Any], operation: str) -> dict[str, Any]:
        url = f"{self.settings.base_url.rstrip('/')}{path}"

        try:
            response = self.http.post(url, json=body)
        except httpx.HTTPError as e:
            raise GatewayError(f"Duitku {operation} request failed: {e}") from e

        if response.is_error:
            raise GatewayError(
                f"Duitku {operation} failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(f"Duitku {operation} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise GatewayError(f"Duitku {operation} returned unexpected payload")
        return data

    def list_payment_methods(self, amount: Any) -> List[PaymentMethod]:
        """
        Get the payment methods available for an amount.

        Raises:
            GatewayError: On transport failure, non-2xx, bad JSON or responseCode != "00"
        """
        settings = self.settings
        amount_str = format_amount(amount)
        timestamp = format_gateway_timestamp(self._clock())
        signature = sha256(settings.merchant_code + amount_str + timestamp + settings.api_key)

        data = self._post(
            PAYMENT_METHODS_PATH,
            {
                "merchantcode": settings.merchant_code,
                "amount": int(amount_str),
                "datetime": timestamp,
                "signature": signature,
            },
            "getPaymentMethods",
        )

        if data.get("responseCode") != SUCCESS_CODE:
            raise GatewayError(f"Duitku getPaymentMethods error: {data.get('responseMessage')}")

        rows = data.get("paymentFee") or []
        if not isinstance(rows, list):
            raise GatewayError("Duitku getPaymentMethods returned unexpected paymentFee")

        try:
            return [
                PaymentMethod(
                    code=str(row.get("paymentMethod", "")),
                    name=str(row.get("paymentName", "")),
                    image_url=row.get("paymentImage"),
                    total_fee=int(Decimal(str(row.get("totalFee") or 0))),
                )
                for row in rows
            ]
        except (ArithmeticError, AttributeError, TypeError, ValueError) as e:
            raise GatewayError(f"Duitku getPaymentMethods returned an unparseable fee list: {e!r}") from e

    def request_transaction(
        self,
        order_id: str,
        amount: Any,
        payment_method: str,
        product_details: str,
        email: str,
        customer_name: str,
        phone_number: Optional[str] = None,
    ) -> TransactionResult:
        """
        Request a payment transaction and return where to send the buyer.

        Raises:
            ValidationError: If the amount is not a positive whole number
            GatewayError: On transport failure or statusCode != "00"
        """
        settings = self.settings
        amount_str = format_amount(amount)
        payment_amount = int(amount_str)
        signature = md5(settings.merchant_code + order_id + amount_str + settings.api_key)

        first_name, last_name = _split_name(customer_name)
        site_url = settings.site_url.rstrip("/")
        phone = phone_number or ""

        body = {
            "merchantCode": settings.merchant_code,
            "paymentAmount": payment_amount,
            "paymentMethod": payment_method,
            "merchantOrderId": order_id,
            "productDetails": product_details,
            "additionalParam": "",
            "merchantUserInfo": "",
            "customerVaName": customer_name,
            "email": email,
            "phoneNumber": phone,
            "itemDetails": [
                {"name": product_details, "price": payment_amount, "quantity": 1},
            ],
            "customerDetail": {
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "phoneNumber": phone,
            },
            "callbackUrl": f"{site_url}{CALLBACK_PATH}",
            "returnUrl": f"{site_url}/payment/success/{order_id}",
            "signature": signature,
            "expiryPeriod": EXPIRY_PERIOD_MINUTES,
        }

        data = self._post(INQUIRY_PATH, body, "requestTransaction")

        if data.get("statusCode") != SUCCESS_CODE:
            raise GatewayError(f"Duitku transaction error: {data.get('statusMessage')}")

        reference = data.get("reference")
        payment_url = data.get("paymentUrl")
        if not reference or not payment_url:
            raise GatewayError("Duitku transaction response is missing reference or paymentUrl")

        logger.info("Duitku transaction %s created for order %s", reference, order_id)

        return TransactionResult(
            reference=str(reference),
            payment_url=str(payment_url),
            amount=data.get("amount"),
            va_number=data.get("vaNumber") or None,
            qr_string=data.get("qrString") or None,
        )

    def verify_callback_signature(self, payload: CallbackPayload) -> bool:
        """
        Check a callback signature: MD5(merchantCode + amount + merchantOrderId + apiKey).

        The comparison is exact (case-sensitive) and constant-time. Returns
        False instead of raising, including when credentials are missing.
        """
        try:
            settings = self.settings
        except ConfigurationError:
            logger.error("Cannot verify callback signature: gateway is not configured")
            return False

        expected = md5(
            settings.merchant_code + payload.amount + payload.merchant_order_id + settings.api_key
        )
        return hmac.compare_digest(expected.encode("utf-8"), payload.signature.encode("utf-8"))


__all__ = [
    "CallbackPayload",
    "DuitkuClient",
    "PaymentMethod",
    "TransactionResult",
    "format_amount",
]

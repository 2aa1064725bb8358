"""PhonePe PSP Adapter Implementation (PG v1 pay page)."""
import base64
import json
import re
import time
from urllib.parse import urlencode

from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, ValidationError, VerificationFailedError
from storepay.payments.money import to_minor_units
from storepay.payments.return_urls import build_return_url
from storepay.payments.signatures import phonepe_x_verify
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    PhonePeCredentials,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)

PAY_PATH = "/pg/v1/pay"
TRANSACTION_ID_MAX_LENGTH = 35


def merchant_transaction_id(order_number: str) -> str:
    """TXN_<order number>_<ms>, trimmed to PhonePe's 35 character limit."""
    suffix = f"_{int(time.time() * 1000)}"
    number = re.sub(r"[^A-Za-z0-9]", "", order_number)
    return f"TXN_{number}"[: TRANSACTION_ID_MAX_LENGTH - len(suffix)] + suffix


class PhonePeAdapter(PSPAdapter):
    """PhonePe: redirect to a hosted pay page, confirm with a status query."""

    provider = GatewayId.PHONEPE
    display_name = "PhonePe"
    credentials_class = PhonePeCredentials

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        creds = self.credentials
        txn_id = merchant_transaction_id(order.order_number)
        redirect_url = build_return_url(
            self.config.STOREFRONT_BASE_URL,
            self.provider,
            order.order_id,
            context.store_id,
            context.store_slug,
            extra={"merchantTransactionId": txn_id},
        )
        payment_payload = {
            "merchantId": creds.merchant_id,
            "merchantTransactionId": txn_id,
            "merchantUserId": re.sub(r"[^A-Za-z0-9]", "", order.customer_phone) or txn_id,
            "amount": to_minor_units(order.amount, order.currency),
            "redirectUrl": redirect_url,
            "redirectMode": "REDIRECT",
            "callbackUrl": f"{self.config.FUNCTIONS_BASE_URL.rstrip('/')}/payments/phonepe/callback?{urlencode({'storeId': context.store_id})}",
            "mobileNumber": order.customer_phone,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        payload_b64 = base64.b64encode(json.dumps(payment_payload).encode()).decode()
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": phonepe_x_verify(payload_b64, PAY_PATH, creds.salt_key, creds.salt_index),
        }
        result = await self._request(
            "POST",
            f"{self.config.phonepe_api_base}{PAY_PATH}",
            json={"request": payload_b64},
            headers=headers,
        )
        if not result.get("success"):
            raise GatewayError(
                result.get("message") or "PhonePe payment initiation failed",
                gateway=self.provider.value,
            )
        try:
            payment_url = result["data"]["instrumentResponse"]["redirectInfo"]["url"]
        except (KeyError, TypeError):
            raise GatewayError("No payment URL received", gateway=self.provider.value)

        logger.info("phonepe_payment_created", merchant_transaction_id=txn_id, order_number=order.order_number)
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=txn_id,
            payment_url=payment_url,
            public_key=creds.merchant_id,
            amount_minor=payment_payload["amount"],
            currency=order.currency.upper(),
            return_url=redirect_url,
            sandbox=self.config.GATEWAY_SANDBOX,
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        txn_id = request.gateway_order_id
        if not txn_id:
            raise ValidationError("merchantTransactionId is required", gateway=self.provider.value)
        creds = self.credentials
        path = f"/pg/v1/status/{creds.merchant_id}/{txn_id}"
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": phonepe_x_verify("", path, creds.salt_key, creds.salt_index),
            "X-MERCHANT-ID": creds.merchant_id,
        }
        result = await self._request("GET", f"{self.config.phonepe_api_base}{path}", headers=headers)

        if result.get("success") and result.get("code") == "PAYMENT_SUCCESS":
            data = result.get("data") or {}
            return PaymentConfirmation(
                gateway_order_id=txn_id,
                payment_id=data.get("transactionId"),
                raw=result,
            )

        logger.warning("phonepe_payment_not_completed", merchant_transaction_id=txn_id, code=result.get("code"))
        raise VerificationFailedError(
            result.get("message") or "Payment verification failed",
            gateway=self.provider.value,
        )

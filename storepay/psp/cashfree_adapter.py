"""Cashfree PSP Adapter Implementation (PG orders API)."""
import re
import time

from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, ValidationError, VerificationFailedError
from storepay.payments.money import as_decimal
from storepay.payments.return_urls import build_return_url
from storepay.payments.types import (
    CashfreeCredentials,
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)

ORDER_ID_MAX_LENGTH = 45


def cashfree_order_id(order_number: str) -> str:
    suffix = f"_{int(time.time() * 1000)}"
    number = re.sub(r"[^A-Za-z0-9_-]", "", order_number)
    return f"CF_{number}"[: ORDER_ID_MAX_LENGTH - len(suffix)] + suffix


class CashfreeAdapter(PSPAdapter):
    """Cashfree: server creates the order, checkout opens it by session id."""

    provider = GatewayId.CASHFREE
    display_name = "Cashfree"
    credentials_class = CashfreeCredentials

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-api-version": self.config.CASHFREE_API_VERSION,
            "x-client-id": self.credentials.app_id,
            "x-client-secret": self.credentials.secret_key,
        }

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        cf_order_id = cashfree_order_id(order.order_number)
        return_url = build_return_url(
            self.config.STOREFRONT_BASE_URL,
            self.provider,
            order.order_id,
            context.store_id,
            context.store_slug,
            extra={"cfOrderId": cf_order_id},
        )
        payload = {
            "order_id": cf_order_id,
            # Cashfree takes major units
            "order_amount": float(as_decimal(order.amount)),
            "order_currency": order.currency.upper(),
            "customer_details": {
                "customer_id": re.sub(r"[^A-Za-z0-9_-]", "", order.customer_phone) or cf_order_id,
                "customer_name": order.customer_name,
                "customer_phone": order.customer_phone,
                "customer_email": order.customer_email or "customer@example.com",
            },
            "order_meta": {"return_url": return_url},
            "order_note": f"Order {order.order_number}",
        }
        data = await self._request(
            "POST",
            f"{self.config.cashfree_api_base}/orders",
            json=payload,
            headers=self._headers(),
        )
        session_id = data.get("payment_session_id")
        if not session_id:
            raise GatewayError("No payment session received", gateway=self.provider.value)

        logger.info("cashfree_order_created", gateway_order_id=cf_order_id, order_number=order.order_number)
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=data.get("order_id") or cf_order_id,
            client_session_token=session_id,
            public_key=self.credentials.app_id,
            currency=order.currency.upper(),
            return_url=return_url,
            sandbox=self.config.GATEWAY_SANDBOX,
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        cf_order_id = request.gateway_order_id
        if not cf_order_id:
            raise ValidationError("cfOrderId is required", gateway=self.provider.value)

        payments = await self._request(
            "GET",
            f"{self.config.cashfree_api_base}/orders/{cf_order_id}/payments",
            headers=self._headers(),
        )
        if isinstance(payments, dict):
            # older API versions wrap the list
            payments = payments.get("data") or []

        successful = [p for p in payments if isinstance(p, dict) and p.get("payment_status") == "SUCCESS"]
        if not successful:
            statuses = [p.get("payment_status") for p in payments if isinstance(p, dict)]
            logger.warning("cashfree_payment_not_completed", gateway_order_id=cf_order_id, statuses=statuses)
            raise VerificationFailedError("Payment not completed", gateway=self.provider.value)

        payment = successful[0]
        return PaymentConfirmation(
            gateway_order_id=cf_order_id,
            payment_id=str(payment.get("cf_payment_id")) if payment.get("cf_payment_id") is not None else None,
            raw=payment,
        )

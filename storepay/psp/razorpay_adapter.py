"""Razorpay PSP Adapter Implementation."""
import base64

from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, SignatureMismatchError, ValidationError
from storepay.payments.money import to_minor_units
from storepay.payments.signatures import verify_razorpay_signature
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    RazorpayCredentials,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)

ORDER_ID_PREFIX = "order_"
RECEIPT_MAX_LENGTH = 40


class RazorpayAdapter(PSPAdapter):
    """Razorpay orders API + checkout signature verification."""

    provider = GatewayId.RAZORPAY
    display_name = "Razorpay"
    credentials_class = RazorpayCredentials
    supported_currencies = frozenset({"INR", "USD", "EUR", "GBP", "SGD", "AED"})

    def _auth_header(self) -> dict:
        token = base64.b64encode(f"{self.credentials.key_id}:{self.credentials.key_secret}".encode()).decode()
        return {"Authorization": f"Basic {token}"}

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        currency = order.currency.upper()
        payload = {
            "amount": to_minor_units(order.amount, currency),
            "currency": currency,
            "receipt": f"order_{order.order_number}"[:RECEIPT_MAX_LENGTH],
            "payment_capture": 1,
            "notes": {
                "store_id": context.store_id,
                "order_id": order.order_id,
                "order_number": order.order_number,
            },
        }
        data = await self._request(
            "POST",
            f"{self.config.RAZORPAY_API_BASE}/v1/orders",
            json=payload,
            headers=self._auth_header(),
        )
        order_id = data.get("id") or ""
        if not order_id.startswith(ORDER_ID_PREFIX):
            logger.error("razorpay_invalid_order_id", order_id=order_id)
            raise GatewayError("Invalid order ID format", gateway=self.provider.value)

        logger.info(
            "razorpay_order_created",
            gateway_order_id=order_id,
            order_number=order.order_number,
            amount=data.get("amount"),
            currency=data.get("currency"),
        )
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=order_id,
            public_key=self.credentials.key_id,
            amount_minor=data.get("amount", payload["amount"]),
            currency=data.get("currency", currency),
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        if not (request.gateway_order_id and request.gateway_payment_id and request.signature):
            raise ValidationError(
                "razorpay_order_id, razorpay_payment_id and razorpay_signature are required",
                gateway=self.provider.value,
            )
        valid = verify_razorpay_signature(
            request.gateway_order_id,
            request.gateway_payment_id,
            request.signature,
            self.credentials.key_secret,
        )
        if not valid:
            logger.warning(
                "razorpay_signature_mismatch",
                gateway_order_id=request.gateway_order_id,
                payment_id=request.gateway_payment_id,
            )
            raise SignatureMismatchError("Invalid payment signature", gateway=self.provider.value)

        return PaymentConfirmation(
            gateway_order_id=request.gateway_order_id,
            payment_id=request.gateway_payment_id,
            raw={
                "razorpay_order_id": request.gateway_order_id,
                "razorpay_payment_id": request.gateway_payment_id,
                "razorpay_signature": request.signature,
            },
        )

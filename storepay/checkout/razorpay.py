"""Razorpay Checkout (modal)."""
from typing import Any, Dict

from storepay.payments.types import GatewayId, PaymentResult, VerifyPaymentRequest
from .base import CheckoutAttempt, ModalCheckoutAdapter
from .responses import RazorpayFailure, RazorpaySuccess
from .sdk import SDK_GLOBALS, SDK_SOURCES

THEME_COLOR = "#3B82F6"


class RazorpayCheckout(ModalCheckoutAdapter):
    gateway = GatewayId.RAZORPAY
    display_name = "Razorpay"
    sdk_global = SDK_GLOBALS[GatewayId.RAZORPAY]
    sdk_src = SDK_SOURCES[GatewayId.RAZORPAY]

    def sdk_init(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        order = attempt.order
        created = attempt.created
        return {
            "key": created.public_key or self.credentials.key_id,
            "amount": created.amount_minor,
            "currency": created.currency,
            "name": "Order Payment",
            "description": f"Order #{order.order_number}",
            "order_id": created.gateway_order_id,
            "prefill": {
                "name": order.customer_name,
                "email": order.customer_email or "",
                "contact": order.customer_phone,
            },
            "notes": {"order_number": order.order_number},
            "theme": {"color": THEME_COLOR},
        }

    def checkout_options(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        # Razorpay takes everything in the constructor; open() has no arguments
        return {}

    def map_success(self, payload: Any) -> PaymentResult:
        native = RazorpaySuccess.model_validate(payload)
        return PaymentResult(
            success=True,
            payment_id=native.razorpay_payment_id,
            gateway_order_id=native.razorpay_order_id,
            signature=native.razorpay_signature,
            response=payload,
        )

    def map_failure(self, payload: Any) -> Dict[str, Any]:
        # payment.failed carries {error: {code, description, reason, ...}}
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            RazorpayFailure.model_validate(payload)
            return payload["error"]
        return super().map_failure(payload)

    def verification_request(self, payload: Any, attempt: CheckoutAttempt) -> VerifyPaymentRequest:
        native = RazorpaySuccess.model_validate(payload)
        return VerifyPaymentRequest(
            order_id=attempt.order.order_id or None,
            gateway_order_id=native.razorpay_order_id,
            gateway_payment_id=native.razorpay_payment_id,
            signature=native.razorpay_signature,
        )

"""Stripe Payment Element (confirmPayment with a return_url)."""
from typing import Any, Dict, Mapping

from storepay.payments.types import GatewayId, PaymentResult, VerifyPaymentRequest
from .base import CheckoutAttempt, ModalCheckoutAdapter
from .responses import StripeConfirmResult
from .sdk import SDK_GLOBALS, SDK_SOURCES

# the order service only accepts succeeded intents; processing ones settle later
CONFIRMED_STATUSES = frozenset({"succeeded"})
PENDING_STATUSES = frozenset({"processing"})


class StripeCheckout(ModalCheckoutAdapter):
    gateway = GatewayId.STRIPE
    display_name = "Stripe"
    sdk_global = SDK_GLOBALS[GatewayId.STRIPE]
    sdk_src = SDK_SOURCES[GatewayId.STRIPE]

    def sdk_init(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        return {"key": attempt.created.public_key or self.credentials.publishable_key}

    def checkout_options(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        return {
            "method": "confirmPayment",
            "clientSecret": attempt.created.client_session_token,
            "confirmParams": {"return_url": attempt.created.return_url},
            "redirect": "if_required",
        }

    def map_success(self, payload: Any) -> PaymentResult:
        native = StripeConfirmResult.model_validate(payload or {})
        if native.error is not None:
            return PaymentResult(success=False, error=native.error.message, response=payload)
        intent = native.payment_intent
        if intent is not None and intent.status in PENDING_STATUSES:
            return PaymentResult(success=False, pending=True, error="Payment is processing",
                                 gateway_order_id=intent.id, response=payload)
        if intent is None or intent.status not in CONFIRMED_STATUSES:
            return PaymentResult(success=False, error="Payment was not confirmed", response=payload)
        return PaymentResult(success=True, payment_id=intent.id, gateway_order_id=intent.id, response=payload)

    def map_failure(self, payload: Any) -> Dict[str, Any]:
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            return {**error, "description": error.get("message")}
        return super().map_failure(payload)

    def verification_request(self, payload: Any, attempt: CheckoutAttempt) -> VerifyPaymentRequest:
        native = StripeConfirmResult.model_validate(payload or {})
        intent_id = native.payment_intent.id if native.payment_intent else attempt.created.gateway_order_id
        return VerifyPaymentRequest(order_id=attempt.order.order_id or None, gateway_order_id=intent_id)

    def _return_fields(self, params: Mapping[str, str]) -> Dict[str, str]:
        status = params.get("redirect_status")
        return {"redirect_status": status} if status else {}

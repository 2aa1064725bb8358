"""Cashfree Checkout (drop-in modal opened by payment session id)."""
from typing import Any, Dict

from storepay.payments.types import GatewayId, PaymentResult
from .base import CheckoutAttempt, ModalCheckoutAdapter
from .responses import CashfreeCheckoutResult
from .sdk import SDK_GLOBALS, SDK_SOURCES


class CashfreeCheckout(ModalCheckoutAdapter):
    gateway = GatewayId.CASHFREE
    display_name = "Cashfree"
    sdk_global = SDK_GLOBALS[GatewayId.CASHFREE]
    sdk_src = SDK_SOURCES[GatewayId.CASHFREE]

    def sdk_init(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        return {"mode": "sandbox" if attempt.created.sandbox else "production"}

    def checkout_options(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        return {
            "paymentSessionId": attempt.created.client_session_token,
            "redirectTarget": "_modal",
        }

    def map_success(self, payload: Any) -> PaymentResult:
        native = CashfreeCheckoutResult.model_validate(payload or {})
        if native.error is not None:
            return PaymentResult(success=False, error=native.error.message, response=payload)
        return PaymentResult(success=True, response=payload)

    def map_failure(self, payload: Any) -> Dict[str, Any]:
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            return {**error, "description": error.get("message")}
        return super().map_failure(payload)

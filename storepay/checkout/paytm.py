"""Paytm (redirect to the showPaymentPage for a txnToken)."""
from typing import Dict, Mapping

from storepay.payments.types import GatewayId, PaymentCallbacks, PaymentResult
from .base import CheckoutAdapter, CheckoutAttempt, CheckoutUx


class PaytmCheckout(CheckoutAdapter):
    gateway = GatewayId.PAYTM
    display_name = "Paytm"
    ux = CheckoutUx.REDIRECT

    async def _open(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        url = attempt.created.payment_url
        if not url:
            return PaymentResult(success=False, error="No payment URL received")
        await self.host.navigate(url)
        return PaymentResult(success=True, gateway_order_id=attempt.created.gateway_order_id)

    def _return_fields(self, params: Mapping[str, str]) -> Dict[str, str]:
        return {k: params[k] for k in ("ORDERID", "TXNID", "STATUS", "RESPCODE", "RESPMSG") if params.get(k)}

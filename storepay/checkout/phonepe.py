"""PhonePe (full-page redirect to the hosted pay page)."""
from storepay.payments.types import GatewayId, PaymentCallbacks, PaymentResult
from .base import CheckoutAdapter, CheckoutAttempt, CheckoutUx


class PhonePeCheckout(CheckoutAdapter):
    gateway = GatewayId.PHONEPE
    display_name = "PhonePe"
    ux = CheckoutUx.REDIRECT

    async def _open(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        url = attempt.created.payment_url
        if not url:
            return PaymentResult(success=False, error="No payment URL received")
        await self.host.navigate(url)
        return PaymentResult(success=True, gateway_order_id=attempt.created.gateway_order_id)

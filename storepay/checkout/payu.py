"""PayU (hosted form POST)."""
from typing import Dict, Mapping, Optional

from storepay.payments.types import GatewayId, PaymentCallbacks, PaymentResult, VerifyPaymentRequest
from .base import CheckoutAdapter, CheckoutAttempt, CheckoutUx
from .forms import build_payment_form

# fields PayU posts back that the reverse hash covers
RESPONSE_FIELDS = (
    "txnid", "mihpayid", "status", "amount", "productinfo", "firstname", "email",
    "udf1", "udf2", "udf3", "udf4", "udf5", "additionalCharges", "hash",
)


class PayUCheckout(CheckoutAdapter):
    gateway = GatewayId.PAYU
    display_name = "PayU"
    ux = CheckoutUx.FORM_POST

    async def _open(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        created = attempt.created
        if not created.payment_url or not created.form_params:
            return PaymentResult(success=False, error="No payment form received")
        # one-way navigation: the outcome only comes back on the return URL
        await self.host.submit_form(build_payment_form(created.payment_url, created.form_params))
        return PaymentResult(success=True, gateway_order_id=created.gateway_order_id)

    def parse_return(self, params: Mapping[str, str]) -> Optional[VerifyPaymentRequest]:
        request = super().parse_return(params)
        if request is not None and params.get("mihpayid"):
            request = request.model_copy(update={"gateway_payment_id": params["mihpayid"]})
        return request

    def _return_fields(self, params: Mapping[str, str]) -> Dict[str, str]:
        return {k: params[k] for k in RESPONSE_FIELDS if params.get(k) is not None}

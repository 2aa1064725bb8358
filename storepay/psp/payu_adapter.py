"""PayU PSP Adapter Implementation (hosted form post + verify_payment API)."""
import re
import time

from storepay.logging_config import get_logger
from storepay.payments.errors import SignatureMismatchError, ValidationError, VerificationFailedError
from storepay.payments.money import format_major
from storepay.payments.return_urls import build_relay_url
from storepay.payments.signatures import payu_command_hash, payu_request_hash, verify_payu_response
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    PayUCredentials,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)

TXNID_MAX_LENGTH = 25
DEFAULT_EMAIL = "customer@example.com"


def payu_txnid(order_number: str) -> str:
    suffix = str(int(time.time() * 1000))
    number = re.sub(r"[^A-Za-z0-9]", "", order_number)
    return f"PAYU{number}"[: TXNID_MAX_LENGTH - len(suffix)] + suffix


class PayUAdapter(PSPAdapter):
    """
    PayU needs no server-side order: create_order signs the form the browser
    posts to PayU. PayU posts the result back to our relay, and verification
    re-checks the reverse hash then asks PayU for the transaction status.
    """

    provider = GatewayId.PAYU
    display_name = "PayU"
    credentials_class = PayUCredentials

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        creds = self.credentials
        txnid = payu_txnid(order.order_number)
        amount = format_major(order.amount)
        productinfo = f"Order {order.order_number}"
        firstname = order.customer_name
        email = order.customer_email or DEFAULT_EMAIL
        relay_url = build_relay_url(
            self.config.FUNCTIONS_BASE_URL,
            self.provider,
            order.order_id,
            context.store_id,
            context.store_slug,
        )
        params = {
            "key": creds.merchant_key,
            "txnid": txnid,
            "amount": amount,
            "productinfo": productinfo,
            "firstname": firstname,
            "email": email,
            "phone": order.customer_phone,
            "surl": relay_url,
            "furl": relay_url,
            "hash": payu_request_hash(
                creds.merchant_key, txnid, amount, productinfo, firstname, email, creds.merchant_salt
            ),
        }
        logger.info("payu_form_signed", txnid=txnid, order_number=order.order_number)
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=txnid,
            payment_url=f"{self.config.payu_payment_base}/_payment",
            form_params=params,
            public_key=creds.merchant_key,
            currency=order.currency.upper(),
            return_url=relay_url,
            sandbox=self.config.GATEWAY_SANDBOX,
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        creds = self.credentials
        txnid = request.gateway_order_id or request.fields.get("txnid")
        if not txnid:
            raise ValidationError("txnid is required", gateway=self.provider.value)

        if request.fields.get("hash"):
            if not verify_payu_response(request.fields, creds.merchant_key, creds.merchant_salt):
                logger.warning("payu_hash_mismatch", txnid=txnid)
                raise SignatureMismatchError("Invalid payment hash", gateway=self.provider.value)

        command = "verify_payment"
        data = await self._request(
            "POST",
            f"{self.config.payu_info_base}/merchant/postservice.php?form=2",
            data={
                "key": creds.merchant_key,
                "command": command,
                "var1": txnid,
                "hash": payu_command_hash(creds.merchant_key, command, txnid, creds.merchant_salt),
            },
        )
        details = (data.get("transaction_details") or {}).get(txnid) or {}
        status = (details.get("status") or "").lower()
        if status != "success":
            logger.warning("payu_payment_not_completed", txnid=txnid, status=status)
            raise VerificationFailedError(
                details.get("error_Message") or "Payment not completed",
                gateway=self.provider.value,
            )
        return PaymentConfirmation(
            gateway_order_id=txnid,
            payment_id=details.get("mihpayid") or request.fields.get("mihpayid"),
            raw=details,
        )

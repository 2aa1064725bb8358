"""Paytm PSP Adapter Implementation (initiateTransaction + order status)."""
import json
import re
import time
from urllib.parse import urlencode

from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, ValidationError, VerificationFailedError
from storepay.payments.money import format_major
from storepay.payments.return_urls import build_relay_url
from storepay.payments.signatures import paytm_signature
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    PaytmCredentials,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)

ORDER_ID_MAX_LENGTH = 50


def paytm_order_id(order_number: str) -> str:
    suffix = f"_{int(time.time() * 1000)}"
    number = re.sub(r"[^A-Za-z0-9_@-]", "", order_number)
    return f"PTM_{number}"[: ORDER_ID_MAX_LENGTH - len(suffix)] + suffix


class PaytmAdapter(PSPAdapter):
    """Paytm: initiate a transaction for a txnToken, confirm via order status."""

    provider = GatewayId.PAYTM
    display_name = "Paytm"
    credentials_class = PaytmCredentials

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        creds = self.credentials
        order_id = paytm_order_id(order.order_number)
        relay_url = build_relay_url(
            self.config.FUNCTIONS_BASE_URL,
            self.provider,
            order.order_id,
            context.store_id,
            context.store_slug,
        )
        body = {
            "requestType": "Payment",
            "mid": creds.merchant_id,
            "websiteName": creds.website or "DEFAULT",
            "orderId": order_id,
            "callbackUrl": relay_url,
            "txnAmount": {"value": format_major(order.amount), "currency": order.currency.upper()},
            "userInfo": {
                "custId": re.sub(r"[^A-Za-z0-9_@-]", "", order.customer_phone) or order_id,
                "mobile": order.customer_phone,
                "email": order.customer_email or "",
            },
        }
        result = await self._post_signed(
            f"/theia/api/v1/initiateTransaction?{urlencode({'mid': creds.merchant_id, 'orderId': order_id})}",
            body,
        )
        result_info = (result.get("body") or {}).get("resultInfo") or {}
        txn_token = (result.get("body") or {}).get("txnToken")
        if result_info.get("resultStatus") != "S" or not txn_token:
            raise GatewayError(
                result_info.get("resultMsg") or "Paytm transaction initiation failed",
                gateway=self.provider.value,
            )

        query = urlencode({"mid": creds.merchant_id, "orderId": order_id, "txnToken": txn_token})
        logger.info("paytm_transaction_initiated", gateway_order_id=order_id, order_number=order.order_number)
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=order_id,
            client_session_token=txn_token,
            payment_url=f"{self.config.paytm_api_base}/theia/api/v1/showPaymentPage?{query}",
            public_key=creds.merchant_id,
            currency=order.currency.upper(),
            return_url=relay_url,
            sandbox=self.config.GATEWAY_SANDBOX,
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        order_id = request.gateway_order_id or request.fields.get("ORDERID")
        if not order_id:
            raise ValidationError("ORDERID is required", gateway=self.provider.value)

        result = await self._post_signed(
            "/v3/order/status",
            {"mid": self.credentials.merchant_id, "orderId": order_id},
        )
        body = result.get("body") or {}
        result_info = body.get("resultInfo") or {}
        if result_info.get("resultStatus") != "TXN_SUCCESS":
            logger.warning(
                "paytm_payment_not_completed",
                gateway_order_id=order_id,
                status=result_info.get("resultStatus"),
            )
            raise VerificationFailedError(
                result_info.get("resultMsg") or "Payment not completed",
                gateway=self.provider.value,
            )
        return PaymentConfirmation(gateway_order_id=order_id, payment_id=body.get("txnId"), raw=body)

    async def _post_signed(self, path: str, body: dict) -> dict:
        # the signature covers the exact serialisation that is sent
        body_json = json.dumps(body, separators=(",", ":"))
        signature = paytm_signature(body_json, self.credentials.merchant_key)
        content = f'{{"body":{body_json},"head":{{"signature":{json.dumps(signature)}}}}}'
        return await self._request(
            "POST",
            f"{self.config.paytm_api_base}{path}",
            content=content,
            headers={"Content-Type": "application/json"},
        )

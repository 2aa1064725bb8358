"""
Return URLs for redirect checkouts.

A redirect reloads the page, so everything needed afterwards (gateway, our
order id, the store) travels in the query string.
"""
from typing import Dict, Mapping, Optional
from urllib.parse import urlencode

from .types import GatewayId

# query parameter carrying each gateway's own reference
GATEWAY_REFERENCE_PARAM = {
    GatewayId.RAZORPAY: "razorpay_order_id",
    GatewayId.PHONEPE: "merchantTransactionId",
    GatewayId.CASHFREE: "cfOrderId",
    GatewayId.PAYU: "txnid",
    GatewayId.PAYTM: "ORDERID",
    GatewayId.STRIPE: "payment_intent",
}

SUCCESS_PATH = "/payment/success"
STRIPE_CALLBACK_PATH = "/payment/stripe/callback"


def return_state(gateway: GatewayId, order_id: str, store_id: str, store_slug: Optional[str] = None) -> Dict[str, str]:
    state = {"gateway": gateway.value, "orderId": order_id, "storeId": store_id}
    if store_slug:
        state["storeSlug"] = store_slug
    return state


def build_return_url(
    base_url: str,
    gateway: GatewayId,
    order_id: str,
    store_id: str,
    store_slug: Optional[str] = None,
    extra: Optional[Mapping[str, str]] = None,
    path: Optional[str] = None,
) -> str:
    """Storefront URL the customer lands on after leaving for the gateway."""
    if path is None:
        path = STRIPE_CALLBACK_PATH if gateway == GatewayId.STRIPE else SUCCESS_PATH
    params = return_state(gateway, order_id, store_id, store_slug)
    for key, value in (extra or {}).items():
        if value is not None:
            params[key] = str(value)
    return f"{base_url.rstrip('/')}{path}?{urlencode(params)}"


def build_relay_url(functions_base_url: str, gateway: GatewayId, order_id: str, store_id: str,
                    store_slug: Optional[str] = None) -> str:
    """Order-service URL a gateway posts its result to before the customer is sent on."""
    params = return_state(gateway, order_id, store_id, store_slug)
    return f"{functions_base_url.rstrip('/')}/payments/return/{gateway.value}?{urlencode(params)}"


def gateway_reference(gateway: GatewayId, params: Mapping[str, str]) -> Optional[str]:
    return params.get(GATEWAY_REFERENCE_PARAM[gateway]) or None

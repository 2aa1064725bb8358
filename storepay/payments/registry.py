"""
Payment method registry: which methods a store's checkout offers.
"""
from typing import List, Optional, Union

from .types import (
    COD_METHOD_ID,
    GATEWAY_ORDER,
    GatewayId,
    PaymentGatewayCredentials,
    PaymentMethod,
    PaymentMode,
)

# id -> (name, icon, color)
METHOD_DISPLAY = {
    GatewayId.RAZORPAY.value: ("Razorpay", "💳", "bg-blue-500"),
    GatewayId.PHONEPE.value: ("PhonePe", "📱", "bg-purple-500"),
    GatewayId.CASHFREE.value: ("Cashfree", "💰", "bg-green-500"),
    GatewayId.PAYU.value: ("PayU", "🔐", "bg-orange-500"),
    GatewayId.PAYTM.value: ("Paytm", "📲", "bg-sky-500"),
    GatewayId.STRIPE.value: ("Stripe", "💎", "bg-indigo-500"),
    COD_METHOD_ID: ("Cash on Delivery", "💵", "bg-gray-500"),
}

COD_FALLBACK_NOTICE = (
    "Online payments are not configured for this store yet. "
    "Orders will be placed as Cash on Delivery."
)


def _method(method_id: str) -> PaymentMethod:
    name, icon, color = METHOD_DISPLAY[method_id]
    return PaymentMethod(id=method_id, name=name, icon=icon, color=color, enabled=True)


def enabled_gateways(credentials: PaymentGatewayCredentials) -> List[GatewayId]:
    """Gateways that are enabled and carry their minimum public identifier, in display order."""
    gateways = []
    for gateway in GATEWAY_ORDER:
        creds = credentials.get(gateway)
        if creds is not None and creds.is_configured():
            gateways.append(gateway)
    return gateways


def compute_available_methods(
    credentials: PaymentGatewayCredentials,
    payment_mode: Union[PaymentMode, str],
) -> List[PaymentMethod]:
    """
    Ordered payment methods for a store's checkout.

    COD is appended when the store accepts it or when no online gateway is
    usable, so a store with nothing configured can still take orders.
    """
    methods = [_method(gateway.value) for gateway in enabled_gateways(credentials)]
    if PaymentMode(payment_mode) == PaymentMode.ONLINE_AND_COD or not methods:
        methods.append(_method(COD_METHOD_ID))
    return methods


def has_online_payment_gateways(credentials: PaymentGatewayCredentials) -> bool:
    return bool(enabled_gateways(credentials))


def fallback_notice(
    credentials: PaymentGatewayCredentials,
    payment_mode: Union[PaymentMode, str],
) -> Optional[str]:
    """Notice for an online-only store that has fallen back to COD."""
    if PaymentMode(payment_mode) == PaymentMode.ONLINE_ONLY and not has_online_payment_gateways(credentials):
        return COD_FALLBACK_NOTICE
    return None

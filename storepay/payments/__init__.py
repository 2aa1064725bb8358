"""
Payment domain shared by the order service and the checkout client.
"""
from .errors import (
    ConfigurationError,
    GatewayError,
    PaymentError,
    SdkLoadError,
    SignatureMismatchError,
    UnknownMethodError,
    ValidationError,
    VerificationFailedError,
)
from .registry import compute_available_methods, fallback_notice, has_online_payment_gateways
from .types import (
    COD_METHOD_ID,
    GATEWAY_ORDER,
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentCallbacks,
    PaymentGatewayCredentials,
    PaymentMethod,
    PaymentMode,
    PaymentResult,
    PaymentStatus,
    VerifyOutcome,
    VerifyPaymentRequest,
)

__all__ = [
    "COD_METHOD_ID",
    "GATEWAY_ORDER",
    "ConfigurationError",
    "CreatedOrder",
    "GatewayError",
    "GatewayId",
    "OrderDetails",
    "PaymentCallbacks",
    "PaymentError",
    "PaymentGatewayCredentials",
    "PaymentMethod",
    "PaymentMode",
    "PaymentResult",
    "PaymentStatus",
    "SdkLoadError",
    "SignatureMismatchError",
    "UnknownMethodError",
    "ValidationError",
    "VerificationFailedError",
    "VerifyOutcome",
    "VerifyPaymentRequest",
    "compute_available_methods",
    "fallback_notice",
    "has_online_payment_gateways",
]

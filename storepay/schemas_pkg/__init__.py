# storepay/schemas_pkg/__init__.py

# Function boundary schemas
from .payments import (
    CreateOrderAction,
    PaymentAction,
    StoreMethodsOut,
    VerifyPaymentAction,
)

__all__ = [
    "CreateOrderAction",
    "PaymentAction",
    "StoreMethodsOut",
    "VerifyPaymentAction",
]

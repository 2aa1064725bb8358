"""
Payment gateway types shared by the order service and the checkout client.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GatewayId(str, Enum):
    """Supported payment gateways."""
    RAZORPAY = "razorpay"
    PHONEPE = "phonepe"
    CASHFREE = "cashfree"
    PAYU = "payu"
    PAYTM = "paytm"
    STRIPE = "stripe"


# Presentation order of online methods
GATEWAY_ORDER: Tuple[GatewayId, ...] = (
    GatewayId.RAZORPAY,
    GatewayId.PHONEPE,
    GatewayId.CASHFREE,
    GatewayId.PAYU,
    GatewayId.PAYTM,
    GatewayId.STRIPE,
)

COD_METHOD_ID = "cod"


class PaymentMode(str, Enum):
    ONLINE_ONLY = "online_only"
    ONLINE_AND_COD = "online_and_cod"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# =====================================================
# CREDENTIALS
# =====================================================

class GatewayCredentials(BaseModel):
    """
    Credentials for one gateway account.

    Every field is either public (safe for checkout code) or secret (only
    ever read inside the order service).
    """
    model_config = ConfigDict(extra="ignore")

    enabled: bool = False

    public_fields: ClassVar[Tuple[str, ...]] = ()
    secret_fields: ClassVar[Tuple[str, ...]] = ()
    required_public_field: ClassVar[str] = ""

    @field_validator("*", mode="before")
    @classmethod
    def _stringify_numbers(cls, v, info):
        # salt_index and friends are sometimes stored as numbers
        if info.field_name != "enabled" and isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def is_configured(self) -> bool:
        """Enabled and carrying the minimum public identifier."""
        return bool(self.enabled and getattr(self, self.required_public_field, None))

    def has_secrets(self) -> bool:
        return all(getattr(self, name, None) for name in self.secret_fields)

    def public_view(self) -> "GatewayCredentials":
        return self.model_copy(update={name: None for name in self.secret_fields})


class RazorpayCredentials(GatewayCredentials):
    key_id: Optional[str] = None
    key_secret: Optional[str] = None

    public_fields: ClassVar[Tuple[str, ...]] = ("key_id",)
    secret_fields: ClassVar[Tuple[str, ...]] = ("key_secret",)
    required_public_field: ClassVar[str] = "key_id"


class PhonePeCredentials(GatewayCredentials):
    merchant_id: Optional[str] = None
    salt_key: Optional[str] = None
    salt_index: Optional[str] = None

    public_fields: ClassVar[Tuple[str, ...]] = ("merchant_id", "salt_index")
    secret_fields: ClassVar[Tuple[str, ...]] = ("salt_key",)
    required_public_field: ClassVar[str] = "merchant_id"

    def has_secrets(self) -> bool:
        # the index is needed alongside the key to build X-VERIFY
        return bool(self.salt_key and self.salt_index)


class CashfreeCredentials(GatewayCredentials):
    app_id: Optional[str] = None
    secret_key: Optional[str] = None

    public_fields: ClassVar[Tuple[str, ...]] = ("app_id",)
    secret_fields: ClassVar[Tuple[str, ...]] = ("secret_key",)
    required_public_field: ClassVar[str] = "app_id"


class PayUCredentials(GatewayCredentials):
    merchant_key: Optional[str] = None
    merchant_salt: Optional[str] = None

    public_fields: ClassVar[Tuple[str, ...]] = ("merchant_key",)
    secret_fields: ClassVar[Tuple[str, ...]] = ("merchant_salt",)
    required_public_field: ClassVar[str] = "merchant_key"


class PaytmCredentials(GatewayCredentials):
    merchant_id: Optional[str] = None
    merchant_key: Optional[str] = None
    website: Optional[str] = "DEFAULT"

    public_fields: ClassVar[Tuple[str, ...]] = ("merchant_id", "website")
    secret_fields: ClassVar[Tuple[str, ...]] = ("merchant_key",)
    required_public_field: ClassVar[str] = "merchant_id"


class StripeCredentials(GatewayCredentials):
    publishable_key: Optional[str] = None
    secret_key: Optional[str] = None

    public_fields: ClassVar[Tuple[str, ...]] = ("publishable_key",)
    secret_fields: ClassVar[Tuple[str, ...]] = ("secret_key",)
    required_public_field: ClassVar[str] = "publishable_key"


class PaymentGatewayCredentials(BaseModel):
    """Per-store credentials keyed by gateway id (stores.payment_gateway_credentials)."""
    model_config = ConfigDict(extra="ignore")

    razorpay: Optional[RazorpayCredentials] = None
    phonepe: Optional[PhonePeCredentials] = None
    cashfree: Optional[CashfreeCredentials] = None
    payu: Optional[PayUCredentials] = None
    paytm: Optional[PaytmCredentials] = None
    stripe: Optional[StripeCredentials] = None

    def get(self, gateway: Union[GatewayId, str]) -> Optional[GatewayCredentials]:
        return getattr(self, GatewayId(gateway).value)

    def public_view(self) -> "PaymentGatewayCredentials":
        """Copy with every secret blanked; the only form checkout code may see."""
        update = {}
        for gateway in GATEWAY_ORDER:
            creds = self.get(gateway)
            if creds is not None:
                update[gateway.value] = creds.public_view()
        return self.model_copy(update=update)


# =====================================================
# ORDERS & RESULTS
# =====================================================

class OrderDetails(BaseModel):
    """One checkout attempt's payment request. Amount is in major units (rupees)."""
    model_config = ConfigDict(frozen=True)

    order_id: str = ""
    order_number: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    amount: Decimal
    currency: str = "INR"
    gateway_order_id: Optional[str] = None

    def with_gateway_order(self, gateway_order_id: str) -> "OrderDetails":
        return self.model_copy(update={"gateway_order_id": gateway_order_id})


class PaymentMethod(BaseModel):
    id: str
    name: str
    icon: str
    color: str
    enabled: bool = True


class PaymentResult(BaseModel):
    """Adapter output. Carries no trust until the order service has verified it."""
    success: bool
    payment_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    signature: Optional[str] = None
    error: Optional[str] = None
    response: Optional[Any] = None
    # the gateway accepted the payment but has not settled it yet
    pending: bool = False


Callback = Callable[..., Union[None, Awaitable[None]]]


@dataclass
class PaymentCallbacks:
    """Reactions for one checkout attempt. Plain functions or coroutine functions."""
    on_success: Callback
    on_failure: Callback
    on_dismiss: Optional[Callback] = None
    on_pending: Optional[Callback] = None


class CreatedOrder(BaseModel):
    """What create_order hands back to checkout code. Client-safe fields only."""
    gateway: GatewayId
    order_id: str = ""
    gateway_order_id: str
    client_session_token: Optional[str] = None
    payment_url: Optional[str] = None
    form_params: Optional[Dict[str, str]] = None
    public_key: Optional[str] = None
    amount_minor: Optional[int] = None
    currency: str
    return_url: Optional[str] = None
    sandbox: bool = False


class VerifyPaymentRequest(BaseModel):
    order_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    signature: Optional[str] = None
    # raw fields a gateway posted back (PayU return, PhonePe callback, ...)
    fields: Dict[str, str] = Field(default_factory=dict)


class PaymentConfirmation(BaseModel):
    """A gateway's confirmation that money moved, as established server-side."""
    gateway_order_id: str
    payment_id: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class VerifyOutcome(BaseModel):
    verified: bool
    error: Optional[str] = None
    code: Optional[str] = None
    payment_id: Optional[str] = None
    already_verified: bool = False

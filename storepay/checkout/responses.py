"""
Native payloads the gateways' checkout UIs report back.

Each is parsed at the adapter boundary and mapped to PaymentResult; nothing
past the adapter looks at gateway-specific fields.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Native(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------
# RAZORPAY
# ---------------------------------------------

class RazorpaySuccess(_Native):
    razorpay_payment_id: str
    razorpay_order_id: str
    razorpay_signature: str


class RazorpayErrorDetail(_Native):
    code: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    source: Optional[str] = None
    step: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RazorpayFailure(_Native):
    error: RazorpayErrorDetail


# ---------------------------------------------
# CASHFREE
# ---------------------------------------------

class CashfreeError(_Native):
    code: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None


class CashfreeCheckoutResult(_Native):
    error: Optional[CashfreeError] = None
    redirect: Optional[bool] = None
    payment_details: Optional[Dict[str, Any]] = Field(default=None, alias="paymentDetails")


# ---------------------------------------------
# STRIPE
# ---------------------------------------------

class StripeError(_Native):
    type: Optional[str] = None
    code: Optional[str] = None
    decline_code: Optional[str] = None
    message: Optional[str] = None


class StripePaymentIntent(_Native):
    id: str
    status: str


class StripeConfirmResult(_Native):
    error: Optional[StripeError] = None
    payment_intent: Optional[StripePaymentIntent] = Field(default=None, alias="paymentIntent")

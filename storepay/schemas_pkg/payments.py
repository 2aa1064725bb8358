from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from storepay.payments.types import (
    GatewayId,
    OrderDetails,
    PaymentGatewayCredentials,
    PaymentMethod,
    PaymentMode,
    VerifyPaymentRequest,
)


class CreateOrderAction(BaseModel):
    action: Literal["create_order"]
    gateway: GatewayId
    store_id: str
    order: OrderDetails


class VerifyPaymentAction(BaseModel):
    action: Literal["verify_payment"]
    gateway: GatewayId
    store_id: str
    order_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    signature: Optional[str] = None
    fields: Dict[str, str] = Field(default_factory=dict)

    def to_request(self) -> VerifyPaymentRequest:
        return VerifyPaymentRequest(
            order_id=self.order_id,
            gateway_order_id=self.gateway_order_id,
            gateway_payment_id=self.gateway_payment_id,
            signature=self.signature,
            fields=self.fields,
        )


# "action" is required on both, so it alone decides which model a body matches
PaymentAction = Union[CreateOrderAction, VerifyPaymentAction]


class StoreMethodsOut(BaseModel):
    store_id: str
    payment_mode: PaymentMode
    methods: List[PaymentMethod]
    has_online_gateways: bool
    notice: Optional[str] = None
    # public halves only
    credentials: PaymentGatewayCredentials

"""Stripe PSP Adapter Implementation."""
from typing import Any, Dict

import anyio
import stripe

from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, ValidationError, VerificationFailedError
from storepay.payments.money import to_minor_units
from storepay.payments.return_urls import build_return_url
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    StripeCredentials,
    VerifyPaymentRequest,
)
from .adapter import OrderContext, PSPAdapter

logger = get_logger(__name__)


class StripeAdapter(PSPAdapter):
    """Stripe payment gateway adapter (PaymentIntents + Payment Element)."""

    provider = GatewayId.STRIPE
    display_name = "Stripe"
    credentials_class = StripeCredentials
    supported_currencies = None

    async def _call(self, fn, **kwargs) -> Any:
        # the SDK is blocking; keep it off the event loop
        try:
            return await anyio.to_thread.run_sync(lambda: fn(api_key=self.credentials.secret_key, **kwargs))
        except stripe.StripeError as e:
            message = getattr(e, "user_message", None) or str(e)
            logger.warning("stripe_request_failed", error=message, http_status=getattr(e, "http_status", None))
            raise GatewayError(
                f"Stripe API error: {message}",
                upstream_status=getattr(e, "http_status", None),
                gateway=self.provider.value,
            )

    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        currency = order.currency.lower()
        amount = to_minor_units(order.amount, currency)
        metadata: Dict[str, str] = {
            "store_id": context.store_id,
            "order_id": order.order_id,
            "order_number": order.order_number,
        }
        intent = await self._call(
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            receipt_email=order.customer_email or None,
            description=f"Order {order.order_number}",
            metadata=metadata,
        )
        return_url = build_return_url(
            self.config.STOREFRONT_BASE_URL,
            self.provider,
            order.order_id,
            context.store_id,
            context.store_slug,
        )
        logger.info("stripe_intent_created", gateway_order_id=intent.id, order_number=order.order_number)
        return CreatedOrder(
            gateway=self.provider,
            order_id=order.order_id,
            gateway_order_id=intent.id,
            client_session_token=intent.client_secret,
            public_key=self.credentials.publishable_key,
            amount_minor=amount,
            currency=currency.upper(),
            return_url=return_url,
        )

    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        intent_id = request.gateway_order_id or request.fields.get("payment_intent")
        if not intent_id:
            raise ValidationError("payment_intent is required", gateway=self.provider.value)

        intent = await self._call(stripe.PaymentIntent.retrieve, id=intent_id)
        if intent.status != "succeeded":
            logger.warning("stripe_payment_not_completed", gateway_order_id=intent_id, status=intent.status)
            raise VerificationFailedError(
                f"Payment not completed (status: {intent.status})",
                gateway=self.provider.value,
            )
        latest_charge = getattr(intent, "latest_charge", None)
        if latest_charge is not None and not isinstance(latest_charge, str):
            latest_charge = latest_charge.id
        return PaymentConfirmation(
            gateway_order_id=intent.id,
            payment_id=latest_charge or intent.id,
            raw={"id": intent.id, "status": intent.status, "amount": intent.amount, "currency": intent.currency},
        )

"""
Checkout Orchestrator: the caller-facing entry point of the checkout client.

`initiate_checkout` runs one attempt up to the point where the gateway UI is
open (modal) or the browser has been sent away (redirect, form post).
`resume_from_return_url` is the second half of the redirect flows, run on the
page the customer comes back to. Either way an order only counts as paid
once the order service has verified it.
"""
from typing import Dict, Mapping, Optional, Type, Union

from pydantic import BaseModel

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from storepay.payments.errors import UnknownMethodError
from storepay.payments.registry import compute_available_methods
from storepay.payments.types import (
    COD_METHOD_ID,
    GatewayId,
    OrderDetails,
    PaymentCallbacks,
    PaymentGatewayCredentials,
    PaymentMode,
    PaymentResult,
)
from .backend import BackendClient
from .base import AttemptState, CheckoutAdapter, CheckoutAttempt
from .cashfree import CashfreeCheckout
from .host import CheckoutHost
from .paytm import PaytmCheckout
from .payu import PayUCheckout
from .phonepe import PhonePeCheckout
from .razorpay import RazorpayCheckout
from .stripe import StripeCheckout

logger = get_logger(__name__)

CHECKOUT_ADAPTERS: Dict[GatewayId, Type[CheckoutAdapter]] = {
    GatewayId.RAZORPAY: RazorpayCheckout,
    GatewayId.PHONEPE: PhonePeCheckout,
    GatewayId.CASHFREE: CashfreeCheckout,
    GatewayId.PAYU: PayUCheckout,
    GatewayId.PAYTM: PaytmCheckout,
    GatewayId.STRIPE: StripeCheckout,
}


class ReturnOutcome(BaseModel):
    """Result of handling a return-URL redirect."""
    gateway: Optional[GatewayId] = None
    order_id: Optional[str] = None
    store_id: Optional[str] = None
    store_slug: Optional[str] = None
    verified: bool = False
    already_verified: bool = False
    payment_id: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None


class CheckoutOrchestrator:
    """Checkout for one store: method selection, attempt driving and verification."""

    def __init__(
        self,
        store_id: str,
        credentials: PaymentGatewayCredentials,
        payment_mode: Union[PaymentMode, str],
        backend: BackendClient,
        host: CheckoutHost,
        config: Optional[Settings] = None,
    ):
        self.store_id = store_id
        # checkout code never holds more than the public halves
        self.credentials = credentials.public_view()
        self.payment_mode = PaymentMode(payment_mode)
        self.backend = backend
        self.host = host
        self.config = config or settings
        self.last_attempt: Optional[CheckoutAttempt] = None

    @classmethod
    async def for_store(cls, store_id: str, backend: BackendClient, host: CheckoutHost) -> "CheckoutOrchestrator":
        listing = await backend.payment_methods(store_id)
        return cls(store_id, listing["credentials"], listing["payment_mode"], backend, host)

    def available_methods(self):
        return compute_available_methods(self.credentials, self.payment_mode)

    def adapter_for(self, method_id: str) -> CheckoutAdapter:
        """
        Raises:
            UnknownMethodError: method is not offered for this store
        """
        enabled = {m.id for m in self.available_methods()}
        if method_id not in enabled or method_id == COD_METHOD_ID:
            raise UnknownMethodError(f"Payment method not available: {method_id}")
        gateway = GatewayId(method_id)
        return CHECKOUT_ADAPTERS[gateway](self.credentials.get(gateway), self.backend, self.host, self.config)

    # ---------------------------------------------
    # Initiate
    # ---------------------------------------------

    async def initiate_checkout(
        self,
        order: OrderDetails,
        method_id: str,
        callbacks: PaymentCallbacks,
    ) -> PaymentResult:
        """
        Start a checkout attempt.

        Raises:
            UnknownMethodError: method is not enabled for this store
        """
        enabled = {m.id for m in self.available_methods()}
        if method_id not in enabled:
            logger.warning("checkout_unknown_method", store_id=self.store_id, method=method_id)
            raise UnknownMethodError(f"Payment method not available: {method_id}")

        if method_id == COD_METHOD_ID:
            logger.info("checkout_cod_selected", store_id=self.store_id, order_number=order.order_number)
            return PaymentResult(success=True)

        adapter = self.adapter_for(method_id)
        log = logger.bind(gateway=method_id, store_id=self.store_id, order_number=order.order_number)

        if not await adapter.load_client_sdk():
            log.warning("checkout_sdk_unavailable")
            return PaymentResult(success=False, error=adapter.sdk_error)

        attempt = await adapter.create_order(order, self.store_id)
        self.last_attempt = attempt
        if attempt.state != AttemptState.ORDERED:
            return attempt.result

        log.info("checkout_opening", gateway_order_id=attempt.created.gateway_order_id)
        # modal successes are verified by the adapter before callbacks.on_success runs
        return await adapter.open_checkout(attempt, callbacks)

    # ---------------------------------------------
    # Resume
    # ---------------------------------------------

    async def resume_from_return_url(self, params: Mapping[str, str]) -> ReturnOutcome:
        """
        Finish a redirect checkout from the return URL's query parameters.

        A missing gateway reference, or an error the relay attached, means the
        payment was not completed; it is never read as success.
        """
        outcome = ReturnOutcome(
            order_id=params.get("orderId") or None,
            store_id=params.get("storeId") or self.store_id,
            store_slug=params.get("storeSlug") or None,
        )
        try:
            gateway = GatewayId(params.get("gateway", ""))
        except ValueError:
            outcome.error, outcome.code = "Unknown payment gateway", UnknownMethodError.code
            return outcome
        outcome.gateway = gateway

        if params.get("error"):
            logger.warning("checkout_return_error", gateway=gateway.value, error=params.get("error"))
            outcome.error, outcome.code = "Payment could not be confirmed", params["error"]
            return outcome

        adapter = CHECKOUT_ADAPTERS[gateway](self.credentials.get(gateway), self.backend, self.host, self.config)
        request = adapter.parse_return(params)
        if request is None:
            outcome.error, outcome.code = "Payment not completed", "verification_failed"
            return outcome

        result = await self.backend.verify_payment(gateway, request, outcome.store_id)
        outcome.verified = result.verified
        outcome.already_verified = result.already_verified
        outcome.payment_id = result.payment_id
        outcome.error = result.error
        outcome.code = result.code
        logger.info("checkout_return_verified", gateway=gateway.value, verified=result.verified)
        return outcome

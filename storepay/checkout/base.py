"""
Checkout adapter base class and the per-attempt state machine.

An attempt moves init -> ordered -> succeeded | failed | dismissed. A modal
success passes through verifying while the order service checks it, and only
its answer decides between succeeded and failed. Resolved states are
terminal: events that arrive after resolution are ignored, and a new attempt
needs fresh order details.
"""
import inspect
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from storepay.payments.errors import PaymentError
from storepay.payments.return_urls import GATEWAY_REFERENCE_PARAM
from storepay.payments.types import (
    CreatedOrder,
    GatewayCredentials,
    GatewayId,
    OrderDetails,
    PaymentCallbacks,
    PaymentResult,
    VerifyOutcome,
    VerifyPaymentRequest,
)
from .backend import BackendClient
from .host import CheckoutHost, ModalEvents
from .sdk import SdkRegistry

logger = get_logger(__name__)


class AttemptState(str, Enum):
    INIT = "init"
    ORDERED = "ordered"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DISMISSED = "dismissed"


RESOLVED_STATES = frozenset({AttemptState.SUCCEEDED, AttemptState.FAILED, AttemptState.DISMISSED})


class CheckoutUx(str, Enum):
    MODAL = "modal"
    REDIRECT = "redirect"
    FORM_POST = "form_post"


class CheckoutAttempt:
    """One checkout attempt for one OrderDetails."""

    def __init__(self, gateway: GatewayId, order: OrderDetails, store_id: str):
        self.gateway = gateway
        self.order = order
        self.store_id = store_id
        self.state = AttemptState.INIT
        self.created: Optional[CreatedOrder] = None
        self.result: Optional[PaymentResult] = None
        # the order service's answer to a modal success
        self.verified: Optional[bool] = None

    @property
    def resolved(self) -> bool:
        return self.state in RESOLVED_STATES

    def mark_ordered(self, created: CreatedOrder) -> None:
        if self.state != AttemptState.INIT:
            raise RuntimeError(f"Cannot record an order on a {self.state.value} attempt")
        self.created = created
        self.order = self.order.with_gateway_order(created.gateway_order_id)
        self.state = AttemptState.ORDERED

    def begin_verification(self) -> None:
        if self.state != AttemptState.ORDERED:
            raise RuntimeError(f"Cannot verify a {self.state.value} attempt")
        self.state = AttemptState.VERIFYING

    def resolve(self, state: AttemptState, result: PaymentResult) -> bool:
        """Move to a terminal state. Returns False (and changes nothing) if already resolved."""
        if state not in RESOLVED_STATES:
            raise ValueError(f"{state.value} is not a resolved state")
        if self.resolved:
            logger.info("late_checkout_event_ignored", gateway=self.gateway.value, state=self.state.value,
                        received=state.value)
            return False
        self.state = state
        self.result = result
        return True

    def __repr__(self):
        return f"<CheckoutAttempt(gateway={self.gateway.value}, state={self.state.value})>"


async def invoke_callback(callback: Optional[Callable], *args) -> None:
    """Call a plain or coroutine callback. Errors in caller code are logged, not raised."""
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error("checkout_callback_failed", callback=getattr(callback, "__name__", repr(callback)),
                     error=str(e), exc_info=e)


class CheckoutAdapter(ABC):
    """
    Client-side half of a gateway integration.

    Holds the public half of the store's credentials only. Nothing here
    raises: failures come back as PaymentResult(success=False) or through
    the attempt's callbacks.
    """

    gateway: GatewayId
    display_name: str = ""
    ux: CheckoutUx = CheckoutUx.MODAL
    sdk_global: Optional[str] = None
    sdk_src: Optional[str] = None

    def __init__(
        self,
        credentials: Optional[GatewayCredentials],
        backend: BackendClient,
        host: CheckoutHost,
        config: Optional[Settings] = None,
    ):
        self.credentials = credentials.public_view() if credentials is not None else None
        self.backend = backend
        self.host = host
        self.config = config or settings

    @property
    def sdk_error(self) -> str:
        return f"Failed to load {self.display_name} SDK"

    def is_configured(self) -> bool:
        return bool(self.credentials is not None and self.credentials.is_configured())

    # ---------------------------------------------
    # Lifecycle
    # ---------------------------------------------

    async def load_client_sdk(self) -> bool:
        """Load the gateway's script once per process. Redirect gateways have none."""
        if not self.sdk_global:
            return True
        return await SdkRegistry.ensure_loaded(self.gateway, self.sdk_src, self.sdk_global, self.host)

    async def create_order(self, order: OrderDetails, merchant_id: str) -> CheckoutAttempt:
        """Have the order service create the gateway order; the attempt comes back ordered or failed."""
        attempt = CheckoutAttempt(self.gateway, order, merchant_id)
        try:
            created = await self.backend.create_order(self.gateway, order, merchant_id)
        except PaymentError as e:
            logger.warning("checkout_order_failed", gateway=self.gateway.value, code=e.code, error=e.message)
            attempt.resolve(AttemptState.FAILED, PaymentResult(success=False, error=e.message, response=e.to_dict()))
            return attempt
        except Exception as e:
            logger.error("checkout_order_failed", gateway=self.gateway.value, error=str(e), exc_info=e)
            attempt.resolve(AttemptState.FAILED, PaymentResult(success=False, error="Failed to create order"))
            return attempt

        attempt.mark_ordered(created)
        logger.info("checkout_order_created", gateway=self.gateway.value, gateway_order_id=created.gateway_order_id)
        return attempt

    async def open_checkout(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        """
        Drive the gateway's own UI.

        Modal gateways return success=True once the UI is open and report the
        outcome through `callbacks`. Redirect and form gateways return once
        the browser has been sent away; the outcome arrives on the return URL.
        """
        if attempt.state != AttemptState.ORDERED or attempt.created is None:
            return PaymentResult(success=False, error="Checkout opened before an order was created")
        try:
            return await self._open(attempt, callbacks)
        except Exception as e:
            logger.error("checkout_open_failed", gateway=self.gateway.value, error=str(e), exc_info=e)
            result = PaymentResult(success=False, error=f"Failed to open {self.display_name} checkout")
            if attempt.resolve(AttemptState.FAILED, result):
                await invoke_callback(callbacks.on_failure, {"code": "checkout_error", "description": result.error})
            return result

    @abstractmethod
    async def _open(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        pass

    # ---------------------------------------------
    # Verification mapping
    # ---------------------------------------------

    def verification_request(self, payload: Any, attempt: CheckoutAttempt) -> VerifyPaymentRequest:
        """What the order service needs to verify a modal success payload."""
        return VerifyPaymentRequest(
            order_id=attempt.order.order_id or None,
            gateway_order_id=attempt.created.gateway_order_id if attempt.created else None,
        )

    def parse_return(self, params: Mapping[str, str]) -> Optional[VerifyPaymentRequest]:
        """Verification request from return-URL query parameters; None when the gateway reference is missing."""
        reference = params.get(GATEWAY_REFERENCE_PARAM[self.gateway])
        if not reference:
            return None
        return VerifyPaymentRequest(
            order_id=params.get("orderId") or None,
            gateway_order_id=reference,
            fields=self._return_fields(params),
        )

    def _return_fields(self, params: Mapping[str, str]) -> Dict[str, str]:
        return {}


class ModalCheckoutAdapter(CheckoutAdapter):
    """Gateways whose SDK opens an in-page UI and reports through events."""

    ux = CheckoutUx.MODAL

    @abstractmethod
    def sdk_init(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        """Argument the SDK global is constructed with."""

    @abstractmethod
    def checkout_options(self, attempt: CheckoutAttempt) -> Dict[str, Any]:
        """Argument of the SDK's open/checkout call."""

    @abstractmethod
    def map_success(self, payload: Any) -> PaymentResult:
        """Native success payload -> PaymentResult; success=False when the payload reports a failure."""

    def map_failure(self, payload: Any) -> Dict[str, Any]:
        """Native failure payload as handed to on_failure, unmodified."""
        return payload if isinstance(payload, dict) else {"description": str(payload)}

    async def _open(self, attempt: CheckoutAttempt, callbacks: PaymentCallbacks) -> PaymentResult:
        def accepts(event: str) -> bool:
            # only an open, unanswered modal takes events
            if attempt.state == AttemptState.ORDERED:
                return True
            logger.info("late_checkout_event_ignored", gateway=self.gateway.value, state=attempt.state.value,
                        received=event)
            return False

        async def on_success(payload: Any) -> None:
            if not accepts("success"):
                return
            try:
                result = self.map_success(payload)
            except Exception as e:
                logger.warning("checkout_payload_unreadable", gateway=self.gateway.value, error=str(e))
                result = PaymentResult(success=False, error="Unreadable gateway response", response=payload)
            if result.pending:
                attempt.result = result
                logger.info("checkout_payment_pending", gateway=self.gateway.value)
                await invoke_callback(callbacks.on_pending, payload)
            elif result.success:
                attempt.begin_verification()
                await self._verify_success(attempt, payload, result, callbacks)
            else:
                await on_failure(payload)

        async def on_failure(payload: Any) -> None:
            if not accepts("failure"):
                return
            error = self.map_failure(payload)
            result = PaymentResult(success=False, error=error.get("description") or error.get("message"),
                                   response=payload)
            attempt.resolve(AttemptState.FAILED, result)
            logger.info("checkout_payment_failed", gateway=self.gateway.value, code=error.get("code"))
            await invoke_callback(callbacks.on_failure, error)

        async def on_dismiss() -> None:
            if not accepts("dismiss"):
                return
            # a closed modal is not a failure: no failure callback, no order change
            attempt.resolve(AttemptState.DISMISSED, PaymentResult(success=False, error="dismissed"))
            logger.info("checkout_dismissed", gateway=self.gateway.value)
            await invoke_callback(callbacks.on_dismiss)

        await self.host.open_modal(
            self.sdk_global,
            self.sdk_init(attempt),
            self.checkout_options(attempt),
            ModalEvents(on_success=on_success, on_failure=on_failure, on_dismiss=on_dismiss),
        )
        return PaymentResult(success=True, gateway_order_id=attempt.created.gateway_order_id)

    async def _verify_success(
        self,
        attempt: CheckoutAttempt,
        payload: Any,
        result: PaymentResult,
        callbacks: PaymentCallbacks,
    ) -> None:
        """Have the order service verify a modal success, then resolve the attempt from its answer."""
        try:
            request = self.verification_request(payload, attempt)
        except Exception as e:
            logger.warning("checkout_payload_unreadable", gateway=self.gateway.value, error=str(e))
            outcome = VerifyOutcome(verified=False, error="Unreadable gateway response", code="verification_failed")
        else:
            outcome = await self.backend.verify_payment(self.gateway, request, attempt.store_id)
        attempt.verified = outcome.verified

        if outcome.verified:
            attempt.resolve(AttemptState.SUCCEEDED, result.model_copy(update={"payment_id": outcome.payment_id}))
            logger.info("checkout_payment_verified", gateway=self.gateway.value, payment_id=outcome.payment_id)
            await invoke_callback(callbacks.on_success, payload)
            return

        error = {
            "code": outcome.code or "verification_failed",
            "description": outcome.error or "Payment verification failed",
        }
        attempt.resolve(AttemptState.FAILED, PaymentResult(success=False, error=error["description"], response=payload))
        logger.warning("checkout_verification_failed", gateway=self.gateway.value, code=error["code"])
        await invoke_callback(callbacks.on_failure, error)

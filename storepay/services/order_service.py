"""
Order Service: the only place gateway secrets are read.

Creates gateway-side orders for a store's checkout and verifies payments
server-side before an order is marked completed.
"""
from typing import Optional, Union

import anyio
import httpx

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from storepay.payments.errors import (
    ConfigurationError,
    SignatureMismatchError,
    ValidationError,
    VerificationFailedError,
)
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    VerifyOutcome,
    VerifyPaymentRequest,
)
from storepay.psp.adapter import OrderContext, PSPAdapter
from storepay.psp.dispatcher import PSPDispatcher
from storepay.storage import OrderPaymentRecord, StoreRecord, StoreRepository

logger = get_logger(__name__)


class OrderService:
    """Service for creating and verifying gateway payments on behalf of a store."""

    def __init__(
        self,
        repository: StoreRepository,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.repository = repository
        self.config = config or settings
        self.transport = transport

    # ---------------------------------------------
    # CREATE
    # ---------------------------------------------

    async def create_order(
        self,
        gateway: Union[GatewayId, str],
        order: OrderDetails,
        store_id: str,
    ) -> CreatedOrder:
        """
        Create the gateway-side order/session for one checkout attempt.

        Raises:
            ValidationError: bad amount, currency or customer fields (checked first)
            ConfigurationError: store unknown or gateway not usable
            GatewayError: gateway rejected the request
        """
        gateway = self._gateway(gateway)
        PSPDispatcher.adapter_class(gateway).validate_order(order)

        store = await self.load_store(store_id)
        adapter = self._adapter(gateway, store)

        log = logger.bind(gateway=gateway.value, store_id=store.id, order_number=order.order_number)
        log.info("gateway_order_requested", amount=str(order.amount), currency=order.currency)

        created = await adapter.create_order(order, OrderContext(store_id=store.id, store_slug=store.slug))

        if order.order_id:
            await anyio.to_thread.run_sync(
                self.repository.record_gateway_order,
                store.id,
                order.order_id,
                gateway.value,
                created.gateway_order_id,
            )
        log.info("gateway_order_created", gateway_order_id=created.gateway_order_id)
        return created

    # ---------------------------------------------
    # VERIFY
    # ---------------------------------------------

    async def verify_payment(
        self,
        gateway: Union[GatewayId, str],
        request: VerifyPaymentRequest,
        store_id: str,
    ) -> VerifyOutcome:
        """
        Verify a payment server-side and mark the order completed.

        Signature and status failures come back as verified=False; anything
        else (bad configuration, unknown order, unreachable gateway) raises.
        """
        gateway = self._gateway(gateway)
        log = logger.bind(gateway=gateway.value, store_id=store_id)

        order = await self._resolve_order(store_id, request)
        log = log.bind(order_id=order.id)

        if order.is_paid:
            log.info("payment_already_verified", payment_id=order.payment_id)
            return VerifyOutcome(verified=True, payment_id=order.payment_id, already_verified=True)

        if not order.gateway_order_id:
            log.warning("gateway_order_missing", received=request.gateway_order_id)
            return self._unverified("No gateway order was created for this order")

        if request.gateway_order_id and request.gateway_order_id != order.gateway_order_id:
            log.warning(
                "gateway_order_mismatch",
                expected=order.gateway_order_id,
                received=request.gateway_order_id,
            )
            return self._unverified("Gateway order does not belong to this order")

        owner = await anyio.to_thread.run_sync(
            self.repository.find_order_by_gateway_order, store_id, order.gateway_order_id
        )
        if owner is not None and owner.id != order.id:
            log.warning("gateway_order_claimed", gateway_order_id=order.gateway_order_id, owner=owner.id)
            return self._unverified("Gateway order belongs to another order")

        if not request.gateway_order_id:
            request = request.model_copy(update={"gateway_order_id": order.gateway_order_id})

        store = await self.load_store(store_id)
        adapter = self._adapter(gateway, store)

        try:
            confirmation = await adapter.verify_payment(request)
        except (SignatureMismatchError, VerificationFailedError) as e:
            log.warning("payment_verification_failed", code=e.code, error=e.message)
            return VerifyOutcome(verified=False, error=e.message, code=e.code)

        if confirmation.gateway_order_id != order.gateway_order_id:
            log.warning(
                "gateway_order_mismatch",
                expected=order.gateway_order_id,
                received=confirmation.gateway_order_id,
            )
            return self._unverified("Gateway order does not belong to this order")

        changed = await anyio.to_thread.run_sync(
            self.repository.mark_order_paid,
            store.id,
            order.id,
            gateway.value,
            confirmation.gateway_order_id,
            confirmation.payment_id,
            confirmation.raw,
        )
        if not changed:
            # a concurrent verification got there first
            log.info("payment_already_verified", payment_id=confirmation.payment_id)
            return VerifyOutcome(verified=True, payment_id=confirmation.payment_id, already_verified=True)

        log.info("payment_verified", payment_id=confirmation.payment_id)
        return VerifyOutcome(verified=True, payment_id=confirmation.payment_id)

    # ---------------------------------------------
    # Helpers
    # ---------------------------------------------

    @staticmethod
    def _gateway(gateway: Union[GatewayId, str]) -> GatewayId:
        try:
            return GatewayId(gateway)
        except ValueError:
            raise ConfigurationError(f"Unsupported payment gateway: {gateway}")

    @staticmethod
    def _unverified(message: str) -> VerifyOutcome:
        return VerifyOutcome(verified=False, error=message, code=VerificationFailedError.code)

    async def load_store(self, store_id: str) -> StoreRecord:
        if not store_id:
            raise ConfigurationError("Store id is required")
        store = await anyio.to_thread.run_sync(self.repository.get_store, store_id)
        if store is None:
            raise ConfigurationError("Store not found")
        return store

    def _adapter(self, gateway: GatewayId, store: StoreRecord) -> PSPAdapter:
        return PSPDispatcher.get_adapter(
            gateway,
            store.credentials.get(gateway),
            config=self.config,
            transport=self.transport,
        )

    async def _resolve_order(self, store_id: str, request: VerifyPaymentRequest) -> OrderPaymentRecord:
        order = None
        if request.order_id:
            order = await anyio.to_thread.run_sync(self.repository.get_order, store_id, request.order_id)
        elif request.gateway_order_id:
            order = await anyio.to_thread.run_sync(
                self.repository.find_order_by_gateway_order, store_id, request.gateway_order_id
            )
        else:
            raise ValidationError("order_id or gateway_order_id is required")
        if order is None:
            raise ValidationError("Order not found")
        return order

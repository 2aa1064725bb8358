"""
PSP Adapter Base Class and Interface.
Provides one server-side interface over the gateways' order and status APIs.
Adapters only ever run inside the order service; they hold the secret half
of a store's credentials for the length of one request.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional, Type

import httpx

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, ValidationError
from storepay.payments.types import (
    CreatedOrder,
    GatewayCredentials,
    GatewayId,
    OrderDetails,
    PaymentConfirmation,
    VerifyPaymentRequest,
)

logger = get_logger(__name__)

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class OrderContext:
    """Where an order comes from; used for return URLs and gateway notes."""
    store_id: str
    store_slug: Optional[str] = None


class PSPAdapter(ABC):
    """
    Base adapter for Payment Service Providers.
    All gateway implementations must inherit from this class.
    """

    provider: GatewayId
    display_name: str = ""
    credentials_class: Type[GatewayCredentials] = GatewayCredentials
    # None means any ISO 4217 alpha code
    supported_currencies: Optional[FrozenSet[str]] = frozenset({"INR"})

    def __init__(
        self,
        credentials: GatewayCredentials,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize PSP adapter with credentials.

        Args:
            credentials: Full (public + secret) credentials for one store
            config: Application settings (base URLs, sandbox flag, timeouts)
            transport: Optional httpx transport, used by tests
        """
        self.credentials = credentials
        self.config = config or settings
        self._transport = transport

    @classmethod
    def validate_order(cls, order: OrderDetails) -> None:
        """
        Reject orders the gateway cannot take before anything else happens.

        Raises:
            ValidationError: bad amount, currency or customer fields
        """
        if order.amount is None or Decimal(order.amount) <= 0:
            raise ValidationError("Amount must be greater than zero", gateway=cls.provider.value)
        currency = (order.currency or "").upper()
        if not _CURRENCY_RE.match(currency):
            raise ValidationError(f"Invalid currency code: {order.currency!r}", gateway=cls.provider.value)
        if cls.supported_currencies is not None and currency not in cls.supported_currencies:
            raise ValidationError(
                f"{cls.display_name} does not support {currency}",
                gateway=cls.provider.value,
            )
        if not order.order_number:
            raise ValidationError("Order number is required", gateway=cls.provider.value)
        if not order.customer_name or not order.customer_phone:
            raise ValidationError("Customer name and phone are required", gateway=cls.provider.value)

    @abstractmethod
    async def create_order(self, order: OrderDetails, context: OrderContext) -> CreatedOrder:
        """
        Create the gateway-side order or session.

        Returns:
            CreatedOrder with client-safe identifiers only

        Raises:
            GatewayError: If the gateway rejects the request
        """
        pass

    @abstractmethod
    async def verify_payment(self, request: VerifyPaymentRequest) -> PaymentConfirmation:
        """
        Establish server-side that a payment really happened.

        Raises:
            SignatureMismatchError: supplied signature does not match
            VerificationFailedError: gateway reports the payment as not completed
            GatewayError: gateway could not be queried
        """
        pass

    # ---------------------------------------------
    # HTTP helpers
    # ---------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.HTTP_TIMEOUT_SECONDS, transport=self._transport)

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                r = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("gateway_unreachable", gateway=self.provider.value, error=str(e))
            raise GatewayError(f"Could not reach {self.display_name}: {e}", gateway=self.provider.value)

        if r.status_code >= 400:
            message = self._upstream_message(r)
            logger.warning(
                "gateway_request_rejected",
                gateway=self.provider.value,
                status_code=r.status_code,
                error=message,
            )
            raise GatewayError(
                f"{self.display_name} API error: {message}",
                upstream_status=r.status_code,
                gateway=self.provider.value,
            )
        try:
            return r.json()
        except ValueError:
            raise GatewayError(
                f"{self.display_name} returned an invalid response",
                upstream_status=r.status_code,
                gateway=self.provider.value,
            )

    @staticmethod
    def _upstream_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                return error.get("description") or error.get("message") or str(error)
            return data.get("message") or error or data.get("error_description") or response.text
        return response.text

    def __repr__(self):
        return f"<{self.__class__.__name__}(provider={self.provider.value}, sandbox={self.config.GATEWAY_SANDBOX})>"

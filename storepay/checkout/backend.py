"""
Checkout-side client of the order service.

Only client-safe values cross this boundary: order details and gateway
references go out, gateway order ids and session tokens come back.
"""
from typing import Any, Dict, Optional, Union

import httpx

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from storepay.payments.errors import GatewayError, error_from_payload
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    OrderDetails,
    PaymentGatewayCredentials,
    PaymentMethod,
    PaymentMode,
    VerifyOutcome,
    VerifyPaymentRequest,
)

logger = get_logger(__name__)


class BackendClient:
    """Talks to the order service functions with the storefront's anon key."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        anon_key: Optional[str] = None,
    ):
        self.config = config or settings
        self.base_url = self.config.FUNCTIONS_BASE_URL.rstrip("/")
        self._transport = transport
        key = anon_key if anon_key is not None else self.config.SUPABASE_ANON_KEY
        self.headers = {"Content-Type": "application/json"}
        if key:
            self.headers["apikey"] = key
            self.headers["Authorization"] = f"Bearer {key}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.HTTP_TIMEOUT_SECONDS,
            transport=self._transport,
            headers=self.headers,
        )

    async def _post_action(self, payload: Dict[str, Any]) -> httpx.Response:
        async with self._client() as client:
            return await client.post(f"{self.base_url}/payments", json=payload)

    async def create_order(self, gateway: Union[GatewayId, str], order: OrderDetails, store_id: str) -> CreatedOrder:
        """
        Ask the order service to create the gateway order.

        Raises:
            PaymentError subclass rebuilt from the service's error body
        """
        gateway = GatewayId(gateway)
        payload = {
            "action": "create_order",
            "gateway": gateway.value,
            "store_id": store_id,
            "order": order.model_dump(mode="json"),
        }
        try:
            res = await self._post_action(payload)
        except httpx.HTTPError as e:
            raise GatewayError("Could not reach the payment service", gateway=gateway.value, details={"cause": str(e)})

        if res.status_code != 200:
            try:
                body = res.json()
            except ValueError:
                body = res.text
            err = error_from_payload(body, "Failed to create order")
            err.gateway = err.gateway or gateway.value
            logger.warning("create_order_rejected", gateway=gateway.value, status_code=res.status_code, code=err.code)
            raise err

        return CreatedOrder.model_validate(res.json())

    async def verify_payment(
        self,
        gateway: Union[GatewayId, str],
        request: VerifyPaymentRequest,
        store_id: str,
    ) -> VerifyOutcome:
        """Never raises: transport and service errors come back as verified=False."""
        gateway = GatewayId(gateway)
        payload = {"action": "verify_payment", "gateway": gateway.value, "store_id": store_id}
        payload.update(request.model_dump(exclude_none=True))
        try:
            res = await self._post_action(payload)
            if res.status_code != 200:
                err = error_from_payload(res.json(), "Failed to verify payment")
                logger.warning("verify_payment_rejected", gateway=gateway.value, status_code=res.status_code)
                return VerifyOutcome(verified=False, error=err.message, code=err.code)
            return VerifyOutcome.model_validate(res.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("verify_payment_unreachable", gateway=gateway.value, error=str(e))
            return VerifyOutcome(verified=False, error="Could not verify payment", code="gateway_error")

    async def payment_methods(self, store_id: str) -> Dict[str, Any]:
        """
        Methods, fallback notice and public credentials for a store's checkout.

        Served by the order service rather than the functions prefix, so the
        URL is derived from the functions base.
        """
        root = self.base_url
        if root.endswith("/functions/v1"):
            root = root[: -len("/functions/v1")]
        async with self._client() as client:
            res = await client.get(f"{root}/v1/stores/{store_id}/payment-methods")
        res.raise_for_status()
        data = res.json()
        return {
            "payment_mode": PaymentMode(data.get("payment_mode") or PaymentMode.ONLINE_ONLY.value),
            "methods": [PaymentMethod.model_validate(m) for m in data.get("methods", [])],
            "has_online_gateways": bool(data.get("has_online_gateways")),
            "notice": data.get("notice"),
            "credentials": PaymentGatewayCredentials.model_validate(data.get("credentials") or {}),
        }

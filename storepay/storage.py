"""
Store and order persistence used by the order service.

`SupabaseStoreRepository` is the production implementation. The client is
synchronous, so the order service calls it through a worker thread.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from supabase import Client

from storepay.logging_config import get_logger
from storepay.payments.types import PaymentGatewayCredentials, PaymentMode, PaymentStatus

logger = get_logger(__name__)

STORES_TABLE = "stores"
ORDERS_TABLE = "orders"


@dataclass
class StoreRecord:
    id: str
    slug: Optional[str] = None
    payment_mode: PaymentMode = PaymentMode.ONLINE_ONLY
    credentials: PaymentGatewayCredentials = field(default_factory=PaymentGatewayCredentials)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StoreRecord":
        try:
            mode = PaymentMode(row.get("payment_mode") or PaymentMode.ONLINE_ONLY.value)
        except ValueError:
            logger.warning("store_payment_mode_unknown", store_id=row.get("id"), payment_mode=row.get("payment_mode"))
            mode = PaymentMode.ONLINE_ONLY
        return cls(
            id=str(row["id"]),
            slug=row.get("slug"),
            payment_mode=mode,
            credentials=PaymentGatewayCredentials.model_validate(row.get("payment_gateway_credentials") or {}),
        )


@dataclass
class OrderPaymentRecord:
    """The payment columns of an order row."""
    id: str
    store_id: str
    order_number: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_gateway: Optional[str] = None
    gateway_order_id: Optional[str] = None
    payment_id: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderPaymentRecord":
        try:
            status = PaymentStatus(row.get("payment_status") or PaymentStatus.PENDING.value)
        except ValueError:
            status = PaymentStatus.PENDING
        return cls(
            id=str(row["id"]),
            store_id=str(row.get("store_id") or ""),
            order_number=row.get("order_number"),
            payment_status=status,
            payment_gateway=row.get("payment_gateway"),
            gateway_order_id=row.get("gateway_order_id"),
            payment_id=row.get("payment_id"),
        )


class StoreRepository(Protocol):
    def get_store(self, store_id: str) -> Optional[StoreRecord]: ...

    def get_order(self, store_id: str, order_id: str) -> Optional[OrderPaymentRecord]: ...

    def find_order_by_gateway_order(self, store_id: str, gateway_order_id: str) -> Optional[OrderPaymentRecord]: ...

    def record_gateway_order(self, store_id: str, order_id: str, gateway: str, gateway_order_id: str) -> None: ...

    def mark_order_paid(
        self,
        store_id: str,
        order_id: str,
        gateway: str,
        gateway_order_id: str,
        payment_id: Optional[str],
        response: Dict[str, Any],
    ) -> bool:
        """Set the order completed unless it already is. Returns whether a row changed."""
        ...


class SupabaseStoreRepository:
    """Supabase-backed StoreRepository."""

    ORDER_COLUMNS = "id, store_id, order_number, payment_status, payment_gateway, gateway_order_id, payment_id"

    def __init__(self, client: Client):
        self.client = client

    def get_store(self, store_id: str) -> Optional[StoreRecord]:
        res = (
            self.client.table(STORES_TABLE)
            .select("id, slug, payment_mode, payment_gateway_credentials")
            .eq("id", store_id)
            .limit(1)
            .execute()
        )
        return StoreRecord.from_row(res.data[0]) if res.data else None

    def get_order(self, store_id: str, order_id: str) -> Optional[OrderPaymentRecord]:
        res = (
            self.client.table(ORDERS_TABLE)
            .select(self.ORDER_COLUMNS)
            .eq("id", order_id)
            .eq("store_id", store_id)
            .limit(1)
            .execute()
        )
        return OrderPaymentRecord.from_row(res.data[0]) if res.data else None

    def find_order_by_gateway_order(self, store_id: str, gateway_order_id: str) -> Optional[OrderPaymentRecord]:
        res = (
            self.client.table(ORDERS_TABLE)
            .select(self.ORDER_COLUMNS)
            .eq("gateway_order_id", gateway_order_id)
            .eq("store_id", store_id)
            .limit(1)
            .execute()
        )
        return OrderPaymentRecord.from_row(res.data[0]) if res.data else None

    def record_gateway_order(self, store_id: str, order_id: str, gateway: str, gateway_order_id: str) -> None:
        (
            self.client.table(ORDERS_TABLE)
            .update({"gateway_order_id": gateway_order_id, "payment_gateway": gateway})
            .eq("id", order_id)
            .eq("store_id", store_id)
            .execute()
        )

    def mark_order_paid(
        self,
        store_id: str,
        order_id: str,
        gateway: str,
        gateway_order_id: str,
        payment_id: Optional[str],
        response: Dict[str, Any],
    ) -> bool:
        res = (
            self.client.table(ORDERS_TABLE)
            .update({
                "payment_status": PaymentStatus.COMPLETED.value,
                "payment_id": payment_id,
                "payment_gateway": gateway,
                "gateway_order_id": gateway_order_id,
                "payment_response": response,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", order_id)
            .eq("store_id", store_id)
            .neq("payment_status", PaymentStatus.COMPLETED.value)
            .execute()
        )
        return bool(res.data)

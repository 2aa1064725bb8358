"""In-memory stand-ins shared by the test modules."""
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx

from storepay.config import Settings
from storepay.payments.types import OrderDetails, PaymentGatewayCredentials, PaymentMode, PaymentStatus
from storepay.storage import OrderPaymentRecord, StoreRecord

STORE_ID = "store-1"

SECRETS = {
    "razorpay": "rzp_secret_value",
    "phonepe": "phonepe_salt_value",
    "cashfree": "cashfree_secret_value",
    "payu": "payu_salt_value",
    "paytm": "paytmkey12345678",
    "stripe": "sk_test_secret_value",
}

FULL_CREDENTIALS = {
    "razorpay": {"enabled": True, "key_id": "rzp_test_key", "key_secret": SECRETS["razorpay"]},
    "phonepe": {"enabled": True, "merchant_id": "PGMERCHANT", "salt_key": SECRETS["phonepe"], "salt_index": 1},
    "cashfree": {"enabled": True, "app_id": "cf_app", "secret_key": SECRETS["cashfree"]},
    "payu": {"enabled": True, "merchant_key": "K1", "merchant_salt": SECRETS["payu"]},
    "paytm": {"enabled": True, "merchant_id": "PAYTMMID", "merchant_key": SECRETS["paytm"], "website": "WEBSTAGING"},
    "stripe": {"enabled": True, "publishable_key": "pk_test_key", "secret_key": SECRETS["stripe"]},
}


def make_settings(**overrides) -> Settings:
    values = dict(
        ENVIRONMENT="test",
        FUNCTIONS_BASE_URL="https://fn.example.com/functions/v1",
        STOREFRONT_BASE_URL="https://shop.example.com",
        GATEWAY_SANDBOX=True,
        SUPABASE_ANON_KEY="anon-key",
    )
    values.update(overrides)
    return Settings(**values)


def make_order(**overrides) -> OrderDetails:
    values = dict(
        order_id="ord-1",
        order_number="1001",
        customer_name="Asha",
        customer_phone="9999999999",
        customer_email="asha@example.com",
        amount=Decimal("499.50"),
        currency="INR",
    )
    values.update(overrides)
    return OrderDetails(**values)


def make_store(credentials: Optional[Dict[str, Any]] = None, mode: PaymentMode = PaymentMode.ONLINE_ONLY) -> StoreRecord:
    return StoreRecord(
        id=STORE_ID,
        slug="asha-store",
        payment_mode=mode,
        credentials=PaymentGatewayCredentials.model_validate(FULL_CREDENTIALS if credentials is None else credentials),
    )


class InMemoryStoreRepository:
    """StoreRepository over dicts; records every write."""

    def __init__(self, stores: Optional[List[StoreRecord]] = None, orders: Optional[List[OrderPaymentRecord]] = None):
        self.stores = {s.id: s for s in (stores or [])}
        self.orders = {o.id: o for o in (orders or [])}
        self.paid_calls: List[Dict[str, Any]] = []

    def get_store(self, store_id):
        return self.stores.get(store_id)

    def get_order(self, store_id, order_id):
        order = self.orders.get(order_id)
        return order if order and order.store_id == store_id else None

    def find_order_by_gateway_order(self, store_id, gateway_order_id):
        for order in self.orders.values():
            if order.store_id == store_id and order.gateway_order_id == gateway_order_id:
                return order
        return None

    def record_gateway_order(self, store_id, order_id, gateway, gateway_order_id):
        order = self.get_order(store_id, order_id)
        if order is not None:
            order.gateway_order_id = gateway_order_id
            order.payment_gateway = gateway

    def mark_order_paid(self, store_id, order_id, gateway, gateway_order_id, payment_id, response):
        self.paid_calls.append({"order_id": order_id, "payment_id": payment_id, "response": response})
        order = self.get_order(store_id, order_id)
        if order is None or order.payment_status == PaymentStatus.COMPLETED:
            return False
        order.payment_status = PaymentStatus.COMPLETED
        order.payment_gateway = gateway
        order.gateway_order_id = gateway_order_id
        order.payment_id = payment_id
        return True


def pending_order(order_id: str = "ord-1", gateway_order_id: Optional[str] = None) -> OrderPaymentRecord:
    return OrderPaymentRecord(id=order_id, store_id=STORE_ID, order_number="1001", gateway_order_id=gateway_order_id)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def json_bodies(self) -> List[Any]:
        return [json.loads(r.content) for r in self.requests if r.content]


class FakeHost:
    """CheckoutHost double: records calls and lets tests fire modal events."""

    def __init__(self, globals_present=(), script_loads=True):
        self.globals = set(globals_present)
        self.script_loads = script_loads
        self.injected: List[str] = []
        self.modals: List[Dict[str, Any]] = []
        self.navigated: List[str] = []
        self.forms: List[Any] = []

    def has_global(self, name):
        return name in self.globals

    async def inject_script(self, src):
        self.injected.append(src)
        if not self.script_loads:
            return False
        self.globals.update({"Razorpay", "Cashfree", "Stripe"})
        return True

    async def open_modal(self, sdk_global, init, options, events):
        self.modals.append({"global": sdk_global, "init": init, "options": options, "events": events})

    async def navigate(self, url):
        self.navigated.append(url)

    async def submit_form(self, form):
        self.forms.append(form)

    @property
    def events(self):
        return self.modals[-1]["events"]


def gateway_handler(request: httpx.Request) -> httpx.Response:
    """Happy-path answers from every gateway API the order service calls."""
    path = request.url.path
    if path.endswith("/v1/orders"):
        return httpx.Response(200, json={"id": "order_RZP1", "amount": 49950, "currency": "INR"})
    if path.endswith("/pg/v1/pay"):
        return httpx.Response(200, json={
            "success": True,
            "code": "PAYMENT_INITIATED",
            "data": {"instrumentResponse": {"redirectInfo": {"url": "https://mercury.phonepe.com/pay/abc"}}},
        })
    if "/pg/v1/status/" in path:
        return httpx.Response(200, json={"success": True, "code": "PAYMENT_SUCCESS", "data": {"transactionId": "T900"}})
    if path.endswith("/orders") and request.method == "POST":
        sent = json.loads(request.content)
        return httpx.Response(200, json={"order_id": sent["order_id"], "payment_session_id": "session_abc"})
    if path.endswith("/initiateTransaction"):
        return httpx.Response(200, json={"body": {"resultInfo": {"resultStatus": "S"}, "txnToken": "tok_123"}})
    if path.endswith("/merchant/postservice.php"):
        txnid = parse_qs(request.content.decode())["var1"][0]
        return httpx.Response(200, json={
            "transaction_details": {txnid: {"status": "success", "mihpayid": "403993715"}},
        })
    return httpx.Response(404, json={"error": {"description": "unexpected call"}})

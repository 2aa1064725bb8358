import asyncio
import json
import unittest
from decimal import Decimal
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs

import httpx

from storepay.checkout import (
    AttemptState,
    BackendClient,
    CheckoutAttempt,
    CheckoutOrchestrator,
    HeadlessCheckoutHost,
    SdkRegistry,
    build_payment_form,
)
from storepay.checkout.base import invoke_callback
from storepay.checkout.cashfree import CashfreeCheckout
from storepay.checkout.stripe import StripeCheckout
from storepay.deps import get_order_service, get_store_repository
from storepay.main import app
from storepay.payments.errors import UnknownMethodError
from storepay.payments.signatures import payu_response_hash, razorpay_signature
from storepay.payments.types import (
    CreatedOrder,
    GatewayId,
    PaymentCallbacks,
    PaymentGatewayCredentials,
    PaymentMode,
    PaymentResult,
    PaymentStatus,
)
from storepay.services.order_service import OrderService
from tests.fakes import (
    FULL_CREDENTIALS,
    SECRETS,
    STORE_ID,
    FakeHost,
    InMemoryStoreRepository,
    RecordingTransport,
    gateway_handler,
    make_order,
    make_settings,
    make_store,
    pending_order,
)


class CallbackRecorder:
    def __init__(self):
        self.successes = []
        self.failures = []
        self.dismissals = 0
        self.pending = []

    def callbacks(self) -> PaymentCallbacks:
        def on_dismiss():
            self.dismissals += 1

        return PaymentCallbacks(
            on_success=self.successes.append,
            on_failure=self.failures.append,
            on_dismiss=on_dismiss,
            on_pending=self.pending.append,
        )


class CheckoutStackTestCase(unittest.IsolatedAsyncioTestCase):
    """Checkout client -> order service app -> mocked gateway APIs."""

    def setUp(self):
        SdkRegistry.clear_cache()
        self.config = make_settings()
        self.gateway = RecordingTransport(gateway_handler)
        self.repo = InMemoryStoreRepository(stores=[make_store()], orders=[pending_order()])
        service = OrderService(self.repo, config=self.config, transport=self.gateway)
        app.dependency_overrides[get_store_repository] = lambda: self.repo
        app.dependency_overrides[get_order_service] = lambda: service
        self.addCleanup(app.dependency_overrides.clear)

        self.backend = BackendClient(config=self.config, transport=httpx.ASGITransport(app=app))
        self.host = FakeHost()
        self.recorder = CallbackRecorder()

    def orchestrator(self, credentials=None, mode=PaymentMode.ONLINE_ONLY, host=None):
        if credentials is not None:
            self.repo.stores[STORE_ID] = make_store(credentials, mode)
        store = self.repo.stores[STORE_ID]
        return CheckoutOrchestrator(
            STORE_ID, store.credentials, mode, self.backend, host or self.host, config=self.config
        )

    def order_status(self):
        return self.repo.orders["ord-1"].payment_status


class TestRazorpayModal(CheckoutStackTestCase):
    def payload(self, signature=None):
        return {
            "razorpay_payment_id": "pay_1",
            "razorpay_order_id": "order_RZP1",
            "razorpay_signature": signature or razorpay_signature("order_RZP1", "pay_1", SECRETS["razorpay"]),
        }

    async def open(self):
        orchestrator = self.orchestrator()
        result = await orchestrator.initiate_checkout(make_order(), "razorpay", self.recorder.callbacks())
        return orchestrator, result

    async def test_modal_opened_with_public_options_only(self):
        _, result = await self.open()

        self.assertTrue(result.success)
        self.assertEqual(result.gateway_order_id, "order_RZP1")
        self.assertEqual(self.host.injected, ["https://checkout.razorpay.com/v1/checkout.js"])
        modal = self.host.modals[0]
        self.assertEqual(modal["global"], "Razorpay")
        init = modal["init"]
        self.assertEqual(init["key"], "rzp_test_key")
        self.assertEqual(init["order_id"], "order_RZP1")
        self.assertEqual(init["amount"], 49950)
        self.assertEqual(init["prefill"]["contact"], "9999999999")
        self.assertNotIn(SECRETS["razorpay"], json.dumps(init))

    async def test_success_is_verified_before_callback(self):
        orchestrator, _ = await self.open()
        payload = self.payload()

        await self.host.events.on_success(payload)

        self.assertEqual(self.recorder.successes, [payload])
        self.assertEqual(self.recorder.failures, [])
        self.assertEqual(self.order_status(), PaymentStatus.COMPLETED)
        self.assertTrue(orchestrator.last_attempt.verified)
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.SUCCEEDED)
        self.assertEqual(orchestrator.last_attempt.result.payment_id, "pay_1")

    async def test_attempt_verifying_until_service_answers(self):
        orchestrator, _ = await self.open()
        verify = self.backend.verify_payment
        seen = []

        async def verify_and_record(*args):
            seen.append(orchestrator.last_attempt.state)
            # the modal reporting again mid-verification changes nothing
            await self.host.events.on_failure({"error": {"code": "LATE", "description": "late"}})
            await self.host.events.on_dismiss()
            return await verify(*args)

        self.backend.verify_payment = verify_and_record
        await self.host.events.on_success(self.payload())

        self.assertEqual(seen, [AttemptState.VERIFYING])
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.SUCCEEDED)
        self.assertEqual(self.recorder.failures, [])
        self.assertEqual(self.recorder.dismissals, 0)
        self.assertEqual(len(self.recorder.successes), 1)

    async def test_forged_success_reported_as_failure(self):
        orchestrator, _ = await self.open()
        good = self.payload()["razorpay_signature"]
        forged = good[:-1] + ("0" if good[-1] != "0" else "1")

        await self.host.events.on_success(self.payload(forged))

        self.assertEqual(self.recorder.successes, [])
        self.assertEqual(self.recorder.failures[0]["code"], "signature_mismatch")
        self.assertEqual(self.order_status(), PaymentStatus.PENDING)
        self.assertFalse(orchestrator.last_attempt.verified)
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.FAILED)
        self.assertEqual(orchestrator.last_attempt.result.error, "Invalid payment signature")

    async def test_failure_payload_passed_through(self):
        orchestrator, _ = await self.open()
        error = {
            "code": "BAD_REQUEST_ERROR",
            "description": "Payment failed",
            "source": "customer",
            "step": "payment_authentication",
            "reason": "payment_failed",
            "metadata": {"order_id": "order_RZP1", "payment_id": "pay_1"},
        }

        await self.host.events.on_failure({"error": error})

        self.assertEqual(self.recorder.failures, [error])
        self.assertEqual(self.repo.paid_calls, [])
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.FAILED)
        self.assertEqual(orchestrator.last_attempt.result.error, "Payment failed")

    async def test_dismiss_only_calls_dismiss(self):
        orchestrator, _ = await self.open()

        await self.host.events.on_dismiss()
        # events after the attempt resolved are ignored
        await self.host.events.on_success(self.payload())
        await self.host.events.on_dismiss()

        self.assertEqual(self.recorder.dismissals, 1)
        self.assertEqual(self.recorder.failures, [])
        self.assertEqual(self.recorder.successes, [])
        self.assertEqual(self.order_status(), PaymentStatus.PENDING)
        self.assertEqual(self.repo.paid_calls, [])
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.DISMISSED)

    async def test_sdk_failure_stops_before_order(self):
        orchestrator = self.orchestrator(host=FakeHost(script_loads=False))
        result = await orchestrator.initiate_checkout(make_order(), "razorpay", self.recorder.callbacks())

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Failed to load Razorpay SDK")
        self.assertEqual(self.gateway.requests, [])

    async def test_server_validation_error_surfaces(self):
        orchestrator = self.orchestrator()
        result = await orchestrator.initiate_checkout(
            make_order(amount=Decimal("-5")), "razorpay", self.recorder.callbacks()
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Amount must be greater than zero")
        self.assertEqual(result.response["code"], "validation_error")
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.FAILED)
        self.assertEqual(self.host.modals, [])
        self.assertEqual(self.gateway.requests, [])


class TestStripeElement(CheckoutStackTestCase):
    async def open(self):
        orchestrator = self.orchestrator()
        intent = MagicMock(id="pi_123", client_secret="pi_123_secret_abc")
        with patch("stripe.PaymentIntent.create", return_value=intent):
            result = await orchestrator.initiate_checkout(make_order(), "stripe", self.recorder.callbacks())
        self.assertTrue(result.success)
        return orchestrator

    async def test_processing_is_pending_not_failed(self):
        orchestrator = await self.open()
        payload = {"paymentIntent": {"id": "pi_123", "status": "processing"}}

        with patch("stripe.PaymentIntent.retrieve") as retrieve:
            await self.host.events.on_success(payload)
            retrieve.assert_not_called()

        self.assertEqual(self.recorder.pending, [payload])
        self.assertEqual(self.recorder.failures, [])
        self.assertEqual(self.recorder.successes, [])
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.ORDERED)
        self.assertTrue(orchestrator.last_attempt.result.pending)
        self.assertEqual(self.order_status(), PaymentStatus.PENDING)

    async def test_succeeded_is_verified(self):
        orchestrator = await self.open()
        intent = MagicMock(id="pi_123", status="succeeded", latest_charge="ch_1", amount=49950, currency="inr")

        with patch("stripe.PaymentIntent.retrieve", return_value=intent):
            await self.host.events.on_success({"paymentIntent": {"id": "pi_123", "status": "succeeded"}})

        self.assertEqual(orchestrator.last_attempt.state, AttemptState.SUCCEEDED)
        self.assertEqual(orchestrator.last_attempt.result.payment_id, "ch_1")
        self.assertEqual(self.order_status(), PaymentStatus.COMPLETED)


class TestRedirectAndFormCheckouts(CheckoutStackTestCase):
    async def test_payu_form_posted_to_gateway(self):
        orchestrator = self.orchestrator()
        result = await orchestrator.initiate_checkout(
            make_order(amount=Decimal("100")), "payu", self.recorder.callbacks()
        )

        self.assertTrue(result.success)
        form = self.host.forms[0]
        created = orchestrator.last_attempt.created
        self.assertEqual(form.action, "https://test.payu.in/_payment")
        self.assertEqual(form.fields, created.form_params)
        self.assertEqual(form.fields["key"], "K1")
        self.assertEqual(form.fields["amount"], "100.00")
        self.assertEqual(self.host.injected, [])
        # the outcome only arrives on the return URL
        self.assertEqual(orchestrator.last_attempt.state, AttemptState.ORDERED)

    async def test_phonepe_navigates_to_pay_page(self):
        orchestrator = self.orchestrator()
        result = await orchestrator.initiate_checkout(make_order(), "phonepe", self.recorder.callbacks())

        self.assertTrue(result.success)
        self.assertEqual(self.host.navigated, ["https://mercury.phonepe.com/pay/abc"])
        self.assertEqual(self.repo.orders["ord-1"].gateway_order_id, result.gateway_order_id)

    async def test_paytm_navigates_with_token(self):
        orchestrator = self.orchestrator()
        await orchestrator.initiate_checkout(make_order(), "paytm", self.recorder.callbacks())
        self.assertIn("txnToken=tok_123", self.host.navigated[0])


class TestMethodSelection(CheckoutStackTestCase):
    async def test_cod_needs_no_gateway(self):
        orchestrator = self.orchestrator(credentials={})
        self.assertEqual([m.id for m in orchestrator.available_methods()], ["cod"])

        result = await orchestrator.initiate_checkout(make_order(), "cod", self.recorder.callbacks())

        self.assertTrue(result.success)
        self.assertEqual(self.gateway.requests, [])

    async def test_unknown_method(self):
        orchestrator = self.orchestrator(credentials={"razorpay": FULL_CREDENTIALS["razorpay"]})
        with self.assertRaises(UnknownMethodError):
            await orchestrator.initiate_checkout(make_order(), "stripe", self.recorder.callbacks())
        with self.assertRaises(UnknownMethodError):
            await orchestrator.initiate_checkout(make_order(), "cod", self.recorder.callbacks())
        with self.assertRaises(UnknownMethodError):
            await orchestrator.initiate_checkout(make_order(), "bitcoin", self.recorder.callbacks())

    async def test_for_store_sees_public_credentials_only(self):
        orchestrator = await CheckoutOrchestrator.for_store(STORE_ID, self.backend, self.host)

        self.assertEqual(orchestrator.payment_mode, PaymentMode.ONLINE_ONLY)
        self.assertEqual(
            [m.id for m in orchestrator.available_methods()],
            ["razorpay", "phonepe", "cashfree", "payu", "paytm", "stripe"],
        )
        self.assertEqual(orchestrator.credentials.razorpay.key_id, "rzp_test_key")
        self.assertIsNone(orchestrator.credentials.razorpay.key_secret)
        self.assertIsNone(orchestrator.credentials.payu.merchant_salt)


class TestResumeFromReturnUrl(CheckoutStackTestCase):
    async def test_payu_return_verified(self):
        self.repo.orders["ord-1"] = pending_order(gateway_order_id="PAYU10011")
        fields = {
            "txnid": "PAYU10011", "mihpayid": "403993715", "status": "success", "amount": "100.00",
            "productinfo": "Order 1001", "firstname": "Asha", "email": "asha@example.com",
        }
        fields["hash"] = payu_response_hash(
            SECRETS["payu"], "success", "asha@example.com", "Asha", "Order 1001", "100.00", "PAYU10011", "K1"
        )
        params = {"gateway": "payu", "orderId": "ord-1", "storeId": STORE_ID, "storeSlug": "asha-store", **fields}

        outcome = await self.orchestrator().resume_from_return_url(params)

        self.assertTrue(outcome.verified)
        self.assertEqual(outcome.gateway, GatewayId.PAYU)
        self.assertEqual(outcome.payment_id, "403993715")
        self.assertEqual(outcome.store_slug, "asha-store")
        self.assertEqual(self.order_status(), PaymentStatus.COMPLETED)

    async def test_phonepe_return_verified_then_already_verified(self):
        self.repo.orders["ord-1"] = pending_order(gateway_order_id="TXN_1001_1")
        params = {"gateway": "phonepe", "orderId": "ord-1", "storeId": STORE_ID, "merchantTransactionId": "TXN_1001_1"}
        orchestrator = self.orchestrator()

        first = await orchestrator.resume_from_return_url(params)
        second = await orchestrator.resume_from_return_url(params)

        self.assertTrue(first.verified)
        self.assertEqual(first.payment_id, "T900")
        self.assertTrue(second.already_verified)
        self.assertEqual(len(self.gateway.requests), 1)

    async def test_missing_reference_is_not_success(self):
        outcome = await self.orchestrator().resume_from_return_url(
            {"gateway": "phonepe", "orderId": "ord-1", "storeId": STORE_ID}
        )
        self.assertFalse(outcome.verified)
        self.assertEqual(outcome.error, "Payment not completed")
        self.assertEqual(outcome.code, "verification_failed")
        self.assertEqual(self.gateway.requests, [])

    async def test_relay_error_is_not_success(self):
        outcome = await self.orchestrator().resume_from_return_url(
            {"gateway": "paytm", "orderId": "ord-1", "ORDERID": "PTM_1001_1", "error": "checksum_mismatch"}
        )
        self.assertFalse(outcome.verified)
        self.assertEqual(outcome.code, "checksum_mismatch")
        self.assertEqual(self.gateway.requests, [])

    async def test_unknown_gateway(self):
        outcome = await self.orchestrator().resume_from_return_url({"gateway": "bitcoin"})
        self.assertFalse(outcome.verified)
        self.assertEqual(outcome.code, "unknown_method")


class TestCheckoutAttempt(unittest.TestCase):
    def created(self):
        return CreatedOrder(gateway=GatewayId.RAZORPAY, gateway_order_id="order_1", currency="INR")

    def test_transitions(self):
        attempt = CheckoutAttempt(GatewayId.RAZORPAY, make_order(), STORE_ID)
        self.assertEqual(attempt.state, AttemptState.INIT)
        attempt.mark_ordered(self.created())
        self.assertEqual(attempt.state, AttemptState.ORDERED)
        self.assertEqual(attempt.order.gateway_order_id, "order_1")
        with self.assertRaises(RuntimeError):
            attempt.mark_ordered(self.created())

    def test_resolved_states_are_terminal(self):
        attempt = CheckoutAttempt(GatewayId.RAZORPAY, make_order(), STORE_ID)
        attempt.mark_ordered(self.created())
        self.assertTrue(attempt.resolve(AttemptState.FAILED, PaymentResult(success=False, error="declined")))
        self.assertFalse(attempt.resolve(AttemptState.SUCCEEDED, PaymentResult(success=True)))
        self.assertEqual(attempt.state, AttemptState.FAILED)
        self.assertEqual(attempt.result.error, "declined")
        with self.assertRaises(ValueError):
            attempt.resolve(AttemptState.ORDERED, PaymentResult(success=False))


class TestSdkRegistry(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        SdkRegistry.clear_cache()

    async def test_loaded_once(self):
        host = FakeHost()
        for _ in range(3):
            self.assertTrue(await SdkRegistry.ensure_loaded(GatewayId.RAZORPAY, "https://x/checkout.js", "Razorpay", host))
        self.assertEqual(len(host.injected), 1)
        self.assertTrue(SdkRegistry.is_loaded(GatewayId.RAZORPAY))

    async def test_concurrent_callers_share_one_injection(self):
        host = FakeHost()
        results = await asyncio.gather(*[
            SdkRegistry.ensure_loaded(GatewayId.STRIPE, "https://js.stripe.com/v3/", "Stripe", host) for _ in range(5)
        ])
        self.assertEqual(results, [True] * 5)
        self.assertEqual(len(host.injected), 1)

    async def test_existing_global_counts_as_loaded(self):
        host = FakeHost(globals_present={"Cashfree"})
        self.assertTrue(await SdkRegistry.ensure_loaded(GatewayId.CASHFREE, "https://x/cf.js", "Cashfree", host))
        self.assertEqual(host.injected, [])

    async def test_failure_not_remembered(self):
        host = FakeHost(script_loads=False)
        self.assertFalse(await SdkRegistry.ensure_loaded(GatewayId.RAZORPAY, "https://x/checkout.js", "Razorpay", host))
        self.assertFalse(SdkRegistry.is_loaded(GatewayId.RAZORPAY))
        host.script_loads = True
        self.assertTrue(await SdkRegistry.ensure_loaded(GatewayId.RAZORPAY, "https://x/checkout.js", "Razorpay", host))
        self.assertEqual(len(host.injected), 2)


class TestPaymentForm(unittest.TestCase):
    def test_exact_hidden_fields(self):
        form = build_payment_form("https://test.payu.in/_payment", {"txnid": "T1", "amount": "100", "key": "K1"})
        self.assertEqual(form.action, "https://test.payu.in/_payment")
        self.assertEqual(form.method, "POST")
        self.assertEqual(form.fields, {"txnid": "T1", "amount": "100", "key": "K1"})
        html = form.to_html()
        self.assertEqual(html.count('type="hidden"'), 3)
        self.assertIn('name="txnid" value="T1"', html)

    def test_values_stringified_and_none_dropped(self):
        form = build_payment_form("https://test.payu.in/_payment", {"amount": 100, "udf1": None})
        self.assertEqual(form.fields, {"amount": "100"})

    def test_url_required(self):
        with self.assertRaises(ValueError):
            build_payment_form("", {"txnid": "T1"})


class TestHeadlessHost(unittest.IsolatedAsyncioTestCase):
    async def test_submit_form_posts_fields(self):
        transport = RecordingTransport(lambda r: httpx.Response(200, text="<html>PayU</html>"))
        host = HeadlessCheckoutHost(config=make_settings(), transport=transport)

        await host.submit_form(build_payment_form("https://test.payu.in/_payment", {"txnid": "T1", "key": "K1"}))

        request = transport.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), "https://test.payu.in/_payment")
        self.assertEqual(parse_qs(request.content.decode()), {"txnid": ["T1"], "key": ["K1"]})
        self.assertEqual(host.visited, ["https://test.payu.in/_payment"])

    async def test_no_scripts_or_modals(self):
        host = HeadlessCheckoutHost(config=make_settings())
        self.assertFalse(host.has_global("Razorpay"))
        self.assertFalse(await host.inject_script("https://checkout.razorpay.com/v1/checkout.js"))
        with self.assertRaises(RuntimeError):
            await host.open_modal("Razorpay", {}, {}, None)


class TestNativePayloads(unittest.TestCase):
    def setUp(self):
        self.creds = PaymentGatewayCredentials.model_validate(FULL_CREDENTIALS)

    def test_stripe_confirm_result(self):
        adapter = StripeCheckout(self.creds.stripe, backend=None, host=None, config=make_settings())
        ok = adapter.map_success({"paymentIntent": {"id": "pi_1", "status": "succeeded"}})
        self.assertTrue(ok.success)
        self.assertEqual(ok.gateway_order_id, "pi_1")
        declined = adapter.map_success({"error": {"type": "card_error", "message": "Your card was declined."}})
        self.assertFalse(declined.success)
        self.assertEqual(declined.error, "Your card was declined.")
        self.assertFalse(adapter.map_success({"paymentIntent": {"id": "pi_1", "status": "requires_action"}}).success)
        processing = adapter.map_success({"paymentIntent": {"id": "pi_1", "status": "processing"}})
        self.assertFalse(processing.success)
        self.assertTrue(processing.pending)
        self.assertIsNone(adapter.credentials.secret_key)

    def test_cashfree_result(self):
        adapter = CashfreeCheckout(self.creds.cashfree, backend=None, host=None, config=make_settings())
        self.assertTrue(adapter.map_success({"paymentDetails": {"paymentMessage": "Payment finished"}}).success)
        failed = adapter.map_success({"error": {"code": "payment_failed", "message": "Payment failed"}})
        self.assertFalse(failed.success)
        self.assertEqual(adapter.map_failure({"error": {"message": "Payment failed"}})["description"], "Payment failed")


class TestInvokeCallback(unittest.IsolatedAsyncioTestCase):
    async def test_plain_and_async_callbacks(self):
        seen = []

        async def async_cb(value):
            seen.append(("async", value))

        await invoke_callback(lambda value: seen.append(("sync", value)), 1)
        await invoke_callback(async_cb, 2)
        await invoke_callback(None, 3)
        self.assertEqual(seen, [("sync", 1), ("async", 2)])

    async def test_callback_errors_do_not_escape(self):
        def broken(_):
            raise RuntimeError("caller bug")

        await invoke_callback(broken, {})


if __name__ == "__main__":
    unittest.main()

"""
Checkout client: drives each gateway's own checkout UI through a CheckoutHost
and hands every outcome to the order service for verification.
"""
from .backend import BackendClient
from .base import AttemptState, CheckoutAdapter, CheckoutAttempt
from .forms import PaymentForm, build_payment_form
from .host import CheckoutHost, HeadlessCheckoutHost, ModalEvents
from .orchestrator import CHECKOUT_ADAPTERS, CheckoutOrchestrator, ReturnOutcome
from .sdk import SdkRegistry

__all__ = [
    "AttemptState",
    "BackendClient",
    "CHECKOUT_ADAPTERS",
    "CheckoutAdapter",
    "CheckoutAttempt",
    "CheckoutHost",
    "CheckoutOrchestrator",
    "HeadlessCheckoutHost",
    "ModalEvents",
    "PaymentForm",
    "ReturnOutcome",
    "SdkRegistry",
    "build_payment_form",
]

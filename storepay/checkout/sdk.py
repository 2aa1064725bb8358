"""
Gateway client-script registry.

One entry per gateway for the lifetime of the process (a page, in a
browser). Loading is idempotent: an already-present global counts as
loaded, concurrent callers share one injection, and a failed load is not
remembered so the customer can retry.
"""
import asyncio
from typing import Dict

from storepay.logging_config import get_logger
from storepay.payments.types import GatewayId

logger = get_logger(__name__)

SDK_SOURCES: Dict[GatewayId, str] = {
    GatewayId.RAZORPAY: "https://checkout.razorpay.com/v1/checkout.js",
    GatewayId.CASHFREE: "https://sdk.cashfree.com/js/v3/cashfree.js",
    GatewayId.STRIPE: "https://js.stripe.com/v3/",
}

SDK_GLOBALS: Dict[GatewayId, str] = {
    GatewayId.RAZORPAY: "Razorpay",
    GatewayId.CASHFREE: "Cashfree",
    GatewayId.STRIPE: "Stripe",
}


class SdkRegistry:
    """Process-wide loaded state of gateway scripts, keyed by gateway id."""

    _loaded: Dict[str, bool] = {}
    _locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def is_loaded(cls, gateway: GatewayId) -> bool:
        return cls._loaded.get(GatewayId(gateway).value, False)

    @classmethod
    def _lock(cls, key: str) -> asyncio.Lock:
        if key not in cls._locks:
            cls._locks[key] = asyncio.Lock()
        return cls._locks[key]

    @classmethod
    async def ensure_loaded(cls, gateway: GatewayId, src: str, global_name: str, host) -> bool:
        """
        Load a gateway script at most once.

        Returns:
            True when the global is available, False on any load failure.
            Never raises.
        """
        key = GatewayId(gateway).value
        if cls._loaded.get(key):
            return True

        async with cls._lock(key):
            # another caller may have finished while we waited
            if cls._loaded.get(key):
                return True
            try:
                if host.has_global(global_name):
                    ok = True
                else:
                    ok = bool(await host.inject_script(src)) and host.has_global(global_name)
            except Exception as e:
                logger.warning("sdk_load_failed", gateway=key, src=src, error=str(e))
                return False

            if not ok:
                logger.warning("sdk_load_failed", gateway=key, src=src)
                return False
            cls._loaded[key] = True
            logger.info("sdk_loaded", gateway=key)
            return True

    @classmethod
    def clear_cache(cls):
        """Forget every loaded script (useful for testing)."""
        cls._loaded = {}
        cls._locks = {}

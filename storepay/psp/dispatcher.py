"""PSP Adapter Dispatcher - Routes to correct PSP based on gateway."""
from typing import Dict, Optional, Type, Union

import httpx

from storepay.config import Settings
from storepay.payments.errors import ConfigurationError
from storepay.payments.types import GatewayCredentials, GatewayId
from .adapter import PSPAdapter
from .cashfree_adapter import CashfreeAdapter
from .paytm_adapter import PaytmAdapter
from .payu_adapter import PayUAdapter
from .phonepe_adapter import PhonePeAdapter
from .razorpay_adapter import RazorpayAdapter
from .stripe_adapter import StripeAdapter


class PSPDispatcher:
    """
    Dispatcher that selects and initializes the correct PSP adapter.

    Credentials are per store and loaded fresh for each request, so adapters
    are never cached.
    """

    adapter_classes: Dict[GatewayId, Type[PSPAdapter]] = {
        GatewayId.RAZORPAY: RazorpayAdapter,
        GatewayId.PHONEPE: PhonePeAdapter,
        GatewayId.CASHFREE: CashfreeAdapter,
        GatewayId.PAYU: PayUAdapter,
        GatewayId.PAYTM: PaytmAdapter,
        GatewayId.STRIPE: StripeAdapter,
    }

    @classmethod
    def adapter_class(cls, gateway: Union[GatewayId, str]) -> Type[PSPAdapter]:
        try:
            return cls.adapter_classes[GatewayId(gateway)]
        except (ValueError, KeyError):
            raise ConfigurationError(f"Unsupported payment gateway: {gateway}")

    @classmethod
    def get_adapter(
        cls,
        gateway: Union[GatewayId, str],
        credentials: Optional[GatewayCredentials],
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> PSPAdapter:
        """
        Get PSP adapter for the given gateway.

        Args:
            gateway: Gateway id (razorpay, phonepe, ...)
            credentials: The store's full credentials for that gateway

        Returns:
            Initialized PSP adapter

        Raises:
            ConfigurationError: If gateway is unsupported, disabled or missing credentials
        """
        adapter_class = cls.adapter_class(gateway)
        name = adapter_class.display_name
        if credentials is None or not credentials.enabled:
            raise ConfigurationError(f"{name} is not enabled for this store", gateway=adapter_class.provider.value)
        if not isinstance(credentials, adapter_class.credentials_class):
            raise ConfigurationError(f"Credentials do not belong to {name}", gateway=adapter_class.provider.value)
        if not credentials.is_configured():
            raise ConfigurationError(f"{name} credentials not configured", gateway=adapter_class.provider.value)
        if not credentials.has_secrets():
            raise ConfigurationError(f"{name} secret credentials not configured", gateway=adapter_class.provider.value)
        return adapter_class(credentials, config=config, transport=transport)

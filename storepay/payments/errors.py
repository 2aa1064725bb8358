"""
Payment error taxonomy shared by the order service, the HTTP boundary and
the checkout client.
"""
from typing import Any, Dict, Optional


class PaymentError(Exception):
    """Base class for every payment failure that crosses a module boundary."""

    code = "payment_error"
    status_code = 400

    def __init__(self, message: str, *, gateway: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.gateway = gateway
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.message, "code": self.code}
        if self.gateway:
            data["gateway"] = self.gateway
        return data

    def __str__(self) -> str:
        return self.message


class ConfigurationError(PaymentError):
    """Gateway not enabled, credentials missing or store unknown."""

    code = "configuration_error"
    status_code = 400


class ValidationError(PaymentError):
    """Bad amount, currency or order fields."""

    code = "validation_error"
    status_code = 422


class SdkLoadError(PaymentError):
    code = "sdk_load_error"
    status_code = 503


class GatewayError(PaymentError):
    """The upstream gateway rejected the call. Message is passed through verbatim."""

    code = "gateway_error"
    status_code = 502

    def __init__(self, message: str, *, upstream_status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.upstream_status is not None:
            data["upstream_status"] = self.upstream_status
        return data


class SignatureMismatchError(PaymentError):
    code = "signature_mismatch"
    status_code = 400


class VerificationFailedError(PaymentError):
    code = "verification_failed"
    status_code = 400


class UnknownMethodError(PaymentError):
    """Caller asked for a payment method that is not enabled for the store."""

    code = "unknown_method"
    status_code = 400


ERROR_CLASSES = {
    cls.code: cls
    for cls in (
        ConfigurationError,
        ValidationError,
        SdkLoadError,
        GatewayError,
        SignatureMismatchError,
        VerificationFailedError,
        UnknownMethodError,
    )
}


def error_from_payload(payload: Any, default_message: str = "Payment request failed") -> PaymentError:
    """Rebuild a typed error from an error body returned by the order service."""
    if isinstance(payload, dict) and isinstance(payload.get("detail"), dict):
        payload = payload["detail"]
    if not isinstance(payload, dict):
        return PaymentError(str(payload) if payload else default_message)

    message = payload.get("error") or payload.get("message") or default_message
    cls = ERROR_CLASSES.get(payload.get("code"), PaymentError)
    if cls is GatewayError:
        return GatewayError(message, upstream_status=payload.get("upstream_status"), gateway=payload.get("gateway"))
    return cls(message, gateway=payload.get("gateway"))

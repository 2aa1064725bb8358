"""Hosted-form checkouts (PayU): a set of hidden fields posted to the gateway."""
from dataclasses import dataclass, field
from html import escape
from typing import Dict, Mapping


@dataclass(frozen=True)
class PaymentForm:
    action: str
    fields: Dict[str, str] = field(default_factory=dict)
    method: str = "POST"

    def to_html(self, form_id: str = "payment-form") -> str:
        """Auto-submitting HTML form with one hidden input per field."""
        inputs = "".join(
            f'<input type="hidden" name="{escape(name)}" value="{escape(value)}">'
            for name, value in self.fields.items()
        )
        return (
            f'<form id="{escape(form_id)}" method="{escape(self.method)}" action="{escape(self.action)}">'
            f"{inputs}</form>"
            f'<script>document.getElementById("{escape(form_id)}").submit();</script>'
        )


def build_payment_form(payment_url: str, params: Mapping[str, object]) -> PaymentForm:
    """Every key of `params` becomes a hidden field, values as strings, None dropped."""
    if not payment_url:
        raise ValueError("payment_url is required")
    fields = {str(k): str(v) for k, v in params.items() if v is not None}
    return PaymentForm(action=payment_url, fields=fields)

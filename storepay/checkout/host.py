"""
The page a checkout runs in.

Gateway checkouts need four things from their host: a way to load the
gateway's script, a way to open the gateway's modal, top-level navigation
and a form post. `CheckoutHost` names those; a browser bridge implements
all four, `HeadlessCheckoutHost` implements the redirect and form shapes
over HTTP for server-driven runs.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import httpx

from storepay.config import Settings, settings
from storepay.logging_config import get_logger
from .forms import PaymentForm

logger = get_logger(__name__)

ModalEvent = Callable[[Any], Awaitable[None]]


class ModalEvents:
    """Handlers a modal gateway's UI reports back through."""

    def __init__(
        self,
        on_success: ModalEvent,
        on_failure: ModalEvent,
        on_dismiss: Callable[[], Awaitable[None]],
    ):
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_dismiss = on_dismiss


class CheckoutHost(Protocol):
    def has_global(self, name: str) -> bool:
        """Whether the page already exposes a gateway global (window.Razorpay, ...)."""
        ...

    async def inject_script(self, src: str) -> bool:
        """Append a script tag; True once it has loaded, False on a load error."""
        ...

    async def open_modal(self, sdk_global: str, init: Dict[str, Any], options: Dict[str, Any],
                         events: ModalEvents) -> None:
        """Construct the gateway client from `init` and open its UI with `options`."""
        ...

    async def navigate(self, url: str) -> None:
        ...

    async def submit_form(self, form: PaymentForm) -> None:
        ...


class HeadlessCheckoutHost:
    """
    CheckoutHost without a browser.

    Navigation and form posts are performed with httpx and recorded; there is
    no page to run gateway scripts in, so scripts never load and modals
    cannot open.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        follow_redirects: bool = False,
    ):
        self.config = config or settings
        self._transport = transport
        self._follow_redirects = follow_redirects
        self.visited: List[str] = []
        self.responses: List[httpx.Response] = []

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.HTTP_TIMEOUT_SECONDS,
            transport=self._transport,
            follow_redirects=self._follow_redirects,
        )

    def has_global(self, name: str) -> bool:
        return False

    async def inject_script(self, src: str) -> bool:
        logger.info("headless_script_skipped", src=src)
        return False

    async def open_modal(self, sdk_global, init, options, events) -> None:
        raise RuntimeError(f"{sdk_global} checkout needs a browser host")

    async def navigate(self, url: str) -> None:
        async with self._client() as client:
            r = await client.get(url)
        self.visited.append(url)
        self.responses.append(r)
        logger.info("headless_navigated", status_code=r.status_code)

    async def submit_form(self, form: PaymentForm) -> None:
        async with self._client() as client:
            r = await client.request(form.method, form.action, data=form.fields)
        self.visited.append(form.action)
        self.responses.append(r)
        logger.info("headless_form_submitted", status_code=r.status_code, field_count=len(form.fields))

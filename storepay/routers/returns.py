"""
Return relays for gateways that POST their result (PayU, Paytm).

The gateway posts to the order service; the customer is then sent on to the
storefront with the result in the query string. Nothing is marked paid
here: the storefront calls verify_payment once it has the redirect.
"""
from typing import Dict

import anyio
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from storepay.config import settings
from storepay.deps import get_store_repository
from storepay.logging_config import get_logger
from storepay.payments.return_urls import build_return_url
from storepay.payments.signatures import verify_paytm_signature
from storepay.payments.types import GatewayId
from storepay.storage import StoreRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/functions/v1/payments/return", tags=["Payment Returns"])

# gateway fields carried on to the storefront
RELAY_FIELDS = {
    GatewayId.PAYU: (
        "txnid", "mihpayid", "status", "amount", "productinfo", "firstname", "email",
        "udf1", "udf2", "udf3", "udf4", "udf5", "additionalCharges", "hash", "error_Message",
    ),
    GatewayId.PAYTM: ("ORDERID", "TXNID", "STATUS", "RESPCODE", "RESPMSG"),
}


@router.api_route("/{gateway}", methods=["GET", "POST"])
async def relay_return(
    gateway: GatewayId,
    request: Request,
    repository: StoreRepository = Depends(get_store_repository),
):
    if gateway not in RELAY_FIELDS:
        raise HTTPException(status_code=404, detail="No return relay for this gateway")

    query = request.query_params
    order_id = query.get("orderId", "")
    store_id = query.get("storeId")
    if not store_id:
        raise HTTPException(status_code=400, detail="storeId is required")

    fields: Dict[str, str] = {}
    if request.method == "POST":
        form = await request.form()
        fields = {k: str(v) for k, v in form.items()}
    else:
        fields = {k: v for k, v in query.items()}

    extra = {name: fields[name] for name in RELAY_FIELDS[gateway] if fields.get(name)}

    if gateway == GatewayId.PAYTM and fields.get("CHECKSUMHASH"):
        store = await anyio.to_thread.run_sync(repository.get_store, store_id)
        creds = store.credentials.get(GatewayId.PAYTM) if store else None
        merchant_key = creds.merchant_key if creds else None
        if not verify_paytm_signature(fields, merchant_key, fields["CHECKSUMHASH"]):
            logger.warning("paytm_return_checksum_mismatch", store_id=store_id, order_id=order_id)
            extra["error"] = "checksum_mismatch"

    url = build_return_url(
        settings.STOREFRONT_BASE_URL,
        gateway,
        order_id,
        store_id,
        query.get("storeSlug"),
        extra=extra,
    )
    logger.info("payment_return_relayed", gateway=gateway.value, store_id=store_id, order_id=order_id)
    return RedirectResponse(url=url, status_code=303)

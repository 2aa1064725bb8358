"""
Order service function endpoint: one POST per action (create_order, verify_payment).
"""
from __future__ import annotations

import base64
import binascii
import json

from fastapi import APIRouter, Depends, HTTPException, Request

from storepay.deps import get_order_service
from storepay.logging_config import get_logger
from storepay.payments.errors import PaymentError, ValidationError
from storepay.payments.signatures import verify_phonepe_callback
from storepay.payments.types import CreatedOrder, GatewayId, VerifyOutcome, VerifyPaymentRequest
from storepay.schemas_pkg.payments import CreateOrderAction, PaymentAction, VerifyPaymentAction
from storepay.services.order_service import OrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/functions/v1/payments", tags=["Payments"])


def _http_error(e: PaymentError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


async def _create_order(payload: CreateOrderAction, service: OrderService) -> CreatedOrder:
    try:
        return await service.create_order(payload.gateway, payload.order, payload.store_id)
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error("create_order_failed", gateway=payload.gateway.value, error=str(e), exc_info=e)
        raise HTTPException(status_code=502, detail={"error": "Failed to create order", "code": "gateway_error"})


async def _verify_payment(payload: VerifyPaymentAction, service: OrderService) -> VerifyOutcome:
    try:
        return await service.verify_payment(payload.gateway, payload.to_request(), payload.store_id)
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error("verify_payment_failed", gateway=payload.gateway.value, error=str(e), exc_info=e)
        raise HTTPException(status_code=502, detail={"error": "Failed to verify payment", "code": "gateway_error"})


@router.post("")
async def payment_action(payload: PaymentAction, service: OrderService = Depends(get_order_service)):
    """
    Dispatch an order-service action.

    create_order returns client-safe identifiers only; verify_payment returns
    {verified, error?, code?, payment_id?, already_verified}.
    """
    if isinstance(payload, CreateOrderAction):
        created = await _create_order(payload, service)
        return created.model_dump(exclude_none=True, mode="json")
    outcome = await _verify_payment(payload, service)
    return outcome.model_dump(exclude_none=True)


@router.post("/phonepe/callback")
async def phonepe_callback(request: Request, service: OrderService = Depends(get_order_service)):
    """
    PhonePe server-to-server callback.

    The X-VERIFY checksum is checked against the store's salt, then the
    normal verification path runs; the callback body itself is never trusted
    as proof of payment.
    """
    store_id = request.query_params.get("storeId")
    try:
        body = await request.json()
        encoded = body["response"]
        decoded = json.loads(base64.b64decode(encoded))
    except (ValueError, KeyError, TypeError, binascii.Error):
        raise HTTPException(status_code=400, detail={"error": "Invalid callback body", "code": ValidationError.code})

    data = (decoded.get("data") if isinstance(decoded, dict) else None) or {}
    txn_id = data.get("merchantTransactionId")
    if not store_id or not txn_id:
        raise HTTPException(status_code=400, detail={"error": "Missing store or transaction", "code": ValidationError.code})

    try:
        store = await service.load_store(store_id)
        creds = store.credentials.get(GatewayId.PHONEPE)
        salt_key = creds.salt_key if creds else None
        if not verify_phonepe_callback(encoded, request.headers.get("X-VERIFY", ""), salt_key):
            logger.warning("phonepe_callback_checksum_mismatch", store_id=store_id, merchant_transaction_id=txn_id)
            raise HTTPException(status_code=400, detail={"error": "Invalid checksum", "code": "signature_mismatch"})

        outcome = await service.verify_payment(
            GatewayId.PHONEPE,
            VerifyPaymentRequest(gateway_order_id=txn_id),
            store_id,
        )
    except PaymentError as e:
        raise _http_error(e)

    logger.info("phonepe_callback_processed", store_id=store_id, merchant_transaction_id=txn_id, verified=outcome.verified)
    return {"success": True, "verified": outcome.verified}

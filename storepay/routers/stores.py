from fastapi import APIRouter, Depends, HTTPException

from storepay.deps import get_store_repository
from storepay.payments.registry import compute_available_methods, fallback_notice, has_online_payment_gateways
from storepay.schemas_pkg.payments import StoreMethodsOut
from storepay.storage import StoreRepository

router = APIRouter(prefix="/v1/stores", tags=["Stores"])


@router.get("/{store_id}/payment-methods", response_model=StoreMethodsOut)
def store_payment_methods(store_id: str, repository: StoreRepository = Depends(get_store_repository)):
    """
    Payment methods a store's checkout should offer, recomputed on every call.
    Credentials come back with their secret halves blanked.
    """
    store = repository.get_store(store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    return StoreMethodsOut(
        store_id=store.id,
        payment_mode=store.payment_mode,
        methods=compute_available_methods(store.credentials, store.payment_mode),
        has_online_gateways=has_online_payment_gateways(store.credentials),
        notice=fallback_notice(store.credentials, store.payment_mode),
        credentials=store.credentials.public_view(),
    )

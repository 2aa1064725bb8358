from fastapi import Depends

from .services.order_service import OrderService
from .storage import StoreRepository, SupabaseStoreRepository
from .supabase import get_supabase_admin_client


def get_store_repository() -> StoreRepository:
    """
    Dependency returning the store/order repository backed by Supabase.
    Overridden in tests with an in-memory repository.
    """
    return SupabaseStoreRepository(get_supabase_admin_client())


def get_order_service(repository: StoreRepository = Depends(get_store_repository)) -> OrderService:
    return OrderService(repository)

"""
Supabase client configuration for storepay.
Stores and orders live in Supabase; the order service reads them with the
service role key because credentials' secret halves are not readable otherwise.
"""
from typing import Optional

from supabase import Client, create_client

from storepay.config import Settings, settings
from storepay.logging_config import get_logger

logger = get_logger(__name__)

# Global admin client instance
_admin_client: Optional[Client] = None


def get_supabase_admin_client(config: Optional[Settings] = None) -> Client:
    """Get Supabase client with service role key for order-service operations"""
    global _admin_client

    config = config or settings
    if _admin_client is not None and config is settings:
        return _admin_client

    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("Supabase URL and SERVICE_ROLE_KEY must be configured for the order service")

    try:
        client = create_client(
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_SERVICE_ROLE_KEY,
        )
        logger.info("supabase_admin_client_initialized")
    except Exception as e:
        logger.error("supabase_admin_client_failed", error=str(e))
        raise

    if config is settings:
        _admin_client = client
    return client

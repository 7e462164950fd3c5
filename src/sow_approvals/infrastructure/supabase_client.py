# src/sow_approvals/infrastructure/supabase_client.py
"""
Supabase Client

Builds the Supabase client used by the approval record store.

Clients are constructed explicitly from configuration and handed to the
repositories by the container; there is no module-level singleton.

Usage:
    from .supabase_client import create_supabase_client

    client = create_supabase_client(config.supabase)
    result = client.table("sow_approvals").select("*").eq("sow_id", sow_id).execute()
"""

import logging

from supabase import Client, ClientOptions, create_client

from ..config import SupabaseConfig
from ..exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def create_supabase_client(config: SupabaseConfig) -> Client:
    """
    Create a Supabase client with a bounded PostgREST timeout.

    Args:
        config: Supabase connection settings

    Returns:
        Supabase client

    Raises:
        StoreUnavailableError: credentials missing or client creation failed
    """
    if not config.is_configured:
        raise StoreUnavailableError(
            "Supabase not configured",
            detail="Set SUPABASE_URL and SUPABASE_KEY",
        )

    options = ClientOptions(postgrest_client_timeout=config.timeout_seconds)

    try:
        client = create_client(config.url, config.key, options=options)
    except Exception as e:
        logger.error(f"❌ Failed to connect to Supabase: {e}")
        raise StoreUnavailableError("Failed to connect to Supabase", detail=str(e)) from e

    logger.info(f"✅ Connected to Supabase: {config.url}")
    return client

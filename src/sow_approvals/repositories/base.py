# src/sow_approvals/repositories/base.py
"""
Base Repository - shared Supabase plumbing

Every Supabase adapter funnels its queries through `_execute`, which turns
transport and PostgREST failures into StoreUnavailableError. Callers never
proceed on a failed read or write.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

import httpx
from postgrest.exceptions import APIError

from ..exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def utcnow_iso() -> str:
    """Current UTC time as an ISO string for timestamp columns."""
    return datetime.now(timezone.utc).isoformat()


class SupabaseRepository:
    """
    Base class for Supabase adapters.

    Subclasses set `table` and build queries from `self._client`.
    """

    table: str = ""

    def __init__(self, client):
        """
        Args:
            client: Supabase client instance
        """
        self._client = client

    def _query(self):
        return self._client.table(self.table)

    def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        """
        Run a PostgREST query and return its rows.

        Args:
            query: Built query (select/insert/update chain)
            action: Short description for logs and errors

        Raises:
            StoreUnavailableError: the store rejected or could not be reached
        """
        try:
            result = query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Supabase {self.table} {action} failed: {e}")
            raise StoreUnavailableError(
                f"Approval store unavailable while trying to {action}",
                detail=str(e),
            ) from e
        return result.data or []

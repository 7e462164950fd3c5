# src/sow_approvals/repositories/sows.py
"""
SOW Repository - Ports and Adapters

Port: SOWRepository (abstract interface)
Adapters: SupabaseSOWRepository

The workflow only reads SOW rows and writes their `status`. Status writes are
compare-and-set on the previously read value so two writers cannot silently
overwrite each other.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..exceptions import ConflictError
from ..models import DocumentStatus, SOWDocument
from .base import SupabaseRepository, utcnow_iso

logger = logging.getLogger(__name__)


class SOWRepository(ABC):
    """SOW Repository Port."""

    @abstractmethod
    def get_by_id(self, sow_id: str) -> Optional[SOWDocument]:
        """Get a SOW by ID, or None if it does not exist."""
        pass

    @abstractmethod
    def update_status(
        self,
        sow_id: str,
        new_status: DocumentStatus,
        expected_status: DocumentStatus,
    ) -> SOWDocument:
        """
        Set the SOW status if it still equals `expected_status`.

        Raises:
            ConflictError: the stored status changed since it was read
        """
        pass


# =============================================================================
# SUPABASE ADAPTER
# =============================================================================

class SupabaseSOWRepository(SupabaseRepository, SOWRepository):
    """Supabase adapter for the `sows` table."""

    table = "sows"

    def get_by_id(self, sow_id: str) -> Optional[SOWDocument]:
        rows = self._execute(
            self._query().select("*").eq("id", sow_id).limit(1),
            "load SOW",
        )
        return SOWDocument.from_dict(rows[0]) if rows else None

    def update_status(
        self,
        sow_id: str,
        new_status: DocumentStatus,
        expected_status: DocumentStatus,
    ) -> SOWDocument:
        rows = self._execute(
            self._query()
            .update({"status": new_status.value, "updated_at": utcnow_iso()})
            .eq("id", sow_id)
            .eq("status", expected_status.value),
            "update SOW status",
        )
        if not rows:
            raise ConflictError(
                "SOW status changed concurrently",
                detail=f"Expected '{expected_status.value}' on SOW {sow_id}",
            )
        logger.info(f"SOW {sow_id} status {expected_status.value} -> {new_status.value}")
        return SOWDocument.from_dict(rows[0])

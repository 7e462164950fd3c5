# src/sow_approvals/repositories/audit_log.py
"""
Audit Log Repository - Ports and Adapters

Port: AuditLogRepository (abstract interface)
Adapters: SupabaseAuditLogRepository

Append-only trail of workflow events in `approval_audit_log`.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import AuditEvent
from .base import SupabaseRepository, utcnow_iso

logger = logging.getLogger(__name__)


class AuditLogRepository(ABC):
    """Audit Log Port."""

    @abstractmethod
    def append(self, event: AuditEvent) -> AuditEvent:
        """Persist an event and return it with its id and timestamp."""
        pass

    @abstractmethod
    def list_for_sow(
        self,
        sow_id: str,
        action: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[AuditEvent]:
        """Events of a SOW, oldest first, optionally filtered."""
        pass


class SupabaseAuditLogRepository(SupabaseRepository, AuditLogRepository):
    """Supabase adapter for the `approval_audit_log` table."""

    table = "approval_audit_log"

    def append(self, event: AuditEvent) -> AuditEvent:
        data = event.to_dict()
        data.pop("id")
        data["created_at"] = data["created_at"] or utcnow_iso()

        rows = self._execute(self._query().insert(data), "append audit event")
        return AuditEvent.from_dict(rows[0]) if rows else event

    def list_for_sow(
        self,
        sow_id: str,
        action: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[AuditEvent]:
        query = self._query().select("*").eq("sow_id", sow_id)

        if action:
            query = query.eq("action", action)
        if user_id:
            query = query.eq("user_id", user_id)

        rows = self._execute(query.order("created_at"), "list audit events")
        return [AuditEvent.from_dict(row) for row in rows]

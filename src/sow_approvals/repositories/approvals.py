# src/sow_approvals/repositories/approvals.py
"""
Approval Record Store - Ports and Adapters

Port: ApprovalRepository (abstract interface)
Adapters: SupabaseApprovalRepository

One row per (SOW, stage) in `sow_approvals`. Rows are created on first
initiation, updated in place afterwards and never deleted; they double as
the approval history alongside the audit log.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List

from ..exceptions import ConflictError
from ..models import ApprovalDecision, StageApproval
from .base import SupabaseRepository, utcnow_iso

logger = logging.getLogger(__name__)


class ApprovalRepository(ABC):
    """Approval Record Store Port."""

    @abstractmethod
    def list_for_sow(self, sow_id: str) -> List[StageApproval]:
        """All approval rows of a SOW, active or not."""
        pass

    @abstractmethod
    def create_pending(self, sow_id: str, stage_ids: Iterable[str]) -> List[StageApproval]:
        """Insert one pending, active row per stage."""
        pass

    @abstractmethod
    def restart(self, approval: StageApproval) -> StageApproval:
        """
        Reset an existing row to pending/active and bump its version.

        Raises:
            ConflictError: the row changed since it was read
        """
        pass

    @abstractmethod
    def deactivate(self, approval: StageApproval) -> StageApproval:
        """Take a row out of the current workflow without touching its decision."""
        pass

    @abstractmethod
    def record_decision(
        self,
        approval: StageApproval,
        decision: ApprovalDecision,
        actor_id: str,
        comments: str = None,
    ) -> StageApproval:
        """
        Store a decision if the row still holds the status it was read with.

        Raises:
            ConflictError: another writer decided or reset the row first
        """
        pass

    @abstractmethod
    def reset_all(self, sow_id: str) -> List[StageApproval]:
        """Reset every row of a SOW to pending and mark them inactive."""
        pass


# =============================================================================
# SUPABASE ADAPTER
# =============================================================================

class SupabaseApprovalRepository(SupabaseRepository, ApprovalRepository):
    """Supabase adapter for the `sow_approvals` table."""

    table = "sow_approvals"

    def list_for_sow(self, sow_id: str) -> List[StageApproval]:
        rows = self._execute(
            self._query().select("*").eq("sow_id", sow_id).order("created_at"),
            "list approvals",
        )
        return [StageApproval.from_dict(row) for row in rows]

    def create_pending(self, sow_id: str, stage_ids: Iterable[str]) -> List[StageApproval]:
        now = utcnow_iso()
        records = [
            {
                "sow_id": sow_id,
                "stage_id": stage_id,
                "status": ApprovalDecision.PENDING.value,
                "approver_id": None,
                "comments": None,
                "decided_at": None,
                "is_active": True,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            for stage_id in stage_ids
        ]
        if not records:
            return []

        rows = self._execute(self._query().insert(records), "create approvals")
        return [StageApproval.from_dict(row) for row in rows]

    def restart(self, approval: StageApproval) -> StageApproval:
        rows = self._execute(
            self._query()
            .update({
                "status": ApprovalDecision.PENDING.value,
                "approver_id": None,
                "comments": None,
                "decided_at": None,
                "is_active": True,
                "version": approval.version + 1,
                "updated_at": utcnow_iso(),
            })
            .eq("id", approval.id)
            .eq("version", approval.version),
            "restart approval",
        )
        if not rows:
            raise ConflictError(
                "Approval changed concurrently",
                detail=f"Approval {approval.id} is no longer at version {approval.version}",
            )
        return StageApproval.from_dict(rows[0])

    def deactivate(self, approval: StageApproval) -> StageApproval:
        rows = self._execute(
            self._query()
            .update({"is_active": False, "updated_at": utcnow_iso()})
            .eq("id", approval.id),
            "deactivate approval",
        )
        return StageApproval.from_dict(rows[0]) if rows else approval

    def record_decision(
        self,
        approval: StageApproval,
        decision: ApprovalDecision,
        actor_id: str,
        comments: str = None,
    ) -> StageApproval:
        now = utcnow_iso()
        rows = self._execute(
            self._query()
            .update({
                "status": decision.value,
                "approver_id": actor_id,
                "comments": comments,
                "decided_at": now,
                "updated_at": now,
            })
            .eq("id", approval.id)
            .eq("status", approval.status.value)
            .eq("is_active", True),
            "record decision",
        )
        if not rows:
            raise ConflictError(
                "Approval was decided or reset by another request",
                detail=f"Approval {approval.id} is no longer '{approval.status.value}'",
            )
        logger.info(f"Approval {approval.id} (stage {approval.stage_id}) -> {decision.value} by {actor_id}")
        return StageApproval.from_dict(rows[0])

    def reset_all(self, sow_id: str) -> List[StageApproval]:
        rows = self._execute(
            self._query()
            .update({
                "status": ApprovalDecision.PENDING.value,
                "approver_id": None,
                "comments": None,
                "decided_at": None,
                "is_active": False,
                "updated_at": utcnow_iso(),
            })
            .eq("sow_id", sow_id),
            "reset approvals",
        )
        return [StageApproval.from_dict(row) for row in rows]

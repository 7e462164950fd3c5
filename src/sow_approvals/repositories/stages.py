# src/sow_approvals/repositories/stages.py
"""
Stage Registry - Ports and Adapters

Port: StageRegistry (read-only interface)
Adapters: SupabaseStageRegistry

Stages are configured by administrators elsewhere; the workflow only lists
them in sort order.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import ApprovalStage
from .base import SupabaseRepository


class StageRegistry(ABC):
    """Read-only access to approval stages."""

    @abstractmethod
    def list_active(self) -> List[ApprovalStage]:
        """Active stages ordered by sort_order ascending."""
        pass

    @abstractmethod
    def list_all(self) -> List[ApprovalStage]:
        """Every stage, active or not, ordered by sort_order ascending."""
        pass

    def get_by_id(self, stage_id: str) -> Optional[ApprovalStage]:
        for stage in self.list_all():
            if stage.id == stage_id:
                return stage
        return None


class SupabaseStageRegistry(SupabaseRepository, StageRegistry):
    """Supabase adapter for the `approval_stages` table."""

    table = "approval_stages"

    def list_active(self) -> List[ApprovalStage]:
        rows = self._execute(
            self._query().select("*").eq("is_active", True).order("sort_order"),
            "list active stages",
        )
        return [ApprovalStage.from_dict(row) for row in rows]

    def list_all(self) -> List[ApprovalStage]:
        rows = self._execute(
            self._query().select("*").order("sort_order"),
            "list stages",
        )
        return [ApprovalStage.from_dict(row) for row in rows]

    def get_by_id(self, stage_id: str) -> Optional[ApprovalStage]:
        rows = self._execute(
            self._query().select("*").eq("id", stage_id).limit(1),
            "load stage",
        )
        return ApprovalStage.from_dict(rows[0]) if rows else None

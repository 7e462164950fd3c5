# src/sow_approvals/workflow/reporting.py
"""
Approval reporting - read-only views over approvals and the audit log.

- get_approval_stats: per-stage progress and the stage holding things up
- get_audit_summary: action counts plus the decision timeline
- validate_workflow: structural checks on a SOW's approval rows
- export_audit_csv: the audit trail as a CSV download
"""

import csv
import io
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import WorkflowPolicy
from ..exceptions import NotFoundError
from ..models import (
    ApprovalDecision,
    AuditAction,
    SOWDocument,
)
from ..repositories.approvals import ApprovalRepository
from ..repositories.audit_log import AuditLogRepository
from ..repositories.sows import SOWRepository
from ..repositories.stages import StageRegistry
from .status import (
    active_approvals,
    completion_percent,
    derive_document_status,
    first_pending,
    order_approvals,
)

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Date",
    "User",
    "Action",
    "Stage",
    "Previous Status",
    "New Status",
    "Comments",
    "Metadata",
]

_DECISION_ACTIONS = (AuditAction.STAGE_APPROVED, AuditAction.STAGE_REJECTED)


@dataclass
class WorkflowValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": self.errors}


class ApprovalReporter:
    """Statistics, audit summaries and validation for one SOW's workflow."""

    def __init__(
        self,
        sows: SOWRepository,
        stages: StageRegistry,
        approvals: ApprovalRepository,
        audit_log: AuditLogRepository,
        policy: Optional[WorkflowPolicy] = None,
    ):
        self._sows = sows
        self._stages = stages
        self._approvals = approvals
        self._audit_log = audit_log
        self._policy = policy or WorkflowPolicy()

    # -------------------------
    # Stats
    # -------------------------

    def get_approval_stats(self, sow_id: str) -> Dict[str, Any]:
        sow = self._load(sow_id)
        stages_by_id = {stage.id: stage for stage in self._stages.list_all()}
        approvals = self._approvals.list_for_sow(sow_id)

        if not approvals:
            return {
                "sow_id": sow_id,
                "document_status": sow.status.value,
                "workflow_status": "no_workflow",
                "total_stages": 0,
                "approved": 0,
                "rejected": 0,
                "pending": 0,
                "completion_percent": 0,
                "blocking_stage": None,
                "stages": [],
            }

        shown = active_approvals(approvals) or approvals
        ordered = order_approvals(shown, stages_by_id)
        counts = Counter(a.status for a in ordered)

        blocking = None
        pending = first_pending(ordered)
        if pending is not None:
            stage = stages_by_id.get(pending.stage_id)
            since = pending.updated_at or pending.created_at
            blocking = {
                "stage_id": pending.stage_id,
                "stage_name": stage.name if stage else None,
                "waiting_since": since.isoformat() if since else None,
            }

        stage_rows = []
        for approval in ordered:
            stage = stages_by_id.get(approval.stage_id)
            stage_rows.append({
                "stage_id": approval.stage_id,
                "stage_name": stage.name if stage else None,
                "sort_order": stage.sort_order if stage else None,
                "status": approval.status.value,
                "approver_id": approval.approver_id,
                "decided_at": approval.decided_at.isoformat() if approval.decided_at else None,
                "comments": approval.comments,
            })

        return {
            "sow_id": sow_id,
            "document_status": sow.status.value,
            "workflow_status": sow.status.value,
            "total_stages": len(ordered),
            "approved": counts.get(ApprovalDecision.APPROVED, 0),
            "rejected": counts.get(ApprovalDecision.REJECTED, 0),
            "pending": counts.get(ApprovalDecision.PENDING, 0),
            "completion_percent": completion_percent(ordered),
            "blocking_stage": blocking,
            "stages": stage_rows,
        }

    # -------------------------
    # Audit
    # -------------------------

    def get_audit_trail(
        self,
        sow_id: str,
        action: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        self._load(sow_id)
        return [e.to_dict() for e in self._audit_log.list_for_sow(sow_id, action=action, user_id=user_id)]

    def get_audit_summary(self, sow_id: str) -> Dict[str, Any]:
        """Totals by action and by user, plus every decision in order."""
        self._load(sow_id)
        events = self._audit_log.list_for_sow(sow_id)

        by_action = Counter(e.action.value for e in events)
        by_user = Counter(e.user_id for e in events if e.user_id)

        return {
            "sow_id": sow_id,
            "total_actions": len(events),
            "actions_by_type": dict(by_action),
            "actions_by_user": dict(by_user),
            "approval_timeline": [
                e.to_dict() for e in events if e.action in _DECISION_ACTIONS
            ],
            "last_action_at": events[-1].created_at.isoformat()
            if events and events[-1].created_at else None,
        }

    def export_audit_csv(self, sow_id: str) -> str:
        self._load(sow_id)
        stage_names = {stage.id: stage.name for stage in self._stages.list_all()}

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for event in self._audit_log.list_for_sow(sow_id):
            writer.writerow([
                event.created_at.isoformat() if event.created_at else "",
                event.user_id or "System",
                event.action.value,
                stage_names.get(event.stage_id, event.stage_id or ""),
                event.previous_status or "",
                event.new_status or "",
                event.comments or "",
                json.dumps(event.metadata, sort_keys=True) if event.metadata else "",
            ])
        return buffer.getvalue()

    # -------------------------
    # Validation
    # -------------------------

    def validate_workflow(self, sow_id: str) -> WorkflowValidation:
        """
        Check a SOW's approval rows for structural problems.

        Reports duplicate rows per stage, active stages missing from an
        initiated workflow, active rows pointing at unknown or retired
        stages, decided rows with no approver, approvals recorded out of
        order under sequential gating, and a stored SOW status that
        disagrees with what the approvals imply. Nothing is repaired.
        """
        sow = self._load(sow_id)
        stages_by_id = {stage.id: stage for stage in self._stages.list_all()}
        approvals = self._approvals.list_for_sow(sow_id)
        active = active_approvals(approvals)
        errors: List[str] = []

        seen = Counter(a.stage_id for a in active)
        for stage_id, count in seen.items():
            if count > 1:
                errors.append(f"Stage {stage_id} has {count} active approval records")

        if active:
            for stage in stages_by_id.values():
                if stage.is_active and stage.id not in seen:
                    errors.append(f"Active stage '{stage.name}' has no approval record")

        for approval in active:
            stage = stages_by_id.get(approval.stage_id)
            if stage is None:
                errors.append(f"Approval {approval.id} references unknown stage {approval.stage_id}")
            elif not stage.is_active:
                errors.append(f"Approval {approval.id} belongs to inactive stage '{stage.name}'")

            if not approval.is_pending and not approval.approver_id:
                errors.append(f"Approval {approval.id} is {approval.status.value} without an approver")

        if self._policy.is_sequential:
            pending_seen = False
            for approval in order_approvals(active, stages_by_id):
                if approval.is_pending:
                    pending_seen = True
                elif approval.status == ApprovalDecision.APPROVED and pending_seen:
                    errors.append(
                        f"Stage {approval.stage_id} was approved before an earlier stage"
                    )

        expected = derive_document_status(approvals)
        if expected != sow.status:
            errors.append(
                f"SOW status is {sow.status.value} but approvals imply {expected.value}"
            )

        if errors:
            logger.info(f"Workflow validation for SOW {sow_id} found {len(errors)} problem(s)")
        return WorkflowValidation(is_valid=not errors, errors=errors)

    def _load(self, sow_id: str) -> SOWDocument:
        sow = self._sows.get_by_id(sow_id)
        if sow is None or sow.is_hidden:
            raise NotFoundError("SOW not found", detail=f"No SOW with id: {sow_id}")
        return sow

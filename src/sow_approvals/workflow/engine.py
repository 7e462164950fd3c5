# src/sow_approvals/workflow/engine.py
"""
Approval Workflow Engine

Drives a SOW through its multi-stage approval:

    initiate  -> one pending approval per active stage, SOW in_review
    decide    -> record approved/rejected on a stage; SOW status follows
    recall    -> every approval back to pending (inactive), SOW recalled

The engine never writes SOW.status directly. After each mutation it hands the
fresh approval rows to the ConsistencyChecker, which derives the status and
stores it, so the stored status is always what the approvals say.

Slack notifications and audit events are side effects: their failures are
logged and never undo or fail the operation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..config import WorkflowPolicy
from ..exceptions import InvalidStateError, NotFoundError, ValidationError
from ..infrastructure.locks import DocumentLocks
from ..infrastructure.slack_notifier import NotificationSink
from ..models import (
    INITIABLE_STATUSES,
    TERMINAL_STATUSES,
    ApprovalDecision,
    ApprovalStage,
    AuditAction,
    AuditEvent,
    DocumentStatus,
    SOWDocument,
    StageApproval,
)
from ..repositories.approvals import ApprovalRepository
from ..repositories.audit_log import AuditLogRepository
from ..repositories.sows import SOWRepository
from ..repositories.stages import StageRegistry
from .audit import record_audit_event
from .consistency import ConsistencyChecker, ReconcileResult
from .status import (
    active_approvals,
    completion_percent,
    first_pending,
    order_approvals,
    unmet_predecessors,
)

logger = logging.getLogger(__name__)

# Accepted spellings for a decision coming from callers
DECISION_ALIASES = {
    "approve": ApprovalDecision.APPROVED,
    "approved": ApprovalDecision.APPROVED,
    "reject": ApprovalDecision.REJECTED,
    "rejected": ApprovalDecision.REJECTED,
}


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class InitiationResult:
    """Outcome of starting (or restarting) a workflow."""
    sow_id: str
    document_status: DocumentStatus
    stages_created: int
    stages_reset: int
    first_stage_id: Optional[str] = None

    @property
    def total_stages(self) -> int:
        return self.stages_created + self.stages_reset

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sow_id": self.sow_id,
            "document_status": self.document_status.value,
            "stages_created": self.stages_created,
            "stages_reset": self.stages_reset,
            "total_stages": self.total_stages,
            "first_stage_id": self.first_stage_id,
        }


@dataclass
class DecisionResult:
    """Outcome of deciding one stage."""
    sow_id: str
    stage_id: str
    approval_id: str
    decision: ApprovalDecision
    previous_status: DocumentStatus
    document_status: DocumentStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sow_id": self.sow_id,
            "stage_id": self.stage_id,
            "approval_id": self.approval_id,
            "decision": self.decision.value,
            "previous_status": self.previous_status.value,
            "document_status": self.document_status.value,
        }


@dataclass
class RecallResult:
    """Outcome of pulling a SOW back out of review."""
    sow_id: str
    previous_status: DocumentStatus
    document_status: DocumentStatus
    approvals_reset: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sow_id": self.sow_id,
            "previous_status": self.previous_status.value,
            "document_status": self.document_status.value,
            "approvals_reset": self.approvals_reset,
        }


# =============================================================================
# ENGINE
# =============================================================================

class ApprovalWorkflowEngine:
    """
    Multi-stage approval workflow for SOWs.

    Usage:
        engine = container.workflow_engine()

        engine.initiate_workflow(sow_id)
        engine.record_decision(sow_id, stage_id, "approved", actor_id="user-1")
        engine.recall_workflow(sow_id)
    """

    def __init__(
        self,
        sows: SOWRepository,
        stages: StageRegistry,
        approvals: ApprovalRepository,
        audit_log: AuditLogRepository,
        checker: ConsistencyChecker,
        locks: DocumentLocks,
        notifier: NotificationSink,
        policy: Optional[WorkflowPolicy] = None,
    ):
        self._sows = sows
        self._stages = stages
        self._approvals = approvals
        self._audit_log = audit_log
        self._checker = checker
        self._locks = locks
        self._notifier = notifier
        self._policy = policy or WorkflowPolicy()

    @property
    def policy(self) -> WorkflowPolicy:
        return self._policy

    # -------------------------
    # Initiate
    # -------------------------

    def initiate_workflow(self, sow_id: str, actor_id: Optional[str] = None) -> InitiationResult:
        """
        Start the approval workflow for a SOW.

        Creates one pending approval per active stage (reusing the row of a
        previous cycle where one exists) and moves the SOW to in_review.

        Raises:
            NotFoundError: SOW missing/hidden, or no active stages configured
            InvalidStateError: SOW is not the latest revision, or is already
                in review / approved
        """
        with self._locks.hold(sow_id):
            sow = self._load_visible(sow_id)

            if not sow.is_latest:
                raise InvalidStateError(
                    "Only the latest revision of a SOW can be submitted for approval",
                    detail=f"SOW {sow_id} is version {sow.version} and has a newer revision",
                )
            if sow.status not in INITIABLE_STATUSES:
                raise InvalidStateError(
                    "Approval workflow already initiated",
                    detail=f"Current status: {sow.status.value}",
                )

            stages = self._stages.list_active()
            if not stages:
                raise NotFoundError("No active approval stages configured")

            existing = {a.stage_id: a for a in self._approvals.list_for_sow(sow_id)}
            active_ids = {stage.id for stage in stages}

            reset = [self._approvals.restart(existing[s.id]) for s in stages if s.id in existing]
            created = self._approvals.create_pending(
                sow_id, [s.id for s in stages if s.id not in existing]
            )
            for approval in existing.values():
                if approval.stage_id not in active_ids and approval.is_active:
                    self._approvals.deactivate(approval)

            result = self._checker.reconcile(sow, self._approvals.list_for_sow(sow_id))

            first_stage_id = stages[0].id
            logger.info(
                f"Approval workflow initiated for SOW {sow_id}: "
                f"{len(created)} created, {len(reset)} reset"
            )

            record_audit_event(self._audit_log, AuditEvent(
                sow_id=sow_id,
                action=AuditAction.WORKFLOW_INITIATED,
                user_id=actor_id,
                previous_status=sow.status.value,
                new_status=result.status.value,
                comments=f"Approval workflow initiated with {len(stages)} stages",
                metadata={
                    "stages_created": len(created),
                    "stages_reset": len(reset),
                    "stage_ids": [s.id for s in stages],
                },
            ))
            self._announce_status_change(result, actor_id)

            return InitiationResult(
                sow_id=sow_id,
                document_status=result.status,
                stages_created=len(created),
                stages_reset=len(reset),
                first_stage_id=first_stage_id,
            )

    # -------------------------
    # Decide
    # -------------------------

    def record_decision(
        self,
        sow_id: str,
        stage_id: str,
        decision: Union[str, ApprovalDecision],
        actor_id: str,
        comment: Optional[str] = None,
    ) -> DecisionResult:
        """
        Record an approve/reject decision on one stage.

        A rejection makes the SOW rejected immediately; approving the last
        pending stage makes it approved; anything else leaves it in_review.

        Raises:
            ValidationError: unknown decision, missing actor or required comment
            NotFoundError: SOW missing/hidden or no active approval for the stage
            InvalidStateError: SOW not in review, stage already decided, or
                (sequential gating) earlier stages not yet approved
            ConflictError: the approval changed concurrently
        """
        decision = self._parse_decision(decision)
        if not actor_id:
            raise ValidationError("An actor is required to record a decision")

        with self._locks.hold(sow_id):
            sow = self._load_visible(sow_id)

            if sow.status != DocumentStatus.IN_REVIEW:
                raise InvalidStateError(
                    "SOW is not under review",
                    detail=f"Current status: {sow.status.value}",
                )

            stages_by_id = {stage.id: stage for stage in self._stages.list_all()}
            ordered = order_approvals(
                active_approvals(self._approvals.list_for_sow(sow_id)), stages_by_id
            )

            approval = next((a for a in ordered if a.stage_id == stage_id), None)
            if approval is None:
                raise NotFoundError(
                    "Approval record not found",
                    detail=f"No active approval for stage {stage_id} on SOW {sow_id}",
                )
            stage = stages_by_id.get(stage_id) or ApprovalStage(
                id=stage_id, name="Unknown stage", sort_order=0
            )

            self._check_actionable(stage, approval, ordered, stages_by_id)

            comment = (comment or "").strip() or None
            if comment is None and self._comment_required(stage, decision):
                raise ValidationError(
                    f"Comments are required to {'reject' if decision == ApprovalDecision.REJECTED else 'approve'} "
                    f"stage '{stage.name}'"
                )

            decided = self._approvals.record_decision(approval, decision, actor_id, comment)
            result = self._checker.reconcile(sow, self._approvals.list_for_sow(sow_id))

            record_audit_event(self._audit_log, AuditEvent(
                sow_id=sow_id,
                action=(
                    AuditAction.STAGE_APPROVED
                    if decision == ApprovalDecision.APPROVED
                    else AuditAction.STAGE_REJECTED
                ),
                approval_id=decided.id,
                stage_id=stage_id,
                user_id=actor_id,
                previous_status=approval.status.value,
                new_status=decision.value,
                comments=comment,
                metadata={"stage_name": stage.name},
            ))
            if result.changed and result.status in TERMINAL_STATUSES:
                record_audit_event(self._audit_log, AuditEvent(
                    sow_id=sow_id,
                    action=AuditAction.WORKFLOW_COMPLETED,
                    user_id=actor_id,
                    previous_status=result.previous_status.value,
                    new_status=result.status.value,
                    metadata={"final_stage": stage.name},
                ))

            self._notify("decision", self._notifier.notify_decision, result.document or sow, stage, decided)
            self._announce_status_change(result, actor_id)

            return DecisionResult(
                sow_id=sow_id,
                stage_id=stage_id,
                approval_id=decided.id,
                decision=decision,
                previous_status=result.previous_status,
                document_status=result.status,
            )

    # -------------------------
    # Recall
    # -------------------------

    def recall_workflow(
        self,
        sow_id: str,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RecallResult:
        """
        Pull a SOW back out of review.

        Every approval returns to pending and leaves the active workflow;
        the SOW becomes recalled and can be initiated again after editing.

        Raises:
            NotFoundError: SOW missing/hidden
            InvalidStateError: SOW is not in review
        """
        with self._locks.hold(sow_id):
            sow = self._load_visible(sow_id)

            if sow.status != DocumentStatus.IN_REVIEW:
                raise InvalidStateError(
                    "Only SOWs under review can be recalled",
                    detail=f"Current status: {sow.status.value}",
                )

            reset = self._approvals.reset_all(sow_id)
            result = self._checker.reconcile(sow, self._approvals.list_for_sow(sow_id))
            logger.info(f"Approval workflow recalled for SOW {sow_id} ({len(reset)} approvals reset)")

            record_audit_event(self._audit_log, AuditEvent(
                sow_id=sow_id,
                action=AuditAction.WORKFLOW_RECALLED,
                user_id=actor_id,
                previous_status=result.previous_status.value,
                new_status=result.status.value,
                comments=reason,
                metadata={"approvals_reset": len(reset)},
            ))
            self._announce_status_change(result, actor_id)

            return RecallResult(
                sow_id=sow_id,
                previous_status=result.previous_status,
                document_status=result.status,
                approvals_reset=len(reset),
            )

    # -------------------------
    # Read
    # -------------------------

    def get_workflow_status(self, sow_id: str) -> Dict[str, Any]:
        """Approvals joined with their stages, the actionable stage and progress."""
        sow = self._load_visible(sow_id)
        stages_by_id = {stage.id: stage for stage in self._stages.list_all()}
        approvals = self._approvals.list_for_sow(sow_id)
        if not approvals:
            raise NotFoundError(
                "No approval workflow found for this SOW",
                detail=f"SOW {sow_id} has never been submitted for approval",
            )

        shown = active_approvals(approvals) or approvals
        ordered = order_approvals(shown, stages_by_id)
        current = first_pending(ordered) if sow.status == DocumentStatus.IN_REVIEW else None

        return {
            "sow_id": sow_id,
            "document_status": sow.status.value,
            "gating": self._policy.gating,
            "current_stage": self._stage_entry(current, stages_by_id) if current else None,
            "all_stages": [self._stage_entry(a, stages_by_id) for a in ordered],
            "completion_percent": completion_percent(ordered),
            "total_stages": len(ordered),
            "completed_stages": sum(1 for a in ordered if a.status == ApprovalDecision.APPROVED),
        }

    # -------------------------
    # Helpers
    # -------------------------

    def _load_visible(self, sow_id: str) -> SOWDocument:
        sow = self._sows.get_by_id(sow_id)
        if sow is None or sow.is_hidden:
            raise NotFoundError("SOW not found", detail=f"No SOW with id: {sow_id}")
        return sow

    @staticmethod
    def _parse_decision(decision: Union[str, ApprovalDecision]) -> ApprovalDecision:
        if isinstance(decision, ApprovalDecision):
            value = decision.value
        else:
            value = str(decision or "").strip().lower()

        parsed = DECISION_ALIASES.get(value)
        if parsed is None:
            raise ValidationError(
                f"Invalid decision: {decision}",
                detail="Valid decisions: approved, rejected",
            )
        return parsed

    def _check_actionable(
        self,
        stage: ApprovalStage,
        approval: StageApproval,
        ordered: List[StageApproval],
        stages_by_id: Dict[str, ApprovalStage],
    ):
        if not approval.is_pending and not self._policy.allow_redecision:
            raise InvalidStateError(
                f"Stage '{stage.name}' is already {approval.status.value}",
                detail="Recall the workflow to change a recorded decision",
            )

        if self._policy.is_sequential:
            blockers = unmet_predecessors(approval, ordered)
            if blockers:
                names = ", ".join(
                    stages_by_id[b.stage_id].name if b.stage_id in stages_by_id else b.stage_id
                    for b in blockers
                )
                raise InvalidStateError(
                    f"Stage '{stage.name}' is waiting on earlier stages",
                    detail=f"Not yet approved: {names}",
                )

    def _comment_required(self, stage: ApprovalStage, decision: ApprovalDecision) -> bool:
        if stage.requires_comment:
            return True
        return decision == ApprovalDecision.REJECTED and self._policy.require_rejection_comment

    @staticmethod
    def _stage_entry(approval: StageApproval, stages_by_id: Dict[str, ApprovalStage]) -> Dict[str, Any]:
        entry = approval.to_dict()
        stage = stages_by_id.get(approval.stage_id)
        entry["stage"] = stage.to_dict() if stage else None
        return entry

    def _announce_status_change(self, result: ReconcileResult, actor_id: Optional[str]):
        if not result.changed or result.document is None:
            return
        self._notify(
            "status change",
            self._notifier.notify_status_change,
            result.document,
            result.previous_status,
            result.status,
            actor_id,
        )

    @staticmethod
    def _notify(kind: str, send, *args):
        try:
            send(*args)
        except Exception as e:
            logger.warning(f"Slack {kind} notification failed: {e}")

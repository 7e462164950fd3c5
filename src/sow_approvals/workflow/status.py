# src/sow_approvals/workflow/status.py
"""
Status derivation.

A SOW's status is a projection of its approval rows. These helpers are pure:
they take rows that were already loaded and never touch a store, so the
engine, the consistency checker and the reporter all agree on one truth table.
"""

from typing import Dict, Iterable, List, Optional

from ..models import ApprovalDecision, ApprovalStage, DocumentStatus, StageApproval

# Approvals whose stage no longer exists sort after every known stage
_UNKNOWN_STAGE_ORDER = 1_000_000


def order_approvals(
    approvals: Iterable[StageApproval],
    stages_by_id: Dict[str, ApprovalStage],
) -> List[StageApproval]:
    """Sort approvals by their stage's sort_order."""
    def key(approval: StageApproval):
        stage = stages_by_id.get(approval.stage_id)
        order = stage.sort_order if stage else _UNKNOWN_STAGE_ORDER
        return (order, approval.stage_id)

    return sorted(approvals, key=key)


def active_approvals(approvals: Iterable[StageApproval]) -> List[StageApproval]:
    return [a for a in approvals if a.is_active]


def derive_document_status(approvals: List[StageApproval]) -> DocumentStatus:
    """
    Compute what a SOW's status must be given its approval rows.

    - no rows at all                 -> draft
    - only inactive rows (recalled)  -> recalled
    - any active row rejected        -> rejected
    - every active row approved      -> approved
    - otherwise                      -> in_review
    """
    if not approvals:
        return DocumentStatus.DRAFT

    active = active_approvals(approvals)
    if not active:
        return DocumentStatus.RECALLED

    if any(a.status == ApprovalDecision.REJECTED for a in active):
        return DocumentStatus.REJECTED

    if all(a.status == ApprovalDecision.APPROVED for a in active):
        return DocumentStatus.APPROVED

    return DocumentStatus.IN_REVIEW


def first_pending(ordered: List[StageApproval]) -> Optional[StageApproval]:
    """Lowest sort_order active approval still waiting for a decision."""
    for approval in ordered:
        if approval.is_active and approval.is_pending:
            return approval
    return None


def unmet_predecessors(
    target: StageApproval,
    ordered: List[StageApproval],
) -> List[StageApproval]:
    """
    Active approvals ahead of `target` in sort order that are not approved.

    Under sequential gating a stage may only be decided when this is empty.
    """
    blockers = []
    for approval in ordered:
        if approval.id == target.id:
            break
        if approval.is_active and approval.status != ApprovalDecision.APPROVED:
            blockers.append(approval)
    return blockers


def completion_percent(approvals: List[StageApproval]) -> int:
    """Share of approved rows, rounded to a whole percent."""
    if not approvals:
        return 0
    approved = sum(1 for a in approvals if a.status == ApprovalDecision.APPROVED)
    return round(approved / len(approvals) * 100)

# src/sow_approvals/workflow/consistency.py
"""
Consistency Checker

Recomputes a SOW's status from its approval rows and writes it back when the
stored value has drifted, e.g. after a crash between "approval decided" and
"SOW status updated". Running it again on an already consistent SOW changes
nothing.

The engine calls `reconcile` after every mutation while holding the SOW's
lock; the public methods take the lock themselves.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import NotFoundError
from ..infrastructure.locks import DocumentLocks
from ..models import AuditAction, AuditEvent, DocumentStatus, SOWDocument, StageApproval
from ..repositories.approvals import ApprovalRepository
from ..repositories.audit_log import AuditLogRepository
from ..repositories.sows import SOWRepository
from .audit import record_audit_event
from .status import active_approvals, derive_document_status

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of a status repair."""
    sow_id: str
    previous_status: DocumentStatus
    status: DocumentStatus
    changed: bool
    document: Optional[SOWDocument] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sow_id": self.sow_id,
            "previous_status": self.previous_status.value,
            "status": self.status.value,
            "changed": self.changed,
        }


class ConsistencyChecker:
    """Keeps SOW.status reconcilable with the stored approvals."""

    def __init__(
        self,
        sows: SOWRepository,
        approvals: ApprovalRepository,
        audit_log: AuditLogRepository,
        locks: DocumentLocks,
    ):
        self._sows = sows
        self._approvals = approvals
        self._audit_log = audit_log
        self._locks = locks

    # -------------------------
    # Engine hook
    # -------------------------

    def reconcile(self, sow: SOWDocument, approvals: List[StageApproval]) -> ReconcileResult:
        """
        Write the derived status if it differs from `sow.status`.

        Caller must hold the SOW's lock and pass freshly loaded approvals.
        """
        expected = derive_document_status(approvals)
        if expected == sow.status:
            return ReconcileResult(sow.id, sow.status, sow.status, changed=False, document=sow)

        updated = self._sows.update_status(sow.id, expected, expected_status=sow.status)
        return ReconcileResult(sow.id, sow.status, expected, changed=True, document=updated)

    # -------------------------
    # Repairs
    # -------------------------

    def check_and_fix_status_consistency(self, sow_id: str) -> ReconcileResult:
        """Recompute the SOW status from its approvals and repair drift."""
        with self._locks.hold(sow_id):
            sow = self._load(sow_id)
            result = self.reconcile(sow, self._approvals.list_for_sow(sow_id))

            if result.changed:
                logger.warning(
                    f"SOW {sow_id} status drifted: stored {result.previous_status.value}, "
                    f"approvals say {result.status.value}"
                )
                record_audit_event(self._audit_log, AuditEvent(
                    sow_id=sow_id,
                    action=AuditAction.STATUS_RECONCILED,
                    previous_status=result.previous_status.value,
                    new_status=result.status.value,
                    comments="Status recomputed from approval records",
                ))
            return result

    def reset_invalid_sow_status(self, sow_id: str) -> ReconcileResult:
        """
        Take an in_review SOW with no active workflow out of review.

        With no approval rows at all the SOW goes back to draft. Rows left
        inactive by a recall decide the status instead, so the result is
        the same one `check_and_fix_status_consistency` would settle on.
        """
        with self._locks.hold(sow_id):
            sow = self._load(sow_id)

            if sow.status != DocumentStatus.IN_REVIEW:
                return ReconcileResult(sow_id, sow.status, sow.status, changed=False, document=sow)

            approvals = self._approvals.list_for_sow(sow_id)
            if active_approvals(approvals):
                return ReconcileResult(sow_id, sow.status, sow.status, changed=False, document=sow)

            target = derive_document_status(approvals)
            updated = self._sows.update_status(
                sow_id, target, expected_status=DocumentStatus.IN_REVIEW
            )
            logger.warning(f"SOW {sow_id} was in_review without a workflow; reset to {target.value}")
            record_audit_event(self._audit_log, AuditEvent(
                sow_id=sow_id,
                action=AuditAction.STATUS_RESET,
                previous_status=DocumentStatus.IN_REVIEW.value,
                new_status=target.value,
                comments="No active approval workflow found",
            ))
            return ReconcileResult(
                sow_id, DocumentStatus.IN_REVIEW, target, changed=True, document=updated
            )

    def _load(self, sow_id: str) -> SOWDocument:
        sow = self._sows.get_by_id(sow_id)
        if sow is None or sow.is_hidden:
            raise NotFoundError("SOW not found", detail=f"No SOW with id: {sow_id}")
        return sow

# src/sow_approvals/workflow/audit.py
"""Best-effort audit logging shared by the engine and the consistency checker."""

import logging
from typing import Optional

from ..exceptions import WorkflowError
from ..models import AuditEvent
from ..repositories.audit_log import AuditLogRepository

logger = logging.getLogger(__name__)


def record_audit_event(repo: AuditLogRepository, event: AuditEvent) -> Optional[AuditEvent]:
    """
    Append an audit event; a failing audit store never fails the workflow.

    Returns the stored event, or None when the write failed.
    """
    try:
        return repo.append(event)
    except WorkflowError as e:
        logger.warning(f"Audit logging failed for SOW {event.sow_id} ({event.action.value}): {e.message}")
        return None

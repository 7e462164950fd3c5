# src/sow_approvals/api/approvals.py
"""
Approval Workflow API

REST endpoints for a SOW's approval workflow:
- POST /sows/{sow_id}/approvals/initiate - Submit for approval
- POST /sows/{sow_id}/approvals/{stage_id}/decision - Approve/reject a stage
- POST /sows/{sow_id}/approvals/recall - Pull back out of review
- POST /sows/{sow_id}/approvals/reconcile - Repair status drift
- POST /sows/{sow_id}/approvals/reset-status - Reset in_review without workflow
- GET  /sows/{sow_id}/approvals - Current workflow state
- GET  /sows/{sow_id}/approvals/stats - Progress statistics
- GET  /sows/{sow_id}/approvals/audit - Audit summary and events
- GET  /sows/{sow_id}/approvals/audit/export - Audit trail as CSV
- GET  /sows/{sow_id}/approvals/validate - Structural checks

Failures are raised as WorkflowError and rendered by the app's handler.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from ..exceptions import NotFoundError, PermissionDeniedError
from ..workflow.consistency import ConsistencyChecker
from ..workflow.engine import ApprovalWorkflowEngine
from ..workflow.permissions import can_decide_stage, required_roles
from ..workflow.reporting import ApprovalReporter
from .deps import get_checker, get_container, get_engine, get_reporter
from .models import DecisionRequest, InitiateRequest, RecallRequest
from .responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sows/{sow_id}/approvals", tags=["approvals"])


# =============================================================================
# COMMANDS
# =============================================================================

@router.post("/initiate")
def initiate_workflow(
    sow_id: str,
    body: Optional[InitiateRequest] = None,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
):
    """Submit a SOW for approval."""
    actor_id = body.actor_id if body else None
    result = engine.initiate_workflow(sow_id, actor_id=actor_id)
    return success_response(result.to_dict())


@router.post("/recall")
def recall_workflow(
    sow_id: str,
    body: Optional[RecallRequest] = None,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
):
    """Recall a SOW that is under review."""
    result = engine.recall_workflow(
        sow_id,
        actor_id=body.actor_id if body else None,
        reason=body.reason if body else None,
    )
    return success_response(result.to_dict())


@router.post("/reconcile")
def reconcile_status(
    sow_id: str,
    checker: ConsistencyChecker = Depends(get_checker),
):
    """Recompute the SOW status from its approvals and repair drift."""
    return success_response(checker.check_and_fix_status_consistency(sow_id).to_dict())


@router.post("/reset-status")
def reset_status(
    sow_id: str,
    checker: ConsistencyChecker = Depends(get_checker),
):
    """Send an in_review SOW without an active workflow back to draft."""
    return success_response(checker.reset_invalid_sow_status(sow_id).to_dict())


@router.post("/{stage_id}/decision")
def record_decision(
    sow_id: str,
    stage_id: str,
    body: DecisionRequest,
    request: Request,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
):
    """
    Approve or reject one stage.

    The caller's role is checked against the stage before the engine runs.
    """
    stage = get_container(request).stage_registry().get_by_id(stage_id)
    if stage is None:
        raise NotFoundError("Approval stage not found", detail=f"No stage with id: {stage_id}")

    if not can_decide_stage(stage, body.actor_id, body.actor_role):
        logger.info(f"User {body.actor_id} ({body.actor_role}) denied on stage '{stage.name}'")
        raise PermissionDeniedError(
            f"Not allowed to decide stage '{stage.name}'",
            detail=f"Required roles: {', '.join(required_roles(stage))}",
        )

    result = engine.record_decision(
        sow_id,
        stage_id,
        body.decision,
        actor_id=body.actor_id,
        comment=body.comment,
    )
    return success_response(result.to_dict())


# =============================================================================
# QUERIES
# =============================================================================

@router.get("")
def get_workflow_status(
    sow_id: str,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
):
    return success_response(engine.get_workflow_status(sow_id))


@router.get("/stats")
def get_approval_stats(
    sow_id: str,
    reporter: ApprovalReporter = Depends(get_reporter),
):
    return success_response(reporter.get_approval_stats(sow_id))


@router.get("/audit")
def get_audit(
    sow_id: str,
    action: Optional[str] = Query(None, description="Filter events by action"),
    user_id: Optional[str] = Query(None, description="Filter events by user"),
    reporter: ApprovalReporter = Depends(get_reporter),
):
    """Audit summary plus the (optionally filtered) event list."""
    summary = reporter.get_audit_summary(sow_id)
    summary["events"] = reporter.get_audit_trail(sow_id, action=action, user_id=user_id)
    return success_response(summary)


@router.get("/audit/export")
def export_audit(
    sow_id: str,
    reporter: ApprovalReporter = Depends(get_reporter),
):
    content = reporter.export_audit_csv(sow_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="sow-{sow_id}-audit.csv"'},
    )


@router.get("/validate")
def validate_workflow(
    sow_id: str,
    reporter: ApprovalReporter = Depends(get_reporter),
):
    return success_response(reporter.validate_workflow(sow_id).to_dict())

# src/sow_approvals/workflow/__init__.py
"""
Approval workflow domain.

- engine: initiate / decide / recall
- consistency: status reconciliation and repair
- reporting: stats, audit summaries, validation
- status: pure status derivation
"""

from .consistency import ConsistencyChecker, ReconcileResult
from .engine import (
    ApprovalWorkflowEngine,
    DecisionResult,
    InitiationResult,
    RecallResult,
)
from .permissions import can_decide_stage, required_roles
from .reporting import ApprovalReporter, WorkflowValidation
from .status import derive_document_status

__all__ = [
    "ApprovalWorkflowEngine",
    "ApprovalReporter",
    "ConsistencyChecker",
    "DecisionResult",
    "InitiationResult",
    "RecallResult",
    "ReconcileResult",
    "WorkflowValidation",
    "can_decide_stage",
    "derive_document_status",
    "required_roles",
]

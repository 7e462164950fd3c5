# src/sow_approvals/models.py
"""
Domain Models - SOWs, approval stages, approval records and audit events.

Plain dataclasses mirroring the Supabase rows. Each entity parses its own row
(from_dict) and renders itself for API responses (to_dict).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import json


class DocumentStatus(str, Enum):
    """Lifecycle status of a SOW."""
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECALLED = "recalled"


class ApprovalDecision(str, Enum):
    """Decision recorded on a single approval stage."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AuditAction(str, Enum):
    """Actions written to the approval audit log."""
    WORKFLOW_INITIATED = "workflow_initiated"
    STAGE_APPROVED = "stage_approved"
    STAGE_REJECTED = "stage_rejected"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_RECALLED = "workflow_recalled"
    STATUS_RECONCILED = "status_reconciled"
    STATUS_RESET = "status_reset"


# Statuses from which a workflow may be (re)started
INITIABLE_STATUSES = (
    DocumentStatus.DRAFT,
    DocumentStatus.RECALLED,
    DocumentStatus.REJECTED,
)

TERMINAL_STATUSES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


def parse_datetime(val) -> Optional[datetime]:
    """Parse an ISO timestamp coming back from PostgREST."""
    if not val:
        return None
    if isinstance(val, datetime):
        return val
    try:
        return datetime.fromisoformat(str(val).replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None


def _iso(val: Optional[datetime]) -> Optional[str]:
    return val.isoformat() if val else None


@dataclass
class SOWDocument:
    """The Statement of Work whose status the workflow governs."""
    id: str
    title: str = ""
    client_name: str = ""
    status: DocumentStatus = DocumentStatus.DRAFT
    version: int = 1
    is_latest: bool = True
    parent_id: Optional[str] = None
    is_hidden: bool = False
    author_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "SOWDocument":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or row.get("sow_title") or "",
            client_name=row.get("client_name") or "",
            status=DocumentStatus(row.get("status") or "draft"),
            version=int(row.get("version") or 1),
            is_latest=row.get("is_latest", True) is not False,
            parent_id=row.get("parent_id"),
            is_hidden=bool(row.get("is_hidden", False)),
            author_id=row.get("author_id"),
            updated_at=parse_datetime(row.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "client_name": self.client_name,
            "status": self.status.value,
            "version": self.version,
            "is_latest": self.is_latest,
            "parent_id": self.parent_id,
            "is_hidden": self.is_hidden,
            "author_id": self.author_id,
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class ApprovalStage:
    """One named checkpoint in the approval sequence."""
    id: str
    name: str
    sort_order: int
    description: str = ""
    is_active: bool = True
    assigned_user_id: Optional[str] = None
    assigned_role: Optional[str] = None
    requires_comment: bool = False

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ApprovalStage":
        return cls(
            id=str(row["id"]),
            name=row.get("name", ""),
            sort_order=int(row.get("sort_order") or 0),
            description=row.get("description") or "",
            is_active=bool(row.get("is_active", True)),
            assigned_user_id=row.get("assigned_user_id"),
            assigned_role=row.get("assigned_role"),
            requires_comment=bool(row.get("requires_comment", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "assigned_user_id": self.assigned_user_id,
            "assigned_role": self.assigned_role,
            "requires_comment": self.requires_comment,
        }


@dataclass
class StageApproval:
    """
    The decision record for one (SOW, stage) pair.

    is_active marks rows that belong to the currently initiated workflow;
    a recalled workflow leaves its rows in place but inactive.
    """
    id: str
    sow_id: str
    stage_id: str
    status: ApprovalDecision = ApprovalDecision.PENDING
    approver_id: Optional[str] = None
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None
    is_active: bool = True
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalDecision.PENDING

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "StageApproval":
        return cls(
            id=str(row["id"]),
            sow_id=str(row["sow_id"]),
            stage_id=str(row["stage_id"]),
            status=ApprovalDecision(row.get("status") or "pending"),
            approver_id=row.get("approver_id"),
            comments=row.get("comments"),
            decided_at=parse_datetime(row.get("decided_at")),
            is_active=bool(row.get("is_active", True)),
            version=int(row.get("version") or 1),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sow_id": self.sow_id,
            "stage_id": self.stage_id,
            "status": self.status.value,
            "approver_id": self.approver_id,
            "comments": self.comments,
            "decided_at": _iso(self.decided_at),
            "is_active": self.is_active,
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class AuditEvent:
    """A row in the approval audit log."""
    sow_id: str
    action: AuditAction
    id: Optional[str] = None
    approval_id: Optional[str] = None
    stage_id: Optional[str] = None
    user_id: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    comments: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "AuditEvent":
        metadata = row.get("metadata") or {}
        if isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except json.JSONDecodeError:
                metadata = {}
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            sow_id=str(row["sow_id"]),
            action=AuditAction(row["action"]),
            approval_id=row.get("approval_id"),
            stage_id=row.get("stage_id"),
            user_id=row.get("user_id"),
            previous_status=row.get("previous_status"),
            new_status=row.get("new_status"),
            comments=row.get("comments"),
            metadata=metadata,
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sow_id": self.sow_id,
            "approval_id": self.approval_id,
            "stage_id": self.stage_id,
            "user_id": self.user_id,
            "action": self.action.value,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "comments": self.comments,
            "metadata": self.metadata,
            "created_at": _iso(self.created_at),
        }

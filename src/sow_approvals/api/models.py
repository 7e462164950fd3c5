# src/sow_approvals/api/models.py
"""Request bodies for the approval endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class InitiateRequest(BaseModel):
    """Start (or restart) the approval workflow."""
    actor_id: Optional[str] = None


class DecisionRequest(BaseModel):
    """Approve or reject one stage."""
    decision: str = Field(..., description="'approved' or 'rejected'")
    actor_id: str = Field(..., min_length=1)
    actor_role: Optional[str] = None
    comment: Optional[str] = None


class RecallRequest(BaseModel):
    """Pull a SOW back out of review."""
    actor_id: Optional[str] = None
    reason: Optional[str] = None

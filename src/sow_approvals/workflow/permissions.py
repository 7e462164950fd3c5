# src/sow_approvals/workflow/permissions.py
"""Who may decide which approval stage."""

from typing import List, Optional

from ..models import ApprovalStage

ADMIN_ROLE = "admin"

# Approver roles for the standard stages when a stage row names none
DEFAULT_STAGE_ROLES = {
    "Professional Services": "manager",
    "Project Management": "pmo",
    "Sr. Leadership": "manager",
}


def required_roles(stage: ApprovalStage) -> List[str]:
    """Roles allowed to decide `stage`, admin always included."""
    role = stage.assigned_role or DEFAULT_STAGE_ROLES.get(stage.name)
    return [role, ADMIN_ROLE] if role and role != ADMIN_ROLE else [ADMIN_ROLE]


def can_decide_stage(
    stage: ApprovalStage,
    actor_id: Optional[str],
    actor_role: Optional[str],
) -> bool:
    """
    Admins decide any stage; otherwise the stage's assigned user, or a
    holder of the stage's role.
    """
    if actor_role == ADMIN_ROLE:
        return True
    if stage.assigned_user_id and actor_id == stage.assigned_user_id:
        return True
    return bool(actor_role) and actor_role in required_roles(stage)

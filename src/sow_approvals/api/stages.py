# src/sow_approvals/api/stages.py
"""Approval stage registry endpoint."""

from fastapi import APIRouter, Query, Request

from ..workflow.permissions import required_roles
from .deps import get_container
from .responses import success_response

router = APIRouter(prefix="/approval-stages", tags=["stages"])


@router.get("")
def list_stages(
    request: Request,
    include_inactive: bool = Query(False, description="Include retired stages"),
):
    """Configured approval stages in sort order."""
    registry = get_container(request).stage_registry()
    stages = registry.list_all() if include_inactive else registry.list_active()

    data = []
    for stage in stages:
        entry = stage.to_dict()
        entry["required_roles"] = required_roles(stage)
        data.append(entry)
    return success_response(data)

# src/sow_approvals/api/deps.py
"""FastAPI dependencies resolving services from the app's container."""

from fastapi import Request

from ..core.container import Container
from ..workflow.consistency import ConsistencyChecker
from ..workflow.engine import ApprovalWorkflowEngine
from ..workflow.reporting import ApprovalReporter


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_engine(request: Request) -> ApprovalWorkflowEngine:
    return get_container(request).workflow_engine()


def get_checker(request: Request) -> ConsistencyChecker:
    return get_container(request).consistency_checker()


def get_reporter(request: Request) -> ApprovalReporter:
    return get_container(request).reporter()

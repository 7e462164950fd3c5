# src/sow_approvals/repositories/__init__.py
"""
Repository Layer - Ports and Adapters Pattern

Abstract ports describe what the workflow needs from storage; the Supabase
adapters implement them on top of PostgREST tables:

- sows                -> SOWRepository / SupabaseSOWRepository
- approval_stages     -> StageRegistry / SupabaseStageRegistry
- sow_approvals       -> ApprovalRepository / SupabaseApprovalRepository
- approval_audit_log  -> AuditLogRepository / SupabaseAuditLogRepository
"""

from .approvals import ApprovalRepository, SupabaseApprovalRepository
from .audit_log import AuditLogRepository, SupabaseAuditLogRepository
from .base import SupabaseRepository
from .sows import SOWRepository, SupabaseSOWRepository
from .stages import StageRegistry, SupabaseStageRegistry

__all__ = [
    "SupabaseRepository",
    "SOWRepository",
    "SupabaseSOWRepository",
    "StageRegistry",
    "SupabaseStageRegistry",
    "ApprovalRepository",
    "SupabaseApprovalRepository",
    "AuditLogRepository",
    "SupabaseAuditLogRepository",
]

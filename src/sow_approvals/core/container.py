# src/sow_approvals/core/container.py
"""
Dependency Injection Container

Builds every collaborator of the approval workflow from an AppConfig:
the Supabase client, the repositories, the per-SOW locks, the Slack
notifier, the consistency checker, the engine and the reporter.

Usage:
    container = Container(load_config())

    engine = container.workflow_engine()
    engine.initiate_workflow(sow_id)

Tests pass their own client:
    container = Container(config, supabase_client=MockSupabaseClient())
"""

import logging
from typing import Optional

from ..config import AppConfig
from ..infrastructure.locks import DocumentLocks
from ..infrastructure.slack_notifier import NotificationSink, NullNotifier, SlackNotifier
from ..infrastructure.supabase_client import create_supabase_client
from ..repositories import (
    SupabaseApprovalRepository,
    SupabaseAuditLogRepository,
    SupabaseSOWRepository,
    SupabaseStageRegistry,
)
from ..workflow.consistency import ConsistencyChecker
from ..workflow.engine import ApprovalWorkflowEngine
from ..workflow.reporting import ApprovalReporter

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Instances are created on first use and cached; `reset` drops them so
    the next call rebuilds from the current config.
    """

    def __init__(
        self,
        config: AppConfig,
        supabase_client=None,
        notifier: Optional[NotificationSink] = None,
    ):
        self.config = config
        self._injected_client = supabase_client
        self._injected_notifier = notifier

        # Cached instances
        self._client = supabase_client
        self._notifier = notifier
        self._locks = None
        self._checker = None
        self._engine = None
        self._reporter = None

        logger.info(
            f"Container initialized: gating={config.workflow.gating}, "
            f"slack={'on' if config.slack.is_configured else 'off'}"
        )

    # =============================================================================
    # INFRASTRUCTURE
    # =============================================================================

    def supabase_client(self):
        """Get the Supabase client, creating it from config on first use."""
        if self._client is None:
            self._client = create_supabase_client(self.config.supabase)
        return self._client

    def notifier(self) -> NotificationSink:
        """Slack notifier when a webhook is configured, otherwise a no-op."""
        if self._notifier is None:
            if self.config.slack.is_configured:
                self._notifier = SlackNotifier(self.config.slack, app_url=self.config.app_url)
            else:
                self._notifier = NullNotifier()
        return self._notifier

    def locks(self) -> DocumentLocks:
        if self._locks is None:
            self._locks = DocumentLocks(timeout=self.config.workflow.lock_timeout_seconds)
        return self._locks

    # =============================================================================
    # REPOSITORIES
    # =============================================================================

    def sow_repository(self):
        return SupabaseSOWRepository(self.supabase_client())

    def stage_registry(self):
        return SupabaseStageRegistry(self.supabase_client())

    def approval_repository(self):
        return SupabaseApprovalRepository(self.supabase_client())

    def audit_log_repository(self):
        return SupabaseAuditLogRepository(self.supabase_client())

    # =============================================================================
    # WORKFLOW
    # =============================================================================

    def consistency_checker(self) -> ConsistencyChecker:
        if self._checker is None:
            self._checker = ConsistencyChecker(
                sows=self.sow_repository(),
                approvals=self.approval_repository(),
                audit_log=self.audit_log_repository(),
                locks=self.locks(),
            )
        return self._checker

    def workflow_engine(self) -> ApprovalWorkflowEngine:
        if self._engine is None:
            self._engine = ApprovalWorkflowEngine(
                sows=self.sow_repository(),
                stages=self.stage_registry(),
                approvals=self.approval_repository(),
                audit_log=self.audit_log_repository(),
                checker=self.consistency_checker(),
                locks=self.locks(),
                notifier=self.notifier(),
                policy=self.config.workflow,
            )
        return self._engine

    def reporter(self) -> ApprovalReporter:
        if self._reporter is None:
            self._reporter = ApprovalReporter(
                sows=self.sow_repository(),
                stages=self.stage_registry(),
                approvals=self.approval_repository(),
                audit_log=self.audit_log_repository(),
                policy=self.config.workflow,
            )
        return self._reporter

    # =============================================================================
    # UTILITY
    # =============================================================================

    def reset(self):
        """Reset all cached instances (useful for testing)."""
        self._client = self._injected_client
        self._notifier = self._injected_notifier
        self._locks = None
        self._checker = None
        self._engine = None
        self._reporter = None
        logger.info("Container reset")

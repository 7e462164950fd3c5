# tests/unit/test_reporting.py
"""
Unit tests for approval reporting.

- Stats: counts, completion and the blocking stage
- Audit summary and CSV export
- Workflow validation
"""

import csv
import io

import pytest

from sow_approvals.exceptions import NotFoundError
from sow_approvals.workflow.reporting import CSV_HEADER


# =============================================================================
# STATS
# =============================================================================

class TestApprovalStats:

    def test_no_workflow(self, reporter):
        stats = reporter.get_approval_stats("sow-1")

        assert stats["workflow_status"] == "no_workflow"
        assert stats["total_stages"] == 0
        assert stats["completion_percent"] == 0

    def test_progress_and_blocking_stage(self, engine, reporter):
        engine.initiate_workflow("sow-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="u1")

        stats = reporter.get_approval_stats("sow-1")

        assert stats["total_stages"] == 3
        assert stats["approved"] == 1
        assert stats["pending"] == 2
        assert stats["rejected"] == 0
        assert stats["completion_percent"] == 33
        assert stats["workflow_status"] == "in_review"
        assert stats["blocking_stage"]["stage_id"] == "stage-b"
        assert stats["blocking_stage"]["stage_name"] == "Project Management"
        assert [s["stage_name"] for s in stats["stages"]] == [
            "Professional Services",
            "Project Management",
            "Sr. Leadership",
        ]

    def test_recall_resets_progress(self, engine, reporter):
        engine.initiate_workflow("sow-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="u1")
        engine.recall_workflow("sow-1")

        stats = reporter.get_approval_stats("sow-1")

        assert stats["completion_percent"] == 0
        assert stats["pending"] == 3
        assert stats["workflow_status"] == "recalled"
        assert stats["blocking_stage"] is None

    def test_fully_approved(self, engine, reporter):
        engine.initiate_workflow("sow-1")
        for stage_id in ("stage-a", "stage-b", "stage-c"):
            engine.record_decision("sow-1", stage_id, "approved", actor_id="u1")

        stats = reporter.get_approval_stats("sow-1")

        assert stats["completion_percent"] == 100
        assert stats["document_status"] == "approved"
        assert stats["blocking_stage"] is None

    def test_missing_sow(self, reporter):
        with pytest.raises(NotFoundError):
            reporter.get_approval_stats("nope")


# =============================================================================
# AUDIT
# =============================================================================

class TestAuditReporting:

    def test_summary_counts_actions_and_users(self, engine, reporter):
        engine.initiate_workflow("sow-1", actor_id="author-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="manager-1")
        engine.record_decision("sow-1", "stage-b", "rejected", actor_id="pmo-1", comment="Timeline risk")

        summary = reporter.get_audit_summary("sow-1")

        assert summary["total_actions"] == 4
        assert summary["actions_by_type"] == {
            "workflow_initiated": 1,
            "stage_approved": 1,
            "stage_rejected": 1,
            "workflow_completed": 1,
        }
        assert summary["actions_by_user"] == {"author-1": 1, "manager-1": 1, "pmo-1": 2}
        assert [e["action"] for e in summary["approval_timeline"]] == ["stage_approved", "stage_rejected"]

    def test_trail_filters_by_user(self, engine, reporter):
        engine.initiate_workflow("sow-1", actor_id="author-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="manager-1")

        events = reporter.get_audit_trail("sow-1", user_id="manager-1")

        assert [e["action"] for e in events] == ["stage_approved"]

    def test_csv_export(self, engine, reporter):
        engine.initiate_workflow("sow-1", actor_id="author-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="manager-1", comment="Fine, ship it")

        rows = list(csv.reader(io.StringIO(reporter.export_audit_csv("sow-1"))))

        assert rows[0] == CSV_HEADER
        assert len(rows) == 3
        decision = rows[2]
        assert decision[1] == "manager-1"
        assert decision[2] == "stage_approved"
        assert decision[3] == "Professional Services"
        assert decision[6] == "Fine, ship it"

    def test_csv_export_empty_log(self, reporter):
        rows = list(csv.reader(io.StringIO(reporter.export_audit_csv("sow-1"))))
        assert rows == [CSV_HEADER]


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidateWorkflow:

    def test_engine_driven_workflow_is_valid(self, engine, reporter):
        engine.initiate_workflow("sow-1")
        engine.record_decision("sow-1", "stage-a", "approved", actor_id="u1")

        assert reporter.validate_workflow("sow-1").is_valid

    def test_status_mismatch_is_reported(self, seeded_supabase, approval_factory, reporter, sow_factory):
        seeded_supabase.seed_data("sows", [sow_factory(status="in_review")])
        seeded_supabase.seed_data("sow_approvals", [
            approval_factory(stage_id, "approved", approver_id="u1")
            for stage_id in ("stage-a", "stage-b", "stage-c")
        ])

        result = reporter.validate_workflow("sow-1")

        assert not result.is_valid
        assert any("approvals imply approved" in e for e in result.errors)

    def test_missing_and_out_of_order_stages_are_reported(self, seeded_supabase, approval_factory, reporter, sow_factory):
        seeded_supabase.seed_data("sows", [sow_factory(status="in_review")])
        seeded_supabase.seed_data("sow_approvals", [
            approval_factory("stage-a"),
            approval_factory("stage-b", "approved", approver_id="u2"),
        ])

        errors = reporter.validate_workflow("sow-1").errors

        assert any("'Sr. Leadership' has no approval record" in e for e in errors)
        assert any("stage-b was approved before an earlier stage" in e for e in errors)

    def test_decision_without_approver_is_reported(self, seeded_supabase, approval_factory, reporter, sow_factory):
        seeded_supabase.seed_data("sows", [sow_factory(status="rejected")])
        seeded_supabase.seed_data("sow_approvals", [
            approval_factory("stage-a", "rejected"),
            approval_factory("stage-b"),
            approval_factory("stage-c"),
        ])

        errors = reporter.validate_workflow("sow-1").errors

        assert errors == ["Approval appr-sow-1-stage-a is rejected without an approver"]

# tests/unit/test_slack_notifier.py
"""Unit tests for the Slack webhook notifier."""

from unittest.mock import MagicMock

import pytest

from sow_approvals.config import SlackConfig
from sow_approvals.infrastructure.slack_notifier import NotificationSink, NullNotifier, SlackNotifier
from sow_approvals.models import (
    ApprovalDecision,
    ApprovalStage,
    DocumentStatus,
    SOWDocument,
    StageApproval,
)


@pytest.fixture
def webhook():
    client = MagicMock()
    client.send_dict.return_value = MagicMock(status_code=200, body="ok")
    return client


@pytest.fixture
def slack(webhook):
    config = SlackConfig(webhook_url="https://hooks.slack.com/services/T/B/X", channel="#sow-approvals")
    return SlackNotifier(config, app_url="https://sow.example.com/", client=webhook)


@pytest.fixture
def sow():
    return SOWDocument(id="sow-1", title="Data Platform Migration", client_name="Acme Corp")


@pytest.fixture
def stage():
    return ApprovalStage(id="stage-a", name="Professional Services", sort_order=1)


def _approval(status, comments=None):
    return StageApproval(
        id="appr-1",
        sow_id="sow-1",
        stage_id="stage-a",
        status=status,
        approver_id="manager-1",
        comments=comments,
    )


class TestSlackNotifier:

    def test_implements_sink(self, slack):
        assert isinstance(slack, NotificationSink)
        assert isinstance(NullNotifier(), NotificationSink)

    def test_decision_payload(self, slack, webhook, sow, stage):
        assert slack.notify_decision(sow, stage, _approval(ApprovalDecision.APPROVED, "LGTM")) is True

        payload = webhook.send_dict.call_args.args[0]
        assert payload["channel"] == "#sow-approvals"
        assert payload["username"] == "SOW Generator"
        assert "Professional Services approved" in payload["text"]

        rendered = str(payload["blocks"])
        assert "LGTM" in rendered
        assert "https://sow.example.com/sow/sow-1" in rendered

    def test_status_change_payload(self, slack, webhook, sow):
        slack.notify_status_change(sow, DocumentStatus.IN_REVIEW, DocumentStatus.APPROVED, "manager-1")

        payload = webhook.send_dict.call_args.args[0]
        assert payload["text"] == "SOW Data Platform Migration is now approved"
        assert "in_review → approved" in str(payload["blocks"])

    def test_channel_omitted_when_not_configured(self, webhook, sow):
        notifier = SlackNotifier(SlackConfig(webhook_url="https://hooks.slack.com/x"), client=webhook)

        notifier.notify_status_change(sow, DocumentStatus.DRAFT, DocumentStatus.IN_REVIEW)

        assert "channel" not in webhook.send_dict.call_args.args[0]

    def test_non_200_returns_false(self, slack, webhook, sow, stage):
        webhook.send_dict.return_value = MagicMock(status_code=404, body="no_service")

        assert slack.notify_decision(sow, stage, _approval(ApprovalDecision.REJECTED)) is False

    def test_transport_error_returns_false(self, slack, webhook, sow):
        webhook.send_dict.side_effect = ConnectionError("unreachable")

        assert slack.notify_status_change(sow, DocumentStatus.IN_REVIEW, DocumentStatus.REJECTED) is False


class TestNullNotifier:

    def test_does_nothing(self, sow, stage):
        notifier = NullNotifier()

        assert notifier.notify_decision(sow, stage, _approval(ApprovalDecision.APPROVED)) is False
        assert notifier.notify_status_change(sow, DocumentStatus.DRAFT, DocumentStatus.IN_REVIEW) is False

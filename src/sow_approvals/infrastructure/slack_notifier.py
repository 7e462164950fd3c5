# src/sow_approvals/infrastructure/slack_notifier.py
"""
Slack Notifier - best-effort approval notifications

Posts Block Kit messages to a Slack incoming webhook when a stage is decided
or a SOW changes status. Delivery is best-effort: failures are logged and
reported as False, never raised, so a Slack outage cannot fail an approval.

Usage:
    notifier = SlackNotifier(config.slack, app_url=config.app_url)
    notifier.notify_decision(sow, stage, approval)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from slack_sdk.webhook import WebhookClient

from ..config import SlackConfig
from ..models import ApprovalDecision, ApprovalStage, DocumentStatus, SOWDocument, StageApproval

logger = logging.getLogger(__name__)

ACTION_EMOJI = {
    ApprovalDecision.APPROVED: ":white_check_mark:",
    ApprovalDecision.REJECTED: ":x:",
}


@runtime_checkable
class NotificationSink(Protocol):
    """Receiver of workflow events. Implementations must not raise."""

    def notify_decision(
        self,
        sow: SOWDocument,
        stage: ApprovalStage,
        approval: StageApproval,
    ) -> bool:
        """Announce a stage decision."""
        ...

    def notify_status_change(
        self,
        sow: SOWDocument,
        previous_status: DocumentStatus,
        new_status: DocumentStatus,
        changed_by: Optional[str] = None,
    ) -> bool:
        """Announce a SOW status transition."""
        ...


class NullNotifier:
    """Sink used when Slack is not configured."""

    def notify_decision(self, sow, stage, approval) -> bool:
        return False

    def notify_status_change(self, sow, previous_status, new_status, changed_by=None) -> bool:
        return False


class SlackNotifier:
    """Slack incoming-webhook implementation of NotificationSink."""

    def __init__(
        self,
        config: SlackConfig,
        app_url: str = "",
        client: Optional[WebhookClient] = None,
    ):
        """
        Args:
            config: Slack webhook settings
            app_url: Base URL used for "View SOW" buttons
            client: Pre-built webhook client (tests inject a mock)
        """
        self._config = config
        self._app_url = app_url.rstrip("/")
        self._client = client or WebhookClient(
            config.webhook_url,
            timeout=config.timeout_seconds,
        )

    # -------------------------
    # Public API
    # -------------------------

    def notify_decision(
        self,
        sow: SOWDocument,
        stage: ApprovalStage,
        approval: StageApproval,
    ) -> bool:
        """Send the stage-decision message."""
        action = approval.status.value
        blocks: List[Dict[str, Any]] = [
            self._header(f"SOW {action.capitalize()}"),
            self._fields(
                ("SOW", sow.title or "Untitled"),
                ("Client", sow.client_name or "Unknown"),
            ),
            self._fields(
                ("Stage", stage.name),
                ("Approver", approval.approver_id or "Unknown"),
            ),
        ]

        if approval.comments:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Comments:*\n{approval.comments}"},
            })

        emoji = ACTION_EMOJI.get(approval.status, ":memo:")
        blocks.append(self._context(f"{emoji} SOW {action} at {self._timestamp()}"))
        blocks.append(self._view_button(sow.id))

        return self._send(blocks, text=f"SOW {sow.title or sow.id}: {stage.name} {action}")

    def notify_status_change(
        self,
        sow: SOWDocument,
        previous_status: DocumentStatus,
        new_status: DocumentStatus,
        changed_by: Optional[str] = None,
    ) -> bool:
        """Send the status-change message."""
        blocks: List[Dict[str, Any]] = [
            self._header("SOW Status Updated"),
            self._fields(
                ("SOW", sow.title or "Untitled"),
                ("Client", sow.client_name or "Unknown"),
            ),
            self._fields(
                ("Status", f"{previous_status.value} → {new_status.value}"),
                ("Changed by", changed_by or "System"),
            ),
            self._context(f":clock1: Status updated at {self._timestamp()}"),
            self._view_button(sow.id),
        ]
        return self._send(
            blocks,
            text=f"SOW {sow.title or sow.id} is now {new_status.value}",
        )

    # -------------------------
    # Block helpers
    # -------------------------

    @staticmethod
    def _header(text: str) -> Dict[str, Any]:
        return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}

    @staticmethod
    def _fields(*pairs) -> Dict[str, Any]:
        return {
            "type": "section",
            "fields": [{"type": "mrkdwn", "text": f"*{label}:*\n{value}"} for label, value in pairs],
        }

    @staticmethod
    def _context(text: str) -> Dict[str, Any]:
        return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}

    def _view_button(self, sow_id: str) -> Dict[str, Any]:
        return {
            "type": "actions",
            "elements": [{
                "type": "button",
                "text": {"type": "plain_text", "text": "View SOW", "emoji": True},
                "style": "primary",
                "url": f"{self._app_url}/sow/{sow_id}",
            }],
        }

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M")

    def _send(self, blocks: List[Dict[str, Any]], text: str) -> bool:
        payload: Dict[str, Any] = {
            "text": text,
            "blocks": blocks,
            "username": self._config.username,
            "icon_emoji": self._config.icon_emoji,
        }
        if self._config.channel:
            payload["channel"] = self._config.channel

        try:
            response = self._client.send_dict(payload)
        except Exception as e:
            logger.warning(f"Slack notification failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Slack webhook returned {response.status_code}: {response.body}")
            return False
        return True

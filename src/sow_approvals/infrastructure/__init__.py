# src/sow_approvals/infrastructure/__init__.py
"""
Infrastructure - clients for external collaborators.

- supabase_client: Supabase client factory (approval record store)
- slack_notifier: best-effort Slack webhook notifications
- locks: per-SOW in-process serialization
"""

from .locks import DocumentLocks
from .slack_notifier import NotificationSink, NullNotifier, SlackNotifier
from .supabase_client import create_supabase_client

__all__ = [
    "DocumentLocks",
    "NotificationSink",
    "NullNotifier",
    "SlackNotifier",
    "create_supabase_client",
]

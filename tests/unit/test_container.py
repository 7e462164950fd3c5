# tests/unit/test_container.py
"""Unit tests for container wiring and Supabase client creation."""

from unittest.mock import MagicMock, patch

import pytest

from sow_approvals.config import AppConfig, SlackConfig, SupabaseConfig
from sow_approvals.core.container import Container
from sow_approvals.exceptions import StoreUnavailableError
from sow_approvals.infrastructure.slack_notifier import NullNotifier, SlackNotifier
from sow_approvals.infrastructure.supabase_client import create_supabase_client


class TestContainer:

    def test_null_notifier_without_webhook(self, mock_supabase):
        container = Container(AppConfig(), supabase_client=mock_supabase)
        assert isinstance(container.notifier(), NullNotifier)

    def test_slack_notifier_with_webhook(self, mock_supabase):
        config = AppConfig(slack=SlackConfig(webhook_url="https://hooks.slack.com/services/x"))
        container = Container(config, supabase_client=mock_supabase)

        assert isinstance(container.notifier(), SlackNotifier)

    def test_services_are_cached_until_reset(self, container):
        engine = container.workflow_engine()

        assert container.workflow_engine() is engine
        assert container.consistency_checker() is container.consistency_checker()

        container.reset()
        assert container.workflow_engine() is not engine

    def test_engine_and_checker_share_locks(self, container):
        assert container.workflow_engine()._locks is container.consistency_checker()._locks

    def test_unconfigured_store_fails_on_first_use(self):
        container = Container(AppConfig())

        with pytest.raises(StoreUnavailableError):
            container.workflow_engine()


class TestCreateSupabaseClient:

    def test_missing_credentials(self):
        with pytest.raises(StoreUnavailableError):
            create_supabase_client(SupabaseConfig())

    def test_client_gets_bounded_timeout(self):
        config = SupabaseConfig(url="https://x.supabase.co", key="k", timeout_seconds=7)

        with patch("sow_approvals.infrastructure.supabase_client.create_client") as create:
            create.return_value = MagicMock()
            create_supabase_client(config)

        options = create.call_args.kwargs["options"]
        assert options.postgrest_client_timeout == 7

    def test_creation_failure_is_wrapped(self):
        config = SupabaseConfig(url="not-a-url", key="k")

        with patch(
            "sow_approvals.infrastructure.supabase_client.create_client",
            side_effect=Exception("Invalid URL"),
        ):
            with pytest.raises(StoreUnavailableError):
                create_supabase_client(config)

"""Tests for ContextSwitcher activation, handle checks and release."""

from unittest.mock import Mock

import pytest

from settings_replicator.context_switcher import ContextSwitcher
from settings_replicator.exceptions import AuthContextError, AzureOperationError


class TestActivate:
    """Tests for ContextSwitcher.activate."""

    def test_activate_sets_active_context(self, switcher, mock_authorizer, source_context):
        handle = switcher.activate(source_context)

        assert handle.context == source_context
        assert switcher.active == handle
        mock_authorizer.verify_access.assert_called_once_with(source_context)

    def test_each_activation_gets_new_sequence(self, switcher, source_context, target_context):
        first = switcher.activate(source_context)
        second = switcher.activate(target_context)
        third = switcher.activate(source_context)

        assert first.sequence < second.sequence < third.sequence

    def test_auth_failure_propagates(self, source_context):
        authorizer = Mock()
        authorizer.verify_access.side_effect = AuthContextError("denied")
        switcher = ContextSwitcher(authorizer)

        with pytest.raises(AuthContextError, match="denied"):
            switcher.activate(source_context)
        assert switcher.active is None

    def test_other_replicator_errors_become_auth_errors(self, source_context):
        authorizer = Mock()
        authorizer.verify_access.side_effect = AzureOperationError("boom")
        switcher = ContextSwitcher(authorizer)

        with pytest.raises(AuthContextError) as exc_info:
            switcher.activate(source_context)
        assert isinstance(exc_info.value.cause, AzureOperationError)

    def test_unexpected_errors_become_auth_errors(self, source_context):
        authorizer = Mock()
        authorizer.verify_access.side_effect = RuntimeError("network down")
        switcher = ContextSwitcher(authorizer)

        with pytest.raises(AuthContextError):
            switcher.activate(source_context)

    def test_failed_activation_clears_previous_context(
        self, mock_authorizer, source_context, target_context
    ):
        """After a failed switch nothing is active, not even the old context."""
        switcher = ContextSwitcher(mock_authorizer)
        handle = switcher.activate(source_context)
        mock_authorizer.verify_access.side_effect = AuthContextError("denied")

        with pytest.raises(AuthContextError):
            switcher.activate(target_context)

        assert switcher.active is None
        with pytest.raises(AuthContextError):
            switcher.ensure_active(handle)


class TestEnsureActive:
    """Tests for stale handle detection."""

    def test_current_handle_returns_context(self, switcher, source_context):
        handle = switcher.activate(source_context)

        assert switcher.ensure_active(handle) == source_context

    def test_superseded_handle_is_rejected(self, switcher, source_context, target_context):
        source_handle = switcher.activate(source_context)
        switcher.activate(target_context)

        with pytest.raises(AuthContextError, match="no longer active"):
            switcher.ensure_active(source_handle)

    def test_reactivating_same_context_supersedes_old_handle(self, switcher, source_context):
        old = switcher.activate(source_context)
        switcher.activate(source_context)

        with pytest.raises(AuthContextError):
            switcher.ensure_active(old)


class TestRelease:
    """Tests for ContextSwitcher.release."""

    def test_release_clears_without_restoring(self, switcher, source_context, target_context):
        switcher.activate(source_context)
        target_handle = switcher.activate(target_context)

        switcher.release(target_handle)

        assert switcher.active is None

    def test_stale_handle_release_is_ignored(self, switcher, source_context, target_context):
        stale = switcher.activate(source_context)
        current = switcher.activate(target_context)

        switcher.release(stale)

        assert switcher.active == current

    def test_release_without_handle(self, switcher, source_context):
        switcher.activate(source_context)

        switcher.release()

        assert switcher.active is None

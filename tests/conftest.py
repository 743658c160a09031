from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from unittest.mock import Mock

import pytest

from settings_replicator.context_switcher import ContextSwitcher
from settings_replicator.exceptions import WriteError
from settings_replicator.replication_models import (
    ConnectionStringEntry,
    ExclusionPolicy,
    ResourceRef,
)
from settings_replicator.resource_directory import ResourceDirectory, WriteMode
from settings_replicator.subscription_config import SubscriptionContext

# ============================================================================
# In-memory ResourceDirectory
# ============================================================================


class RecordingDirectory(ResourceDirectory):
    """
    ResourceDirectory backed by dictionaries.

    Every call is appended to ``calls`` as (method, resource name,
    subscription id) so tests can assert ordering and context.
    """

    def __init__(self) -> None:
        self.sites: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.fail_on: Dict[str, Exception] = {}

    def add_site(
        self,
        context: SubscriptionContext,
        ref: ResourceRef,
        settings: Optional[Dict[str, str]] = None,
        connection_strings: Optional[List[ConnectionStringEntry]] = None,
    ) -> None:
        self.sites[(context.subscription_id, ref.resource_group, ref.name)] = {
            "settings": dict(settings or {}),
            "connection_strings": {e.name: e for e in connection_strings or []},
        }

    def site(self, context: SubscriptionContext, ref: ResourceRef) -> Dict[str, Any]:
        return self.sites[(context.subscription_id, ref.resource_group, ref.name)]

    def _record(self, method: str, ref: ResourceRef, context: SubscriptionContext) -> None:
        self.calls.append((method, ref.name, context.subscription_id))
        if method in self.fail_on:
            raise self.fail_on[method]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def exists(self, ref: ResourceRef, context: SubscriptionContext) -> bool:
        self._record("exists", ref, context)
        return (context.subscription_id, ref.resource_group, ref.name) in self.sites

    def read_settings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Mapping[str, str]:
        self._record("read_settings", ref, context)
        return dict(self.site(context, ref)["settings"])

    def read_connection_strings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Sequence[ConnectionStringEntry]:
        self._record("read_connection_strings", ref, context)
        return list(self.site(context, ref)["connection_strings"].values())

    def write_settings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        settings: Mapping[str, str],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        self._record("write_settings", ref, context)
        site = self.site(context, ref)
        if mode is WriteMode.REPLACE:
            site["settings"] = dict(settings)
        else:
            site["settings"].update(settings)

    def write_connection_strings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        entries: Sequence[ConnectionStringEntry],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        self._record("write_connection_strings", ref, context)
        site = self.site(context, ref)
        if mode is WriteMode.REPLACE:
            site["connection_strings"] = {}
        for entry in entries:
            site["connection_strings"][entry.name] = entry


# ============================================================================
# Shared fixtures
# ============================================================================


@pytest.fixture
def source_context() -> SubscriptionContext:
    return SubscriptionContext(
        subscription_id="11111111-aaaa-4aaa-8aaa-111111111111",
        tenant_id="source-tenant-id",
        label="source",
    )


@pytest.fixture
def target_context() -> SubscriptionContext:
    return SubscriptionContext(
        subscription_id="22222222-bbbb-4bbb-8bbb-222222222222",
        tenant_id="target-tenant-id",
        label="target",
    )


@pytest.fixture
def source_ref() -> ResourceRef:
    return ResourceRef(name="func-prod", resource_group="rg-prod")


@pytest.fixture
def target_ref() -> ResourceRef:
    return ResourceRef(name="func-dr", resource_group="rg-dr")


@pytest.fixture
def mock_authorizer() -> Mock:
    """Authorizer that accepts every context and records activations."""
    authorizer = Mock()
    authorizer.verify_access = Mock(return_value=None)
    return authorizer


@pytest.fixture
def switcher(mock_authorizer) -> ContextSwitcher:
    return ContextSwitcher(mock_authorizer)


@pytest.fixture
def directory() -> RecordingDirectory:
    return RecordingDirectory()


@pytest.fixture
def storage_policy() -> ExclusionPolicy:
    return ExclusionPolicy(excluded_setting_keys=frozenset({"AzureWebJobsStorage"}))


@pytest.fixture
def write_failure() -> WriteError:
    return WriteError("simulated write failure")

"""Replicate App Service and Function App configuration across subscriptions."""

from .context_switcher import ActiveContext, ContextSwitcher
from .exceptions import (
    ApplyError,
    AuthContextError,
    InvalidInputError,
    InvalidPolicyError,
    ResourceNotFoundError,
    SettingsReplicatorError,
    SourceReadError,
    WriteError,
)
from .policy_engine import (
    DEFAULT_EXCLUDED_SETTING_KEYS,
    build_policy,
    filter_connection_strings,
    filter_settings,
)
from .replication_models import (
    AppSetting,
    ConfigSnapshot,
    ConnectionStringEntry,
    ExclusionPolicy,
    ReplicationOutcome,
    ReplicationReport,
    ReplicationState,
    ResourceRef,
)
from .replication_orchestrator import ReplicationOrchestrator
from .resource_directory import ResourceDirectory, WriteMode
from .subscription_config import ServicePrincipalCredentials, SubscriptionContext

__version__ = "0.1.0"

__all__ = [
    "ActiveContext",
    "AppSetting",
    "ApplyError",
    "AuthContextError",
    "ConfigSnapshot",
    "ConnectionStringEntry",
    "ContextSwitcher",
    "DEFAULT_EXCLUDED_SETTING_KEYS",
    "ExclusionPolicy",
    "InvalidInputError",
    "InvalidPolicyError",
    "ReplicationOrchestrator",
    "ReplicationOutcome",
    "ReplicationReport",
    "ReplicationState",
    "ResourceDirectory",
    "ResourceNotFoundError",
    "ResourceRef",
    "ServicePrincipalCredentials",
    "SettingsReplicatorError",
    "SourceReadError",
    "SubscriptionContext",
    "WriteError",
    "WriteMode",
    "build_policy",
    "filter_connection_strings",
    "filter_settings",
]

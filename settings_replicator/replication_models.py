"""
Data model for settings replication.

Snapshots are immutable once built: their mappings are read-only views in
the order the source returned them. Reports are produced once per run.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .exceptions import InvalidInputError, SettingsReplicatorError, SourceReadError
from .subscription_config import SubscriptionContext


@dataclass(frozen=True)
class ResourceRef:
    """A site addressed by name within a resource group."""

    name: str
    resource_group: str

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidInputError("Resource name is required", field="name")
        if not self.resource_group or not self.resource_group.strip():
            raise InvalidInputError(
                "Resource group is required", field="resource_group"
            )

    def __str__(self) -> str:
        return f"{self.resource_group}/{self.name}"


@dataclass(frozen=True)
class AppSetting:
    key: str
    value: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.key:
            raise SourceReadError("Application setting key must not be empty")


@dataclass(frozen=True)
class ConnectionStringEntry:
    """
    A named, typed connection string.

    ``type`` is kept exactly as the platform reports it (SQLAzure, Custom,
    ...) and is never interpreted.
    """

    name: str
    type: str
    value: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise SourceReadError("Connection string name must not be empty")


@dataclass(frozen=True)
class ConfigSnapshot:
    """Read-time capture of a site's settings and connection strings."""

    settings: Mapping[str, AppSetting]
    connection_strings: Mapping[str, ConnectionStringEntry]
    source_context: SubscriptionContext

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))
        object.__setattr__(
            self, "connection_strings", MappingProxyType(dict(self.connection_strings))
        )

    @classmethod
    def from_reads(
        cls,
        settings: Mapping[str, str],
        connection_strings: Iterable[ConnectionStringEntry],
        source_context: SubscriptionContext,
    ) -> "ConfigSnapshot":
        """
        Build a snapshot from raw directory reads.

        Raises:
            SourceReadError: On an empty key, a key repeated ignoring case, or
                a repeated connection string name
        """
        seen_keys: Dict[str, str] = {}
        built_settings: Dict[str, AppSetting] = {}
        for key, value in settings.items():
            folded = key.casefold()
            if folded in seen_keys:
                raise SourceReadError(
                    f"Application setting '{key}' duplicates '{seen_keys[folded]}' ignoring case",
                    context={"key": key},
                )
            seen_keys[folded] = key
            built_settings[key] = AppSetting(key=key, value=value)

        built_conn: Dict[str, ConnectionStringEntry] = {}
        for entry in connection_strings:
            if entry.name in built_conn:
                raise SourceReadError(
                    f"Connection string '{entry.name}' appears more than once",
                    context={"name": entry.name},
                )
            built_conn[entry.name] = entry

        return cls(
            settings=built_settings,
            connection_strings=built_conn,
            source_context=source_context,
        )


@dataclass(frozen=True)
class ExclusionPolicy:
    """Keys and names that must never be copied to the target."""

    excluded_setting_keys: FrozenSet[str] = frozenset()
    excluded_connection_string_names: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        # Bare strings are left for validate_policy to reject.
        for name in ("excluded_setting_keys", "excluded_connection_string_names"):
            value = getattr(self, name)
            if not isinstance(value, (str, frozenset)):
                object.__setattr__(self, name, frozenset(value))


class ReplicationState(Enum):
    INIT = "init"
    VALIDATING_SOURCE = "validating_source"
    VALIDATING_TARGET = "validating_target"
    READING_SOURCE = "reading_source"
    FILTERING = "filtering"
    APPLYING = "applying"
    REPORTED = "reported"


class ReplicationOutcome(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ReplicationReport:
    """
    Terminal result of one replication run.

    Attributes:
        included_setting_keys: Settings selected for the target, source order
        excluded_setting_keys: Settings dropped by policy, source order
        included_connection_string_names: Connection strings selected for the target
        excluded_connection_string_names: Connection strings dropped by policy
        outcome: SUCCESS or FAILED
        failure_reason: Human-readable reason when FAILED
        failed_state: State the run failed in
        error: The fatal error, when FAILED
        settings_applied: Whether the settings write completed
        connection_strings_applied: Whether the connection string write completed
        dry_run: Whether applying was skipped on request
    """

    included_setting_keys: Tuple[str, ...] = ()
    excluded_setting_keys: Tuple[str, ...] = ()
    included_connection_string_names: Tuple[str, ...] = ()
    excluded_connection_string_names: Tuple[str, ...] = ()
    outcome: ReplicationOutcome = ReplicationOutcome.SUCCESS
    failure_reason: Optional[str] = None
    failed_state: Optional[ReplicationState] = None
    error: Optional[SettingsReplicatorError] = field(default=None, compare=False)
    settings_applied: bool = False
    connection_strings_applied: bool = False
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.outcome is ReplicationOutcome.SUCCESS

    @property
    def partially_applied(self) -> bool:
        """True when a failed run left some writes on the target."""
        return not self.succeeded and (
            self.settings_applied or self.connection_strings_applied
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for logging/serialization."""
        return {
            "outcome": self.outcome.value,
            "failure_reason": self.failure_reason,
            "failed_state": self.failed_state.value if self.failed_state else None,
            "error": self.error.to_dict() if self.error else None,
            "included_setting_keys": list(self.included_setting_keys),
            "excluded_setting_keys": list(self.excluded_setting_keys),
            "included_connection_string_names": list(
                self.included_connection_string_names
            ),
            "excluded_connection_string_names": list(
                self.excluded_connection_string_names
            ),
            "settings_applied": self.settings_applied,
            "connection_strings_applied": self.connection_strings_applied,
            "dry_run": self.dry_run,
        }

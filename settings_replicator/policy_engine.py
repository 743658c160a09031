"""
Exclusion policy evaluation.

Policies only drop entries. Matching is exact and case-sensitive: a policy
listing ``AzureWebJobsStorage`` keeps a source key ``azurewebjobsstorage``.
Values and connection string types are copied verbatim.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Generic, Iterable, Mapping, Tuple, TypeVar

from .exceptions import InvalidPolicyError
from .replication_models import AppSetting, ConnectionStringEntry, ExclusionPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Environment-bound Function App settings. Each target has its own storage
# account, content share and telemetry resource.
DEFAULT_EXCLUDED_SETTING_KEYS: FrozenSet[str] = frozenset(
    {
        "AzureWebJobsStorage",
        "WEBSITE_CONTENTAZUREFILECONNECTIONSTRING",
        "WEBSITE_CONTENTSHARE",
        "APPINSIGHTS_INSTRUMENTATIONKEY",
        "APPLICATIONINSIGHTS_CONNECTION_STRING",
    }
)


@dataclass(frozen=True)
class FilterResult(Generic[T]):
    """Entries that passed the policy and the keys it dropped, in source order."""

    included: Mapping[str, T]
    excluded: Tuple[str, ...]

    @property
    def included_keys(self) -> Tuple[str, ...]:
        return tuple(self.included)


def _validate_entries(entries: object, label: str) -> None:
    if isinstance(entries, str) or not isinstance(entries, (set, frozenset)):
        raise InvalidPolicyError(
            f"{label} must be a set of strings, got {type(entries).__name__}",
            entry=entries,
        )
    for entry in entries:
        if not isinstance(entry, str):
            raise InvalidPolicyError(f"{label} entries must be strings", entry=entry)
        if not entry:
            raise InvalidPolicyError(f"{label} entries must not be empty", entry=entry)
        if entry != entry.strip():
            raise InvalidPolicyError(
                f"{label} entry has surrounding whitespace and could never match",
                entry=entry,
            )


def validate_policy(policy: ExclusionPolicy) -> None:
    """
    Check that a policy is well formed.

    Raises:
        InvalidPolicyError: If either exclusion list is not a set of non-empty,
            trimmed strings
    """
    if not isinstance(policy, ExclusionPolicy):
        raise InvalidPolicyError(
            f"Expected ExclusionPolicy, got {type(policy).__name__}", entry=policy
        )
    _validate_entries(policy.excluded_setting_keys, "excluded_setting_keys")
    _validate_entries(
        policy.excluded_connection_string_names, "excluded_connection_string_names"
    )


def _partition(
    entries: Mapping[str, T], excluded_keys: FrozenSet[str]
) -> FilterResult[T]:
    included: Dict[str, T] = {}
    excluded = []
    for key, entry in entries.items():
        if key in excluded_keys:
            excluded.append(key)
        else:
            included[key] = entry
    return FilterResult(included=included, excluded=tuple(excluded))


def filter_settings(
    settings: Mapping[str, AppSetting], policy: ExclusionPolicy
) -> FilterResult[AppSetting]:
    """
    Split settings into those to copy and the keys the policy drops.

    Args:
        settings: Snapshot settings keyed by setting key
        policy: Exclusion policy

    Returns:
        FilterResult whose included keys and excluded keys partition the input

    Raises:
        InvalidPolicyError: If the policy is malformed
    """
    validate_policy(policy)
    result = _partition(settings, policy.excluded_setting_keys)
    logger.debug(
        f"Settings filter: {len(result.included)} included, {len(result.excluded)} excluded"
    )
    return result


def filter_connection_strings(
    connection_strings: Mapping[str, ConnectionStringEntry], policy: ExclusionPolicy
) -> FilterResult[ConnectionStringEntry]:
    """Same as filter_settings, keyed by connection string name."""
    validate_policy(policy)
    result = _partition(connection_strings, policy.excluded_connection_string_names)
    logger.debug(
        f"Connection string filter: {len(result.included)} included, "
        f"{len(result.excluded)} excluded"
    )
    return result


def build_policy(
    extra_setting_keys: Iterable[str] = (),
    excluded_connection_string_names: Iterable[str] = (),
) -> ExclusionPolicy:
    """
    Default exclusions widened with operator-supplied keys and names.

    Additions can only add exclusions; the defaults always apply.
    """
    return ExclusionPolicy(
        excluded_setting_keys=DEFAULT_EXCLUDED_SETTING_KEYS | frozenset(extra_setting_keys),
        excluded_connection_string_names=frozenset(excluded_connection_string_names),
    )

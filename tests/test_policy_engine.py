"""
Tests for the exclusion policy engine.

Covers partitioning, exact case-sensitive matching, ordering, verbatim
pass-through and policy validation.
"""

import pytest

from settings_replicator.exceptions import InvalidPolicyError
from settings_replicator.policy_engine import (
    DEFAULT_EXCLUDED_SETTING_KEYS,
    build_policy,
    filter_connection_strings,
    filter_settings,
    validate_policy,
)
from settings_replicator.replication_models import (
    AppSetting,
    ConnectionStringEntry,
    ExclusionPolicy,
)


def _settings(**pairs):
    return {key: AppSetting(key=key, value=value) for key, value in pairs.items()}


class TestFilterSettings:
    """Tests for filter_settings."""

    def test_excludes_listed_key(self, storage_policy):
        """The documented scenario: storage key dropped, the rest kept."""
        settings = _settings(A="1", AzureWebJobsStorage="x")

        result = filter_settings(settings, storage_policy)

        assert {k: s.value for k, s in result.included.items()} == {"A": "1"}
        assert result.excluded == ("AzureWebJobsStorage",)

    def test_result_is_a_partition(self):
        """Included and excluded keys together are exactly the input keys, disjoint."""
        settings = _settings(A="1", B="2", C="3", D="4", E="5")
        policy = ExclusionPolicy(excluded_setting_keys=frozenset({"B", "D", "Z"}))

        result = filter_settings(settings, policy)

        included = set(result.included)
        excluded = set(result.excluded)
        assert included | excluded == set(settings)
        assert included & excluded == set()

    def test_matching_is_case_sensitive(self, storage_policy):
        """A differently cased key is not excluded."""
        settings = _settings(azurewebjobsstorage="x", AZUREWEBJOBSSTORAGE="y")

        result = filter_settings(settings, storage_policy)

        assert list(result.included) == ["azurewebjobsstorage", "AZUREWEBJOBSSTORAGE"]
        assert result.excluded == ()

    def test_matching_is_exact_not_prefix(self, storage_policy):
        """Keys that merely contain an excluded key are kept."""
        settings = _settings(AzureWebJobsStorage__accountName="acct")

        result = filter_settings(settings, storage_policy)

        assert "AzureWebJobsStorage__accountName" in result.included

    def test_preserves_source_order(self):
        """Both lists follow source insertion order, not sorted order."""
        settings = _settings(zeta="1", alpha="2", mid="3", beta="4")
        policy = ExclusionPolicy(excluded_setting_keys=frozenset({"mid", "zeta"}))

        result = filter_settings(settings, policy)

        assert result.included_keys == ("alpha", "beta")
        assert result.excluded == ("zeta", "mid")

    def test_values_pass_through_verbatim(self):
        """Included values are never rewritten."""
        value = "DefaultEndpointsProtocol=https;AccountName=prod;AccountKey=abc=="
        settings = _settings(CustomStorage=value)

        result = filter_settings(settings, ExclusionPolicy())

        assert result.included["CustomStorage"].value == value

    def test_empty_snapshot(self, storage_policy):
        """An empty snapshot gives empty results."""
        result = filter_settings({}, storage_policy)

        assert dict(result.included) == {}
        assert result.excluded == ()


class TestFilterConnectionStrings:
    """Tests for filter_connection_strings."""

    def test_excludes_by_name_and_keeps_type(self):
        """Excluded by exact name; survivors keep their type tag."""
        entries = {
            "Primary": ConnectionStringEntry(name="Primary", type="SQLAzure", value="Server=a"),
            "Cache": ConnectionStringEntry(name="Cache", type="RedisCache", value="redis"),
        }
        policy = ExclusionPolicy(excluded_connection_string_names=frozenset({"Cache"}))

        result = filter_connection_strings(entries, policy)

        assert list(result.included) == ["Primary"]
        assert result.included["Primary"].type == "SQLAzure"
        assert result.excluded == ("Cache",)

    def test_default_policy_copies_all(self):
        """No connection strings are excluded by default."""
        entries = {
            "Primary": ConnectionStringEntry(name="Primary", type="Custom", value="v"),
        }

        result = filter_connection_strings(entries, build_policy())

        assert list(result.included) == ["Primary"]

    def test_unknown_type_passes_through(self):
        """Type tags are opaque, even unknown ones."""
        entries = {
            "Odd": ConnectionStringEntry(name="Odd", type="SomeFutureType", value="v"),
        }

        result = filter_connection_strings(entries, ExclusionPolicy())

        assert result.included["Odd"].type == "SomeFutureType"


class TestValidatePolicy:
    """Tests for policy validation."""

    def test_valid_policy(self):
        validate_policy(build_policy(["Extra"], ["Conn"]))

    def test_rejects_bare_string(self):
        """A single string is not a set of keys."""
        policy = ExclusionPolicy(excluded_setting_keys="AzureWebJobsStorage")  # type: ignore[arg-type]

        with pytest.raises(InvalidPolicyError):
            filter_settings({}, policy)

    def test_rejects_empty_entry(self):
        policy = ExclusionPolicy(excluded_setting_keys=frozenset({""}))

        with pytest.raises(InvalidPolicyError, match="must not be empty"):
            validate_policy(policy)

    def test_rejects_non_string_entry(self):
        policy = ExclusionPolicy(excluded_connection_string_names=frozenset({42}))  # type: ignore[arg-type]

        with pytest.raises(InvalidPolicyError, match="must be strings"):
            filter_connection_strings({}, policy)

    def test_rejects_whitespace_padded_entry(self):
        policy = ExclusionPolicy(excluded_setting_keys=frozenset({" AzureWebJobsStorage"}))

        with pytest.raises(InvalidPolicyError, match="whitespace"):
            validate_policy(policy)

    def test_rejects_non_policy(self):
        with pytest.raises(InvalidPolicyError):
            validate_policy({"excluded_setting_keys": set()})  # type: ignore[arg-type]


class TestBuildPolicy:
    """Tests for build_policy."""

    def test_defaults_always_present(self):
        policy = build_policy()

        assert DEFAULT_EXCLUDED_SETTING_KEYS <= policy.excluded_setting_keys
        assert "AzureWebJobsStorage" in policy.excluded_setting_keys
        assert policy.excluded_connection_string_names == frozenset()

    def test_extra_keys_widen_exclusion(self):
        policy = build_policy(extra_setting_keys=["MY_ENDPOINT"], excluded_connection_string_names=["Legacy"])

        assert "MY_ENDPOINT" in policy.excluded_setting_keys
        assert DEFAULT_EXCLUDED_SETTING_KEYS <= policy.excluded_setting_keys
        assert policy.excluded_connection_string_names == frozenset({"Legacy"})

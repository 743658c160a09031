"""
Replication orchestrator.

Runs one forward copy of application settings and connection strings from a
source site to a target site as a strictly sequential state machine:

    INIT -> VALIDATING_SOURCE -> VALIDATING_TARGET -> READING_SOURCE
         -> FILTERING -> APPLYING -> REPORTED

Each state is attempted at most once. The target is validated before any
source value is read. Any error ends the run; nothing is retried or rolled
back, and writes that completed before a failing write stay on the target.
"""

import logging
from typing import List, Optional, Tuple

import structlog

from .context_switcher import ContextSwitcher
from .exceptions import (
    ApplyError,
    InvalidInputError,
    ResourceNotFoundError,
    SettingsReplicatorError,
    SourceReadError,
    WriteError,
    wrap_azure_exception,
)
from .policy_engine import FilterResult, filter_connection_strings, filter_settings
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
from .resource_directory import ResourceDirectory, WriteMode
from .subscription_config import SubscriptionContext

logger = logging.getLogger(__name__)
report_logger = structlog.get_logger("settings_replicator.report")


class ReplicationOrchestrator:
    """
    One replication run. Create a new orchestrator for every run.

    Attributes:
        state: Current state of the run
        transitions: Every state entered, in order
    """

    def __init__(
        self,
        directory: ResourceDirectory,
        switcher: ContextSwitcher,
        source: ResourceRef,
        target: ResourceRef,
        source_context: SubscriptionContext,
        target_context: SubscriptionContext,
        policy: ExclusionPolicy,
        settings_mode: WriteMode = WriteMode.MERGE,
        connection_strings_mode: WriteMode = WriteMode.MERGE,
        dry_run: bool = False,
    ) -> None:
        """
        Raises:
            InvalidInputError: If a resource reference or context is missing.
                No remote call is made.
        """
        for name, ref in (("source", source), ("target", target)):
            if not isinstance(ref, ResourceRef):
                raise InvalidInputError(f"A {name} resource reference is required", field=name)
        for name, ctx in (("source_context", source_context), ("target_context", target_context)):
            if not isinstance(ctx, SubscriptionContext):
                raise InvalidInputError(f"A {name} is required", field=name)
        if policy is None:
            raise InvalidInputError("An exclusion policy is required", field="policy")

        self.directory = directory
        self.switcher = switcher
        self.source = source
        self.target = target
        self.source_context = source_context
        self.target_context = target_context
        self.policy = policy
        self.settings_mode = settings_mode
        self.connection_strings_mode = connection_strings_mode
        self.dry_run = dry_run

        self.state = ReplicationState.INIT
        self.transitions: List[ReplicationState] = [ReplicationState.INIT]
        self._started = False

        self._settings_result: Optional[FilterResult[AppSetting]] = None
        self._conn_result: Optional[FilterResult[ConnectionStringEntry]] = None
        self._settings_applied = False
        self._connection_strings_applied = False

    def _enter(self, state: ReplicationState) -> None:
        self.state = state
        self.transitions.append(state)
        logger.debug(f"Replication state -> {state.value}")

    def run(self) -> ReplicationReport:
        """
        Execute the run and return its report.

        Fatal errors are captured in the report rather than raised.

        Raises:
            RuntimeError: If this orchestrator has already run
        """
        if self._started:
            raise RuntimeError("ReplicationOrchestrator instances run only once")
        self._started = True

        logger.info(
            f"Replicating configuration from {self.source} "
            f"(subscription {self.source_context.masked_id()}) to {self.target} "
            f"(subscription {self.target_context.masked_id()})"
        )
        failed_state = None
        error: Optional[SettingsReplicatorError] = None
        try:
            self._enter(ReplicationState.VALIDATING_SOURCE)
            self._validate(self.source, self.source_context)

            self._enter(ReplicationState.VALIDATING_TARGET)
            self._validate(self.target, self.target_context)

            self._enter(ReplicationState.READING_SOURCE)
            snapshot = self._read_source()

            self._enter(ReplicationState.FILTERING)
            self._settings_result, self._conn_result = self._filter(snapshot)

            if self.dry_run:
                logger.info("Dry run: skipping writes to the target")
            else:
                self._enter(ReplicationState.APPLYING)
                self._apply(self._settings_result, self._conn_result)
        except SettingsReplicatorError as e:
            failed_state = self.state
            error = e
            logger.error(f"Replication failed during {failed_state.value}: {e}")
        finally:
            self.switcher.release()

        self._enter(ReplicationState.REPORTED)
        report = self._build_report(failed_state, error)
        report_logger.info("replication_report", **report.to_dict())
        return report

    def _validate(self, ref: ResourceRef, context: SubscriptionContext) -> None:
        handle = self.switcher.activate(context)
        try:
            found = self.directory.exists(ref, self.switcher.ensure_active(handle))
        except SettingsReplicatorError:
            raise
        except Exception as e:
            raise wrap_azure_exception(e, context={"resource": str(ref)}) from e
        if not found:
            raise ResourceNotFoundError(
                f"{context.label.capitalize() or 'Resource'} site {ref} does not exist "
                f"in subscription {context.masked_id()}",
                resource_name=ref.name,
                resource_group=ref.resource_group,
            )
        logger.info(f"Found {context.label or 'resource'} site {ref}")

    def _read_source(self) -> ConfigSnapshot:
        handle = self.switcher.activate(self.source_context)
        try:
            context = self.switcher.ensure_active(handle)
            settings = self.directory.read_settings(self.source, context)
            connection_strings = self.directory.read_connection_strings(
                self.source, context
            )
            snapshot = ConfigSnapshot.from_reads(
                settings, connection_strings, source_context=context
            )
        except SourceReadError:
            raise
        except Exception as e:
            cause = e if isinstance(e, SettingsReplicatorError) else wrap_azure_exception(e)
            raise SourceReadError(
                f"Failed to read configuration from source site {self.source}",
                context={"resource": str(self.source)},
                cause=cause,
            ) from e
        logger.info(
            f"Read {len(snapshot.settings)} application settings and "
            f"{len(snapshot.connection_strings)} connection strings from {self.source}"
        )
        return snapshot

    def _filter(
        self, snapshot: ConfigSnapshot
    ) -> Tuple[FilterResult[AppSetting], FilterResult[ConnectionStringEntry]]:
        settings_result = filter_settings(snapshot.settings, self.policy)
        conn_result = filter_connection_strings(snapshot.connection_strings, self.policy)
        if settings_result.excluded:
            logger.info(
                f"Excluded settings: {', '.join(settings_result.excluded)}"
            )
        if conn_result.excluded:
            logger.info(
                f"Excluded connection strings: {', '.join(conn_result.excluded)}"
            )
        return settings_result, conn_result

    def _apply(
        self,
        settings_result: FilterResult[AppSetting],
        conn_result: FilterResult[ConnectionStringEntry],
    ) -> None:
        handle = self.switcher.activate(self.target_context)

        payload = {key: s.value for key, s in settings_result.included.items()}
        if not payload and self.settings_mode is WriteMode.MERGE:
            # Merging nothing leaves the target unchanged.
            logger.info("No application settings left after filtering; nothing to merge")
        else:
            try:
                self.directory.write_settings(
                    self.target,
                    self.switcher.ensure_active(handle),
                    payload,
                    mode=self.settings_mode,
                )
            except Exception as e:
                raise self._apply_error("settings", e) from e
            self._settings_applied = True

        if not conn_result.included:
            logger.info("No connection strings to copy; skipping connection string write")
            return

        try:
            self.directory.write_connection_strings(
                self.target,
                self.switcher.ensure_active(handle),
                list(conn_result.included.values()),
                mode=self.connection_strings_mode,
            )
        except Exception as e:
            raise self._apply_error("connection_strings", e) from e
        self._connection_strings_applied = True

    def _apply_error(self, sub_step: str, exc: Exception) -> ApplyError:
        if sub_step == "settings":
            message = f"Application settings write to {self.target} failed"
        elif self._settings_applied:
            message = (
                f"Connection string write to {self.target} failed; "
                "application settings were already applied and remain on the target"
            )
        else:
            message = f"Connection string write to {self.target} failed"
        if isinstance(exc, SettingsReplicatorError):
            cause: Exception = exc
        else:
            cause = WriteError(str(exc), facet=sub_step, cause=exc)
        return ApplyError(message, sub_step=sub_step, cause=cause)

    def _build_report(
        self,
        failed_state: Optional[ReplicationState],
        error: Optional[SettingsReplicatorError],
    ) -> ReplicationReport:
        settings_result = self._settings_result
        conn_result = self._conn_result
        return ReplicationReport(
            included_setting_keys=settings_result.included_keys if settings_result else (),
            excluded_setting_keys=settings_result.excluded if settings_result else (),
            included_connection_string_names=conn_result.included_keys if conn_result else (),
            excluded_connection_string_names=conn_result.excluded if conn_result else (),
            outcome=ReplicationOutcome.FAILED if error else ReplicationOutcome.SUCCESS,
            failure_reason=f"{type(error).__name__}: {error.message}" if error else None,
            failed_state=failed_state,
            error=error,
            settings_applied=self._settings_applied,
            connection_strings_applied=self._connection_strings_applied,
            dry_run=self.dry_run,
        )

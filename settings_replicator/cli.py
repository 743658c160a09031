"""
Command-line interface for the settings replicator.

Example:
    settings-replicator replicate \\
        --source-app func-prod --source-resource-group rg-prod --source-subscription <sub-a> \\
        --target-app func-dr --target-resource-group rg-dr --target-subscription <sub-b>
"""

import logging
import sys
from typing import Optional, Tuple

import click

from .azure_web_directory import AzureWebAppDirectory
from .config_manager import create_config_from_env, setup_logging
from .context_switcher import ContextSwitcher
from .credential_provider import SubscriptionCredentialProvider
from .exceptions import SettingsReplicatorError
from .logging_config import configure_structlog
from .replication_models import ResourceRef
from .replication_orchestrator import ReplicationOrchestrator
from .report_renderer import render_report
from .resource_directory import WriteMode
from .subscription_config import create_subscription_context_from_env

logger = logging.getLogger(__name__)

WRITE_MODES = click.Choice([m.value for m in WriteMode], case_sensitive=False)


def exit_with_error(message: str, code: int = 1) -> None:
    """Exit with error message."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Copy Function App / App Service settings between subscriptions."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@cli.command()
@click.option("--source-app", required=True, help="Source site name")
@click.option("--source-resource-group", required=True, help="Source resource group")
@click.option("--source-subscription", required=True, help="Source subscription ID")
@click.option("--target-app", required=True, help="Target site name")
@click.option("--target-resource-group", required=True, help="Target resource group")
@click.option("--target-subscription", required=True, help="Target subscription ID")
@click.option("--source-tenant", default=None, help="Source tenant ID (optional)")
@click.option("--target-tenant", default=None, help="Target tenant ID (optional)")
@click.option(
    "--exclude-setting",
    "exclude_settings",
    multiple=True,
    help="Extra application setting key to exclude (exact, case-sensitive). Repeatable",
)
@click.option(
    "--exclude-connection-string",
    "exclude_connection_strings",
    multiple=True,
    help="Connection string name to exclude (exact, case-sensitive). Repeatable",
)
@click.option(
    "--settings-mode",
    type=WRITE_MODES,
    default=None,
    help="How settings are written: merge keeps target-only keys, replace removes them",
)
@click.option(
    "--connection-strings-mode",
    type=WRITE_MODES,
    default=None,
    help="How connection strings are written (merge or replace)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Validate, read and filter without writing to the target",
)
@click.pass_context
def replicate(
    ctx: click.Context,
    source_app: str,
    source_resource_group: str,
    source_subscription: str,
    target_app: str,
    target_resource_group: str,
    target_subscription: str,
    source_tenant: Optional[str],
    target_tenant: Optional[str],
    exclude_settings: Tuple[str, ...],
    exclude_connection_strings: Tuple[str, ...],
    settings_mode: Optional[str],
    connection_strings_mode: Optional[str],
    dry_run: bool,
) -> None:
    """
    Replicate application settings and connection strings to another site.

    Environment-bound settings (storage, content share, Application Insights)
    are never copied. Exits 0 when the run succeeds, 1 otherwise.
    """
    log_level = (ctx.obj or {}).get("log_level")
    try:
        config = create_config_from_env(log_level)
        setup_logging(config.logging)
        configure_structlog(json_output=config.logging.json_report)
        config.log_configuration_summary()

        source = ResourceRef(name=source_app.strip(), resource_group=source_resource_group.strip())
        target = ResourceRef(name=target_app.strip(), resource_group=target_resource_group.strip())
        source_context = create_subscription_context_from_env(
            "source", source_subscription.strip(), source_tenant
        )
        target_context = create_subscription_context_from_env(
            "target", target_subscription.strip(), target_tenant
        )
    except SettingsReplicatorError as e:
        exit_with_error(str(e))
        return

    policy = config.exclusion_policy(
        extra_setting_keys=exclude_settings,
        extra_connection_string_names=exclude_connection_strings,
    )

    credential_provider = SubscriptionCredentialProvider()
    orchestrator = ReplicationOrchestrator(
        directory=AzureWebAppDirectory(credential_provider),
        switcher=ContextSwitcher(credential_provider),
        source=source,
        target=target,
        source_context=source_context,
        target_context=target_context,
        policy=policy,
        settings_mode=WriteMode(settings_mode.lower()) if settings_mode else config.settings_mode,
        connection_strings_mode=(
            WriteMode(connection_strings_mode.lower())
            if connection_strings_mode
            else config.connection_strings_mode
        ),
        dry_run=dry_run,
    )

    click.echo(f"Replicating settings from {source} to {target}...")
    report = orchestrator.run()
    render_report(report, target)

    if report.succeeded:
        click.echo("Replication completed successfully.")
        sys.exit(0)
    exit_with_error(report.failure_reason or "Replication failed")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()

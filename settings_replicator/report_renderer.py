"""Console rendering of a replication report and the post-run checklist."""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .replication_models import ReplicationReport, ResourceRef


def post_run_checklist(report: ReplicationReport, target: ResourceRef) -> List[str]:
    """Manual follow-up steps for the operator."""
    steps = [
        f"Grant the managed identity of {target} the role assignments and Key Vault "
        "access policies the source identity had; identities are not copied.",
        f"Set environment-specific values on {target} for the excluded keys "
        "(storage account, content share, Application Insights).",
    ]
    if report.excluded_connection_string_names:
        steps.append(
            "Provide target values for the excluded connection strings: "
            f"{', '.join(report.excluded_connection_string_names)}."
        )
    if report.partially_applied:
        steps.append(
            f"The run stopped part way through applying. Verify the configuration of "
            f"{target} manually; nothing was rolled back."
        )
    if report.dry_run:
        steps.append("This was a dry run. Re-run without --dry-run to write the settings.")
    return steps


def render_report(
    report: ReplicationReport,
    target: ResourceRef,
    console: Optional[Console] = None,
) -> None:
    """Print the report summary table followed by the checklist."""
    console = console or Console()

    table = Table(title="Replication Results", show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Outcome", report.outcome.value.upper())
    if report.failure_reason:
        table.add_row("Failure", escape(report.failure_reason))
    if report.failed_state:
        table.add_row("Failed during", report.failed_state.value)
    table.add_row("Settings copied", escape(", ".join(report.included_setting_keys)) or "-")
    table.add_row("Settings excluded", escape(", ".join(report.excluded_setting_keys)) or "-")
    table.add_row(
        "Connection strings copied",
        escape(", ".join(report.included_connection_string_names)) or "-",
    )
    table.add_row(
        "Connection strings excluded",
        escape(", ".join(report.excluded_connection_string_names)) or "-",
    )
    table.add_row("Settings applied", "yes" if report.settings_applied else "no")
    table.add_row(
        "Connection strings applied",
        "yes" if report.connection_strings_applied else "no",
    )
    console.print(table)

    if report.error is not None and report.error.recovery_suggestion:
        console.print(f"[yellow]Suggestion: {escape(report.error.recovery_suggestion)}[/yellow]")

    steps = "\n".join(
        f"{i}. {step}" for i, step in enumerate(post_run_checklist(report, target), 1)
    )
    console.print(Panel(escape(steps), title="Next steps", border_style="blue"))

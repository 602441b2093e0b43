"""Shared command helpers and utilities."""

from typing import List

from rich import print as rprint

from vault_recovery.shared.exceptions import (
    ConfigurationException,
    InputFileException,
    LogFetchException,
    NonRetryableException,
    RpcException,
)
from vault_recovery.shared.results import DistributionSummary
from vault_recovery.utils.formatters import console, create_table


def handle_command_error(error: Exception) -> int:
    """
    Standard error reporting for fatal command failures.

    Returns:
        The process exit code (always 1)
    """
    if isinstance(error, ConfigurationException):
        rprint(f"[red]Configuration error:[/red] {error.message}")
    elif isinstance(error, InputFileException):
        rprint(f"[red]Input error:[/red] {error.message}")
    elif isinstance(error, LogFetchException):
        rprint(f"[red]Log fetch failed:[/red] {error.message}")
        if error.resume_block is not None:
            rprint(
                f"Resume with --checkpoint to continue from block {error.resume_block}"
            )
    elif isinstance(error, RpcException):
        rprint(f"[red]RPC error:[/red] {error.message}")
        rprint("Check RECOVERY_RPC_URL and try again")
    elif isinstance(error, NonRetryableException):
        rprint(f"[red]Error:[/red] {error.message}")
    elif isinstance(error, ValueError):
        rprint(f"[red]Error:[/red] {str(error)}")
    else:
        rprint(f"[red]Unexpected error:[/red] {str(error)}")
    return 1


def print_distribution_summaries(summaries: List[DistributionSummary]) -> None:
    """Per-token counts, a total row when there are several, and failures."""
    if not summaries:
        return

    columns = [
        "Token",
        "Successful",
        "Failed",
        "Skipped (operator)",
        "Skipped (threshold)",
        "Not attempted",
    ]
    table = create_table(columns, title="Distribution Summary", right_aligned=columns[1:])

    total = DistributionSummary(label="Total", simulation=summaries[0].simulation)
    for summary in summaries:
        table.add_row(
            summary.label,
            str(summary.successful),
            str(summary.failed),
            str(summary.skipped_by_operator),
            str(summary.skipped_by_threshold),
            str(summary.not_attempted),
        )
        total.merge(summary)

    if len(summaries) > 1:
        table.add_row(
            "[bold]Total[/bold]",
            str(total.successful),
            str(total.failed),
            str(total.skipped_by_operator),
            str(total.skipped_by_threshold),
            str(total.not_attempted),
        )
    console.print(table)

    for failure in total.failed_recipients:
        console.print(
            f"[red]Failed:[/red] {failure['address']} "
            f"({failure['amount']} wei): {failure['error']}"
        )

    if total.cancelled:
        console.print("\n[red]Distribution was cancelled before completion[/red]")
    else:
        console.print("\n[green]Distribution complete[/green]")
    if total.simulation:
        console.print(
            "This was a simulation. Run with --doit to execute actual transactions"
        )

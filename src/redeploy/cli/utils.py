"""
CLI utility helpers - consoles, progress reporting and result tables.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redeploy.deploy.results import DeploymentResult, OverallStatus, StepOutcome, StepStatus
from redeploy.deploy.steps import Step

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {
    StepStatus.PASSED: "green",
    StepStatus.WARNED: "yellow",
    StepStatus.FAILED: "red bold",
    StepStatus.SKIPPED: "dim",
}


class ConsoleReporter:
    """Step listener printing coloured progress lines.

    Blue for each step as it starts, yellow for tolerated failures and
    notices, red for the fatal failure that stops the run.
    """

    def __init__(self, out: Console | None = None, err: Console | None = None) -> None:
        self.out = out or console
        self.err = err or err_console

    def step_started(self, step: Step) -> None:
        self.out.print(f"[blue]{escape(step.message)}[/blue]", highlight=False)

    def step_finished(self, step: Step, outcome: StepOutcome) -> None:
        if outcome.status == StepStatus.WARNED:
            self.out.print(f"[yellow]{escape(outcome.error or '')}[/yellow]", highlight=False)
        elif outcome.status == StepStatus.FAILED:
            self.err.print(f"[red]✗ {outcome.name}: {escape(outcome.error or '')}[/red]", highlight=False)
        elif outcome.status == StepStatus.SKIPPED:
            self.out.print(f"[dim]  skipped {outcome.name}[/dim]")

    def notice(self, text: str) -> None:
        self.out.print(f"[yellow]{escape(text)}[/yellow]", highlight=False)


def print_result(result: DeploymentResult, *, title: str = "Deployment Steps") -> None:
    """Pretty-print a DeploymentResult."""
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Step", style="bold")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Time")

    for i, outcome in enumerate(result.steps, 1):
        style = _STATUS_STYLE.get(outcome.status, "white")
        table.add_row(
            str(i),
            outcome.name,
            outcome.severity.value,
            f"[{style}]{outcome.status.value}[/{style}]",
            f"{outcome.duration_ms:.0f}ms",
        )

    console.print(table)

    style = "green" if result.overall_status == OverallStatus.PASSED else (
        "yellow" if result.overall_status == OverallStatus.PARTIAL else "red"
    )
    console.print(f"\n[bold {style}]{result.overall_status.value}[/] - {escape(result.summary)}")
    if result.error:
        err_console.print(f"[red]Error: {escape(result.error)}[/]")


def print_steps(steps: list[Step]) -> None:
    """Render a planned step list."""
    table = Table(title="Deployment Plan")
    table.add_column("#", justify="right")
    table.add_column("Step", style="bold cyan")
    table.add_column("Severity")
    table.add_column("Command / action", overflow="fold")

    for i, step in enumerate(steps, 1):
        severity = "[red]fatal[/red]" if step.is_fatal else "[yellow]best effort[/yellow]"
        conditional = " (if present)" if step.when is not None else ""
        table.add_row(str(i), step.name, severity, escape(step.describe() + conditional))

    console.print(table)


def steps_as_dicts(steps: list[Step]) -> list[dict[str, Any]]:
    return [
        {
            "name": step.name,
            "severity": step.severity.value,
            "command": list(step.command) if step.command is not None else None,
            "cwd": str(step.cwd) if step.cwd else None,
            "conditional": step.when is not None,
            "message": step.message,
        }
        for step in steps
    ]


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}", highlight=False)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))

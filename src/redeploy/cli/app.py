"""
Root Typer application for the redeploy CLI.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from redeploy.core.logging import configure_logging
from redeploy.core.settings import get_settings

app = Typer(
    name="redeploy",
    help="redeploy - rebuild and replace a two-container web app on a single host.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("redeploy")
        except PackageNotFoundError:
            from redeploy import __version__ as v
        typer.echo(f"redeploy {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level to stderr."),
    json_logs: bool | None = typer.Option(
        None, "--json-logs/--console-logs", help="Force JSON or console log rendering.",
    ),
) -> None:
    """redeploy CLI - build, migrate uploads, replace containers, clean up."""
    settings = get_settings()
    level = "DEBUG" if verbose else settings.log_level
    configure_logging(
        level=level,
        json_format=json_logs if json_logs is not None else settings.json_logs,
        service=settings.service_name,
    )


# ── Command registration ─────────────────────────────────────────────────

from redeploy.cli import deploy as _deploy  # noqa: E402

app.command("run")(_deploy.run)
app.command("plan")(_deploy.plan)
app.command("cleanup")(_deploy.cleanup)
app.command("status")(_deploy.status)
app.command("doctor")(_deploy.doctor)
app.command("config")(_deploy.show_config)

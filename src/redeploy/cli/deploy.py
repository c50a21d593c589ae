"""
CLI: deployment commands.

Usage::

    redeploy run                      # full rebuild + container replacement
    redeploy run --pull --cleanup     # git pull first, prune docker afterwards
    redeploy plan                     # list the steps without running them
    redeploy cleanup                  # docker housekeeping only
    redeploy status                   # state of the server/client containers
    redeploy doctor                   # check tools and project layout
    redeploy config                   # show the effective configuration
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from redeploy.cli.utils import (
    ConsoleReporter,
    console,
    err_console,
    print_dict,
    print_json,
    print_result,
    print_steps,
    steps_as_dicts,
)
from redeploy.core.errors import CommandError, ConfigError, DockerNotFoundError
from redeploy.deploy.commands import CommandRunner, extend_path
from redeploy.deploy.config import DeploymentConfig
from redeploy.deploy.container import ContainerManager
from redeploy.deploy.results import DeploymentResult
from redeploy.deploy.sequencer import DeploymentSequencer

# ── Shared options ───────────────────────────────────────────────────────

ProjectDirOption = typer.Option(
    None, "--project-dir", "-d", help="Project root (default ~/<app name>).",
)
UploadsDirOption = typer.Option(
    None, "--uploads-dir", "-u", help="Host uploads directory.",
)
JsonOption = typer.Option(False, "--json", help="Output as JSON.")


def _load_config(**overrides: object) -> DeploymentConfig:
    try:
        return DeploymentConfig.from_env(**overrides)
    except (ConfigError, ValidationError) as exc:
        err_console.print(f"[bold red]Invalid configuration[/bold red]: {escape(str(exc))}")
        raise typer.Exit(code=2) from exc


def _finish(result: DeploymentResult, json_out: bool, title: str) -> None:
    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    else:
        print_result(result, title=title)
    if result.exit_code:
        raise typer.Exit(code=result.exit_code)


# ── run ──────────────────────────────────────────────────────────────────


def run(
    project_dir: Path | None = ProjectDirOption,
    uploads_dir: Path | None = UploadsDirOption,
    pull: bool | None = typer.Option(None, "--pull/--no-pull", help="git pull before building."),
    cleanup: bool | None = typer.Option(
        None, "--cleanup/--no-cleanup", help="Prune docker resources after removing old containers.",
    ),
    tolerate_client_failures: bool | None = typer.Option(
        None,
        "--tolerate-client-failures/--strict-client",
        help="Treat client image build and client run failures as warnings.",
    ),
    json_out: bool = JsonOption,
) -> None:
    """Rebuild the app and replace the server and client containers.

    Stops at the first fatal failure and exits non-zero, naming the step.
    """
    config = _load_config(
        project_dir=project_dir,
        uploads_dir=uploads_dir,
        git_pull=pull,
        cleanup=cleanup,
        tolerate_client_failures=tolerate_client_failures,
    )

    listener = None if json_out else ConsoleReporter()
    if not json_out:
        console.print(f"[bold]redeploy run[/] - run_id: {config.run_id}")
        console.print(f"  project: {escape(str(config.project_root))}")

    sequencer = DeploymentSequencer(config, listener=listener)
    try:
        result = sequencer.run()
    except KeyboardInterrupt:
        err_console.print("[red]Interrupted; environment left as the last completed step produced.[/]")
        raise typer.Exit(code=130)

    _finish(result, json_out, title="Deployment Steps")


# ── plan ─────────────────────────────────────────────────────────────────


def plan(
    project_dir: Path | None = ProjectDirOption,
    uploads_dir: Path | None = UploadsDirOption,
    pull: bool | None = typer.Option(None, "--pull/--no-pull", help="Include git pull."),
    cleanup: bool | None = typer.Option(None, "--cleanup/--no-cleanup", help="Include cleanup."),
    json_out: bool = JsonOption,
) -> None:
    """List the deployment steps without running anything."""
    config = _load_config(
        project_dir=project_dir, uploads_dir=uploads_dir, git_pull=pull, cleanup=cleanup,
    )
    steps = DeploymentSequencer(config).build_steps()
    if json_out:
        print_json(steps_as_dicts(steps))
    else:
        print_steps(steps)


# ── cleanup ──────────────────────────────────────────────────────────────


def cleanup(json_out: bool = JsonOption) -> None:
    """Truncate container logs and prune dangling docker resources."""
    config = _load_config()
    listener = None if json_out else ConsoleReporter()
    if not json_out:
        console.print("[blue]Cleaning up Docker resources...[/blue]")
    result = DeploymentSequencer(config, listener=listener).cleanup()
    _finish(result, json_out, title="Cleanup Steps")


# ── status ───────────────────────────────────────────────────────────────


def status(json_out: bool = JsonOption) -> None:
    """Show the state of the server and client containers."""
    config = _load_config()
    mgr = ContainerManager(config.docker_bin, CommandRunner(extra_path=config.extra_path))
    names = [config.server_container, config.client_container]
    try:
        states = {name: mgr.get_container_status(name) for name in names}
    except CommandError as exc:
        err_console.print(f"[red]{escape(exc.message)}[/]")
        raise typer.Exit(code=1) from exc

    if json_out:
        print_json(states)
        return

    table = Table(title="Containers")
    table.add_column("Container", style="bold")
    table.add_column("Status")
    for name, state in states.items():
        style = {"running": "green", "exited": "red", "not_found": "dim"}.get(state, "yellow")
        table.add_row(name, f"[{style}]{state}[/{style}]")
    console.print(table)


# ── doctor ───────────────────────────────────────────────────────────────


def doctor() -> None:
    """Check required tools, the docker daemon and the project layout."""
    config = _load_config()
    search_path = extend_path({"PATH": os.environ.get("PATH", "")}, config.extra_path)["PATH"]

    checks: list[tuple[str, bool, str]] = []
    docker: str | None = None
    try:
        docker = ContainerManager.find_docker(config.docker_bin, path=search_path)
        checks.append((f"{config.docker_bin} on PATH", True, docker))
    except DockerNotFoundError as exc:
        checks.append((f"{config.docker_bin} on PATH", False, exc.message.splitlines()[0]))
    for binary in (config.wasp_bin, config.npm_bin):
        found = shutil.which(binary, path=search_path)
        checks.append((f"{binary} on PATH", found is not None, found or "not found"))
    daemon = docker is not None and ContainerManager.is_docker_available(docker)
    checks.append(("docker daemon", daemon, "responding" if daemon else "not responding"))

    root = config.project_root
    checks.append(("project directory", root.is_dir(), str(root)))
    for env_file in (config.server_env_file, config.client_env_file):
        path = root / env_file
        checks.append((env_file, path.is_file(), str(path)))
    dockerfile = root / config.client_dockerfile
    checks.append((config.client_dockerfile, dockerfile.is_file(), str(dockerfile)))

    table = Table(title="redeploy doctor")
    table.add_column("Check", style="bold")
    table.add_column("OK")
    table.add_column("Detail", overflow="fold")
    for name, ok, detail in checks:
        table.add_row(name, "[green]✓[/green]" if ok else "[red]✗[/red]", escape(detail))
    console.print(table)

    if not all(ok for _, ok, _ in checks):
        raise typer.Exit(code=1)


# ── config ───────────────────────────────────────────────────────────────


def show_config(json_out: bool = JsonOption) -> None:
    """Show the effective deployment configuration."""
    config = _load_config()
    data = config.model_dump(mode="json")
    if json_out:
        print_json(data)
    else:
        print_dict(data, title="Deployment configuration")

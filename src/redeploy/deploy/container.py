"""Container operations via the ``docker`` CLI.

No ``docker-py`` dependency: every operation is a ``docker`` subprocess,
so the tool works with any runtime exposing a docker-compatible CLI.

Two kinds of methods live here:

- command builders (``*_command``) return argument lists; the sequencer
  wraps them in steps so they can be listed by ``redeploy plan`` before
  anything runs;
- queries (``container_exists``, ``get_container_status``) execute
  immediately and capture output.

Example::

    mgr = ContainerManager(runner=CommandRunner())
    if mgr.container_exists("pospay-server"):
        ...
    spec = ContainerRunSpec(name="pospay-client", image="pospay-client",
                            ports=[("0.0.0.0", 3000, 80)])
    args = mgr.run_command(spec)
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from redeploy.core.errors import CommandError, DockerNotFoundError
from redeploy.core.logging import get_logger
from redeploy.deploy.commands import CommandRunner

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContainerRunSpec:
    """Everything ``docker run`` needs for one container."""

    name: str
    image: str
    network: str | None = None
    ports: list[tuple[str, int, int]] = field(default_factory=list)  # (bind, host, container)
    volumes: list[tuple[str, str]] = field(default_factory=list)  # (host, container)
    env_file: str | None = None
    add_hosts: list[tuple[str, str]] = field(default_factory=list)  # (alias, target)
    detach: bool = True


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class ContainerManager:
    """Builds and runs docker CLI commands.

    Parameters
    ----------
    docker_bin
        Docker executable name or path.
    runner
        Runner used for queries.
    """

    def __init__(self, docker_bin: str = "docker", runner: CommandRunner | None = None) -> None:
        self.docker_bin = docker_bin
        self.runner = runner or CommandRunner()

    # ------------------------------------------------------------------
    # Docker CLI discovery
    # ------------------------------------------------------------------

    @staticmethod
    def find_docker(docker_bin: str = "docker", path: str | None = None) -> str:
        """Return the resolved docker CLI path, searching ``path`` when given."""
        docker = shutil.which(docker_bin, path=path)
        if docker is None:
            raise DockerNotFoundError(
                "Docker CLI not found on PATH. Install Docker or add it to PATH.\n"
                "  - Linux:   https://docs.docker.com/engine/install/\n"
                "  - macOS:   https://docs.docker.com/desktop/install/mac-install/"
            )
        return docker

    @staticmethod
    def is_docker_available(docker_bin: str = "docker") -> bool:
        """Check if Docker is installed and the daemon is running."""
        docker = shutil.which(docker_bin)
        if docker is None:
            return False
        try:
            result = subprocess.run(  # noqa: S603
                [docker, "info"],
                capture_output=True,
                timeout=10,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, OSError):
            return False

    # ------------------------------------------------------------------
    # Command builders
    # ------------------------------------------------------------------

    def _cmd(self, *args: str) -> list[str]:
        return [self.docker_bin, *args]

    def exists_command(self, name: str) -> list[str]:
        return self._cmd("ps", "-aq", "-f", f"name={name}")

    def copy_from_command(self, name: str, container_path: str, host_path: Path) -> list[str]:
        """``docker cp`` the *contents* of ``container_path`` into ``host_path``."""
        source = f"{name}:{container_path.rstrip('/')}/."
        return self._cmd("cp", source, f"{host_path}/")

    def stop_command(self, name: str) -> list[str]:
        return self._cmd("container", "stop", name)

    def remove_command(self, name: str) -> list[str]:
        return self._cmd("container", "rm", name)

    def build_image_command(
        self,
        tag: str,
        context: str = ".",
        dockerfile: str | None = None,
    ) -> list[str]:
        cmd = self._cmd("build")
        if dockerfile:
            cmd.extend(["-f", dockerfile])
        cmd.extend(["-t", tag, context])
        return cmd

    def run_command(self, spec: ContainerRunSpec) -> list[str]:
        cmd = self._cmd("run")
        if spec.detach:
            cmd.append("-d")
        cmd.extend(["--name", spec.name])
        if spec.env_file:
            cmd.extend(["--env-file", spec.env_file])
        for bind, host_port, container_port in spec.ports:
            cmd.extend(["-p", f"{bind}:{host_port}:{container_port}"])
        for host_path, container_path in spec.volumes:
            cmd.extend(["-v", f"{host_path}:{container_path}"])
        if spec.network:
            cmd.extend(["--network", spec.network])
        for alias, target in spec.add_hosts:
            cmd.append(f"--add-host={alias}:{target}")
        cmd.append(spec.image)
        return cmd

    def network_create_command(self, network: str) -> list[str]:
        return self._cmd("network", "create", network)

    def prune_command(self, resource: str) -> list[str]:
        """``docker <resource> prune -f`` for image, container, builder, network."""
        if resource not in ("image", "container", "builder", "network"):
            raise ValueError(f"cannot prune {resource!r}")
        return self._cmd(resource, "prune", "-f")

    def disk_usage_command(self) -> list[str]:
        return self._cmd("system", "df")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _query(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        return self.runner.run(args, capture=True)

    def container_exists(self, name: str) -> bool:
        """True when ``docker ps -aq -f name=<name>`` lists anything.

        The docker name filter is a substring match, same as the shell
        ``[ "$(docker ps -aq -f name=...)" ]`` test it replaces.
        """
        result = self._query(self.exists_command(name))
        if result.returncode != 0:
            raise CommandError(
                f"docker ps failed (exit {result.returncode}): {result.stderr.strip()}",
                command=self.exists_command(name),
            )
        return bool(result.stdout.strip())

    def get_container_status(self, name: str) -> str:
        """Container state (running, exited, ...) or ``not_found``."""
        result = self._query(self._cmd("inspect", "--format", "{{.State.Status}}", name))
        status = (result.stdout.strip() if result.returncode == 0 else "") or "not_found"
        logger.debug("docker.status", container=name, status=status)
        return status


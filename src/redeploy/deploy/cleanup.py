"""Docker disk cleanup.

Best-effort housekeeping for a long-lived single host: empty the json log
files of every container, then prune dangling images, stopped containers,
build cache and unused networks, and finally print ``docker system df``.
Every step tolerates "nothing to do" and permission failures.

Networks still used by a container (the deployment network while the
containers run) are never removed by ``docker network prune``.
"""

from __future__ import annotations

import os
from pathlib import Path

from redeploy.core.errors import StepError
from redeploy.core.logging import get_logger
from redeploy.deploy.config import DeploymentConfig
from redeploy.deploy.container import ContainerManager
from redeploy.deploy.steps import Severity, Step

logger = get_logger(__name__)

_PRUNE_TARGETS = (
    ("image", "Removing dangling images...", "No dangling images to remove."),
    ("container", "Removing stopped containers...", "No stopped containers to remove."),
    ("builder", "Removing build cache...", "No build cache to remove."),
    ("network", "Removing unused networks...", "No unused networks to remove."),
)


def truncate_container_logs(docker_root: Path) -> int:
    """Truncate ``<docker_root>/containers/*/*-json.log`` to zero bytes.

    Returns the number of files truncated.

    Raises
    ------
    StepError
        If any log file could not be truncated (usually missing root
        privileges); files that could be truncated still are.
    """
    truncated = 0
    failed: list[str] = []
    for log_file in sorted((docker_root / "containers").glob("*/*-json.log")):
        try:
            os.truncate(log_file, 0)
            truncated += 1
        except OSError as exc:
            logger.debug("cleanup.truncate_failed", path=str(log_file), error=str(exc))
            failed.append(str(log_file))
    logger.info("cleanup.logs_truncated", count=truncated, failed=len(failed))
    if failed:
        raise StepError(f"Could not truncate {len(failed)} log file(s)").with_context(files=failed)
    return truncated


def build_cleanup_steps(config: DeploymentConfig, containers: ContainerManager) -> list[Step]:
    """The cleanup routine as a list of best-effort steps."""
    steps = [
        Step.call(
            "truncate_container_logs",
            "Truncating container logs...",
            lambda: _truncate(config.docker_root),
            severity=Severity.BEST_EFFORT,
            failure_message="Could not truncate some log files (this is normal).",
        )
    ]
    for resource, message, failure in _PRUNE_TARGETS:
        steps.append(
            Step.run(
                f"prune_{resource}s" if resource != "builder" else "prune_build_cache",
                message,
                containers.prune_command(resource),
                severity=Severity.BEST_EFFORT,
                failure_message=failure,
            )
        )
    steps.append(
        Step.run(
            "cleanup_disk_usage",
            "Docker cleanup completed!",
            containers.disk_usage_command(),
            severity=Severity.BEST_EFFORT,
        )
    )
    return steps


def _truncate(docker_root: Path) -> None:
    truncate_container_logs(docker_root)

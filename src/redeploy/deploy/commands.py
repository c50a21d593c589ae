"""Subprocess execution of external tools.

Every external command the sequencer issues (``wasp``, ``npm``, ``docker``,
``git``) goes through :class:`CommandRunner`. Commands run synchronously;
the runner never raises on a non-zero exit status, it returns the
``CompletedProcess`` and leaves the verdict to the caller. Only the cases
where no exit status exists raise: a missing executable
(:class:`CommandNotFoundError`) or an expired timeout
(:class:`CommandTimeoutError`).

Build commands stream straight to the terminal (``capture=False``) so the
operator sees progress; queries such as ``docker ps`` capture output.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from redeploy.core.errors import CommandNotFoundError, CommandTimeoutError
from redeploy.core.logging import get_logger

logger = get_logger(__name__)


def extend_path(env: Mapping[str, str], extra: Sequence[Path]) -> dict[str, str]:
    """Return a copy of ``env`` with ``extra`` appended to ``PATH``."""
    result = dict(env)
    parts = [p for p in result.get("PATH", "").split(os.pathsep) if p]
    for directory in extra:
        entry = str(directory)
        if entry not in parts:
            parts.append(entry)
    result["PATH"] = os.pathsep.join(parts)
    return result


class CommandRunner:
    """Runs external commands.

    Parameters
    ----------
    extra_path
        Directories appended to ``PATH`` of every command.
    timeout
        Seconds before a command is abandoned; ``None`` waits forever.
    """

    def __init__(
        self,
        extra_path: Sequence[Path] = (),
        timeout: int | None = None,
    ) -> None:
        self.extra_path = list(extra_path)
        self.timeout = timeout

    def base_env(self) -> dict[str, str]:
        """Process environment with the extra PATH entries applied."""
        return extend_path(os.environ, self.extra_path)

    def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``args`` and wait for it to exit.

        ``env`` replaces the process environment entirely when given; the
        extra PATH entries are applied to it either way.
        """
        cmd = list(args)
        run_env = extend_path(env, self.extra_path) if env is not None else self.base_env()
        logger.debug("command.exec", cmd=" ".join(cmd), cwd=str(cwd) if cwd else None)
        try:
            return subprocess.run(  # noqa: S603
                cmd,
                cwd=cwd,
                env=run_env,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(
                f"Command not found: {cmd[0]}", command=cmd, cause=exc
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"Command timed out after {self.timeout}s: {' '.join(cmd)}",
                command=cmd,
                cause=exc,
            ) from exc

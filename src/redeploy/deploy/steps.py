"""Typed step definitions for the deployment sequencer.

A step is either an external command (``Step.run``) or an in-process
action (``Step.call``), tagged with a :class:`Severity`:

- ``FATAL``: a failure stops the whole sequence;
- ``BEST_EFFORT``: a failure is reported as a warning and the sequence
  continues.

Steps are plain data. Callables (``env``, ``action``, ``when``) are only
evaluated when the step executes, so a step list can be built and listed
before the project has been built.

Example::

    steps = [
        Step.call("enter_project", "Navigating to the project directory...",
                  lambda: require_dir(root)),
        Step.run("wasp_build", "Building the Wasp project...",
                 ["wasp", "build"], cwd=root,
                 failure_message="Wasp build failed!"),
        Step.run("create_network", "Ensuring the Docker network exists...",
                 ["docker", "network", "create", "pospay-network"],
                 severity=Severity.BEST_EFFORT),
    ]
"""

from __future__ import annotations

import dataclasses
import shlex
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Severity(str, Enum):
    """How a step failure is handled."""

    FATAL = "fatal"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class Step:
    """One entry of the deployment sequence."""

    name: str
    message: str
    severity: Severity = Severity.FATAL
    command: tuple[str, ...] | None = None
    cwd: Path | None = None
    env: Callable[[], Mapping[str, str]] | None = None
    action: Callable[[], None] | None = None
    when: Callable[[], bool] | None = None
    failure_message: str = ""
    capture: bool = False

    def __post_init__(self) -> None:
        if (self.command is None) == (self.action is None):
            raise ValueError(f"step {self.name!r} needs exactly one of command or action")

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def run(
        cls,
        name: str,
        message: str,
        command: Sequence[str],
        *,
        severity: Severity = Severity.FATAL,
        cwd: Path | None = None,
        env: Callable[[], Mapping[str, str]] | None = None,
        when: Callable[[], bool] | None = None,
        failure_message: str = "",
        capture: bool = False,
    ) -> Step:
        """Step that runs an external command."""
        return cls(
            name=name,
            message=message,
            severity=severity,
            command=tuple(command),
            cwd=cwd,
            env=env,
            when=when,
            failure_message=failure_message,
            capture=capture,
        )

    @classmethod
    def call(
        cls,
        name: str,
        message: str,
        action: Callable[[], None],
        *,
        severity: Severity = Severity.FATAL,
        when: Callable[[], bool] | None = None,
        failure_message: str = "",
    ) -> Step:
        """Step that runs an in-process action."""
        return cls(
            name=name,
            message=message,
            severity=severity,
            action=action,
            when=when,
            failure_message=failure_message,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def is_fatal(self) -> bool:
        return self.severity == Severity.FATAL

    def with_severity(self, severity: Severity) -> Step:
        return dataclasses.replace(self, severity=severity)

    def describe(self) -> str:
        """Shell-style command line, or the message for in-process actions."""
        if self.command is not None:
            return shlex.join(self.command)
        return self.message

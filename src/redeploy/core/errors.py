"""
Structured error types for redeploy.

Every failure the sequencer can observe is expressed as a ``RedeployError``
subclass carrying a category, a free-form context mapping, and an optional
chained cause. The sequencer catches these at the step boundary and turns
them into a failed ``StepOutcome``; nothing else catches them.

Hierarchy::

    RedeployError
    ├── ConfigError
    ├── StepError              (in-process action failed, e.g. missing directory)
    ├── DockerNotFoundError
    └── CommandError           (external process could not be run)
        ├── CommandNotFoundError
        └── CommandTimeoutError

Usage::

    from redeploy.core.errors import StepError

    if not build_dir.is_dir():
        raise StepError(f"Failed to change directory to {build_dir}").with_context(
            step="enter_server_build_dir",
        )
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for logging and reporting."""

    CONFIG = "CONFIG"  # Invalid or missing settings
    FILESYSTEM = "FILESYSTEM"  # Directories, copies, env files
    PROCESS = "PROCESS"  # External command could not run or timed out
    DOCKER = "DOCKER"  # Docker CLI unavailable
    INTERNAL = "INTERNAL"


class RedeployError(Exception):
    """Base class for all redeploy errors.

    Parameters
    ----------
    message
        Human-readable description.
    category
        Overrides the class default category.
    context
        Extra key/value metadata for logging.
    cause
        Underlying exception; chained as ``__cause__``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RedeployError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ConfigError(RedeployError):
    """Invalid deployment configuration."""

    default_category = ErrorCategory.CONFIG


class StepError(RedeployError):
    """An in-process step action failed."""

    default_category = ErrorCategory.FILESYSTEM


class DockerNotFoundError(RedeployError):
    """Raised when the Docker CLI is not available."""

    default_category = ErrorCategory.DOCKER


class CommandError(RedeployError):
    """An external command could not be executed."""

    default_category = ErrorCategory.PROCESS

    def __init__(self, message: str, *, command: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.command = list(command or [])
        if self.command:
            self.context.setdefault("command", " ".join(self.command))


class CommandNotFoundError(CommandError):
    """The executable is not on PATH."""


class CommandTimeoutError(CommandError):
    """The command did not exit within the configured timeout."""


__all__ = [
    "CommandError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "ConfigError",
    "DockerNotFoundError",
    "ErrorCategory",
    "RedeployError",
    "StepError",
]

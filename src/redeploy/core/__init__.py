"""Shared primitives: errors, logging, settings, env files."""

from redeploy.core.errors import (
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
    ConfigError,
    DockerNotFoundError,
    ErrorCategory,
    RedeployError,
    StepError,
)
from redeploy.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "CommandError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "ConfigError",
    "DockerNotFoundError",
    "ErrorCategory",
    "LogContext",
    "RedeployError",
    "StepError",
    "configure_logging",
    "get_logger",
]

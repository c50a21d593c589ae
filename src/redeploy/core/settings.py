"""Process-level settings for the redeploy CLI.

Deployment parameters live in :class:`redeploy.deploy.config.DeploymentConfig`;
this class only holds knobs for the tool itself (logging). Values come from
``REDEPLOY_*`` environment variables or a ``.env`` file in the working
directory.

Examples:
    >>> from redeploy.core.settings import RedeploySettings
    >>> RedeploySettings(log_level="DEBUG").log_level
    'DEBUG'
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedeploySettings(BaseSettings):
    """Settings shared by every redeploy command.

    Fields
    ──────
    log_level    : structlog level for stderr logs
    json_logs    : force JSON (True) or console (False) rendering; auto when unset
    service_name : value of the ``service`` key on every log line
    """

    model_config = SettingsConfigDict(
        env_prefix="REDEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "WARNING"
    json_logs: bool | None = None
    service_name: str = Field(default="redeploy")

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value!r}")
        return level


def get_settings() -> RedeploySettings:
    """Return settings resolved from the current environment."""
    return RedeploySettings()

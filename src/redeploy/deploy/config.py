"""Configuration model for a redeploy run.

``DeploymentConfig`` holds every path, name, port, binary and flag the
sequencer uses. Defaults reproduce the single-host layout the tool was
written for (``~/pospay-saas`` project, ``~/data/uploads`` uploads,
``pospay-server`` / ``pospay-client`` containers on ``pospay-network``).

Override precedence: kwargs > ``REDEPLOY_*`` env vars > field defaults.

Key Concepts:
    DeploymentConfig: Pydantic model; ``from_env()`` reads ``REDEPLOY_*``.
    Derived names: container, image and network names default to
        ``<prefix>-server``, ``<prefix>-client``, ``<prefix>-network``;
        ``project_dir`` defaults to ``~/<app_name>``.

Example:
    >>> from redeploy.deploy.config import DeploymentConfig
    >>> config = DeploymentConfig(prefix="acme", app_name="acme-app")
    >>> config.server_container, config.network
    ('acme-server', 'acme-network')
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from redeploy.core.envfile import CLIENT_UNSET_VARS
from redeploy.core.errors import ConfigError


class DeploymentConfig(BaseModel):
    """Configuration for a single-host server + client redeploy.

    Example::

        config = DeploymentConfig(
            project_dir=Path("/srv/acme"),
            uploads_dir=Path("/srv/data/uploads"),
            cleanup=True,
        )
    """

    # Identity
    app_name: str = Field(default="pospay-saas", description="Project directory name under $HOME")
    prefix: str = Field(default="pospay", description="Prefix for container, image and network names")

    # Host paths
    project_dir: Path | None = Field(default=None, description="Project root (default ~/<app_name>)")
    uploads_dir: Path = Field(
        default_factory=lambda: Path.home() / "data" / "uploads",
        description="Host uploads directory bind-mounted into both containers",
    )
    extra_path: list[Path] = Field(
        default_factory=lambda: [Path.home() / ".local" / "bin"],
        description="Directories appended to PATH for every external command",
    )
    docker_root: Path = Field(
        default=Path("/var/lib/docker"),
        description="Docker data root (container json logs live under containers/)",
    )

    # Project layout (relative to project_dir)
    build_dir: str = Field(default=".wasp/build", description="Generated server build directory")
    web_app_dir: str = Field(default=".wasp/build/web-app", description="Generated web-app directory")
    web_build_output: str = Field(default="build", description="Static output inside web_app_dir")
    client_dir: str = Field(default="web-client", description="Static assets served by the client")
    client_dockerfile: str = Field(default="Dockerfile.client")
    server_env_file: str = Field(default=".env.server")
    client_env_file: str = Field(default=".env.client")

    # Containers
    server_container: str = ""
    client_container: str = ""
    server_image: str = ""
    client_image: str = ""
    network: str = ""
    bind_address: str = "0.0.0.0"
    server_port: int = 3001
    client_port: int = 3000
    client_internal_port: int = 80
    host_gateway_alias: str = "host.docker.internal"
    container_uploads_path: str = "/app/.wasp/build/server/public/uploads"
    client_uploads_path: str = ""
    client_html_path: str = "/usr/share/nginx/html"

    # Client build environment
    client_unset_vars: list[str] = Field(default_factory=lambda: list(CLIENT_UNSET_VARS))
    echo_client_vars: list[str] = Field(
        default_factory=lambda: [
            "REACT_APP_API_URL",
            "REACT_APP_GOOGLE_ANALYTICS_ID",
            "REACT_APP_GOOGLE_RECAPTCHA_SITE_KEY",
            "REACT_APP_GOOGLE_MAPS_API_KEY",
        ],
        description="Client variables echoed before the front-end build",
    )

    # Binaries
    docker_bin: str = "docker"
    wasp_bin: str = "wasp"
    npm_bin: str = "npm"
    git_bin: str = "git"

    # Behaviour
    git_pull: bool = Field(default=False, description="Run git pull before building")
    cleanup: bool = Field(default=False, description="Run the cleanup routine after removing containers")
    tolerate_client_failures: bool = Field(
        default=False,
        description="Treat the client image build and client run as best-effort",
    )
    command_timeout: int | None = Field(
        default=None,
        description="Per-command timeout in seconds (no timeout when unset)",
    )

    # Internal
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @model_validator(mode="after")
    def _set_defaults(self) -> DeploymentConfig:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        if self.project_dir is None:
            self.project_dir = Path.home() / self.app_name
        self.project_dir = self.project_dir.expanduser()
        self.uploads_dir = self.uploads_dir.expanduser()
        self.extra_path = [p.expanduser() for p in self.extra_path]
        if not self.server_container:
            self.server_container = f"{self.prefix}-server"
        if not self.client_container:
            self.client_container = f"{self.prefix}-client"
        if not self.server_image:
            self.server_image = self.server_container
        if not self.client_image:
            self.client_image = self.client_container
        if not self.network:
            self.network = f"{self.prefix}-network"
        if not self.client_uploads_path:
            self.client_uploads_path = f"/home/{self.prefix}/data/uploads"
        if self.server_container == self.client_container:
            raise ValueError("server and client containers must have different names")
        return self

    # ------------------------------------------------------------------
    # Resolved paths
    # ------------------------------------------------------------------

    @property
    def project_root(self) -> Path:
        if self.project_dir is None:
            raise ConfigError("project_dir is not set")
        return self.project_dir

    @property
    def server_build_path(self) -> Path:
        return self.project_root / self.build_dir

    @property
    def web_app_path(self) -> Path:
        return self.project_root / self.web_app_dir

    @property
    def web_build_path(self) -> Path:
        return self.web_app_path / self.web_build_output

    @property
    def client_output_path(self) -> Path:
        return self.project_root / self.client_dir

    @property
    def client_env_path(self) -> Path:
        return self.project_root / self.client_env_file

    @classmethod
    def from_env(cls, **overrides: Any) -> DeploymentConfig:
        """Create config from REDEPLOY_* environment variables.

        ``None`` overrides are ignored so CLI options that were not given
        fall through to the environment and the defaults.

        Raises
        ------
        ConfigError
            If an environment value cannot be converted.
        """
        env_map = {
            "app_name": "REDEPLOY_APP_NAME",
            "prefix": "REDEPLOY_PREFIX",
            "project_dir": "REDEPLOY_PROJECT_DIR",
            "uploads_dir": "REDEPLOY_UPLOADS_DIR",
            "docker_root": "REDEPLOY_DOCKER_ROOT",
            "network": "REDEPLOY_NETWORK",
            "docker_bin": "REDEPLOY_DOCKER_BIN",
            "git_pull": "REDEPLOY_GIT_PULL",
            "cleanup": "REDEPLOY_CLEANUP",
            "tolerate_client_failures": "REDEPLOY_TOLERATE_CLIENT_FAILURES",
            "command_timeout": "REDEPLOY_COMMAND_TIMEOUT",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is None:
                continue
            if field_name in ("git_pull", "cleanup", "tolerate_client_failures"):
                values[field_name] = env_val.lower() in ("true", "1", "yes")
            elif field_name == "command_timeout":
                try:
                    values[field_name] = int(env_val)
                except ValueError as exc:
                    raise ConfigError(
                        f"{env_var} must be an integer, got {env_val!r}", cause=exc
                    ) from exc
            elif field_name in ("project_dir", "uploads_dir", "docker_root"):
                values[field_name] = Path(env_val)
            else:
                values[field_name] = env_val
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

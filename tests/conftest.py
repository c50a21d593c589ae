"""
Shared pytest fixtures for redeploy tests.

This module provides:
- a throwaway Wasp project layout on disk (``project_dir``)
- a ``DeploymentConfig`` pointing at it (``config``)
- the in-memory docker/wasp/npm runner (``fake_runner``)
- a sequencer wired to both (``sequencer``)

No fixture touches the real docker daemon or the user's home directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from redeploy.deploy.config import DeploymentConfig
from redeploy.deploy.sequencer import DeploymentSequencer
from tests._support.fake_docker import FakeRunner

CLIENT_ENV = """\
# production client settings
REACT_APP_API_URL=https://app.example.test
REACT_APP_GOOGLE_ANALYTICS_ID="G-TEST123"
#REACT_APP_DISABLED=secret
WASP_WEB_CLIENT_URL=https://pinned.example.test
"""


def make_project(root: Path) -> Path:
    """Create the files and generated build output a deployment expects."""
    (root / ".wasp" / "build" / "web-app" / "build" / "assets").mkdir(parents=True)
    (root / ".wasp" / "build" / "Dockerfile").write_text("FROM node:20\n")
    (root / ".wasp" / "build" / "web-app" / "package.json").write_text("{}\n")
    (root / ".wasp" / "build" / "web-app" / "build" / "index.html").write_text("<html></html>\n")
    (root / ".wasp" / "build" / "web-app" / "build" / "assets" / "app.js").write_text("console.log(1)\n")
    (root / ".env.server").write_text("DATABASE_URL=postgres://db\n")
    (root / ".env.client").write_text(CLIENT_ENV)
    (root / "Dockerfile.client").write_text("FROM nginx:alpine\n")
    return root


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep structlog context and configuration from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    return make_project(tmp_path / "pospay-saas")


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    return tmp_path / "data" / "uploads"


@pytest.fixture
def config(project_dir: Path, uploads_dir: Path, tmp_path: Path) -> DeploymentConfig:
    return DeploymentConfig(
        project_dir=project_dir,
        uploads_dir=uploads_dir,
        extra_path=[],
        docker_root=tmp_path / "docker",
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sequencer(config: DeploymentConfig, fake_runner: FakeRunner) -> DeploymentSequencer:
    return DeploymentSequencer(config, runner=fake_runner)

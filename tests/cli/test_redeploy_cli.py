"""Tests for the redeploy CLI (run, plan, cleanup, status, doctor, config).

Commands are driven through Typer's ``CliRunner``. ``run`` and ``cleanup``
use a sequencer wired to ``FakeRunner`` so nothing touches docker.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from redeploy import __version__
from redeploy.cli.app import app
from redeploy.core.errors import CommandError
from redeploy.deploy.sequencer import DeploymentSequencer
from tests._support.fake_docker import FakeRunner

runner = CliRunner()


@pytest.fixture(autouse=True)
def _cli_env(monkeypatch, tmp_path, project_dir, uploads_dir):
    """Point every command at the temporary project and keep logs quiet."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REDEPLOY_PROJECT_DIR", str(project_dir))
    monkeypatch.setenv("REDEPLOY_UPLOADS_DIR", str(uploads_dir))
    monkeypatch.setenv("REDEPLOY_DOCKER_ROOT", str(tmp_path / "docker"))
    monkeypatch.setenv("REDEPLOY_LOG_LEVEL", "CRITICAL")
    for var in ("REDEPLOY_GIT_PULL", "REDEPLOY_CLEANUP", "REDEPLOY_TOLERATE_CLIENT_FAILURES"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_sequencer(fake_runner):
    """Patch the CLI's sequencer class so it runs against ``fake_runner``."""

    def factory(config, listener=None):
        return DeploymentSequencer(config, runner=fake_runner, listener=listener)

    with patch("redeploy.cli.deploy.DeploymentSequencer", side_effect=factory) as mock_cls:
        yield mock_cls


class TestRootApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("redeploy ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "run" in result.output
        assert "cleanup" in result.output

    def test_version_fallback(self):
        from importlib.metadata import PackageNotFoundError

        with patch("redeploy.cli.app.pkg_version", side_effect=PackageNotFoundError):
            result = runner.invoke(app, ["--version"])
        assert result.output.strip() == f"redeploy {__version__}"


class TestRunCommand:
    def test_success(self, fake_sequencer, fake_runner):
        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        assert "Building the Wasp project..." in result.output
        assert "Client available at: http://localhost:3000" in result.output
        assert "REACT_APP_API_URL: https://app.example.test" in result.output
        assert set(fake_runner.containers) == {"pospay-server", "pospay-client"}

    def test_bracketed_docker_output_is_not_fatal(self, fake_sequencer, fake_runner):
        fake_runner.fail = {"docker network create": (1, "Error: invalid name [/bad]")}

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        assert "[/bad]" in result.output
        assert "Client available at: http://localhost:3000" in result.output

    def test_json_output(self, fake_sequencer):
        result = runner.invoke(app, ["run", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["overall_status"] == "PARTIAL"
        assert data["failed_step"] is None
        assert data["steps"][0]["name"] == "enter_project"

    def test_fatal_failure_exits_nonzero(self, fake_sequencer, fake_runner):
        fake_runner.fail = {"wasp build": 1}

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 1
        assert "wasp_build" in result.output
        assert "Wasp build failed!" in result.output
        assert "Client available" not in result.output
        assert fake_runner.commands == ["wasp build"]

    def test_missing_project_dir(self, fake_sequencer, fake_runner, tmp_path):
        result = runner.invoke(app, ["run", "--project-dir", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "enter_project" in result.output
        assert fake_runner.calls == []

    def test_flags_reach_config(self, fake_sequencer, fake_runner):
        result = runner.invoke(app, ["run", "--pull", "--cleanup", "--tolerate-client-failures"])

        config = fake_sequencer.call_args[0][0]
        assert config.git_pull is True
        assert config.cleanup is True
        assert config.tolerate_client_failures is True
        assert fake_runner.commands[0] == "git pull"
        assert "docker image prune -f" in fake_runner.commands
        assert result.exit_code == 0

    def test_env_flag_overridden_by_option(self, fake_sequencer, monkeypatch):
        monkeypatch.setenv("REDEPLOY_CLEANUP", "true")
        runner.invoke(app, ["run", "--no-cleanup"])
        assert fake_sequencer.call_args[0][0].cleanup is False

    def test_invalid_config(self, fake_sequencer, monkeypatch):
        monkeypatch.setenv("REDEPLOY_COMMAND_TIMEOUT", "later")
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
        fake_sequencer.assert_not_called()

    def test_interrupt(self):
        with patch("redeploy.cli.deploy.DeploymentSequencer") as mock_cls:
            mock_cls.return_value.run.side_effect = KeyboardInterrupt
            result = runner.invoke(app, ["run"])
        assert result.exit_code == 130
        assert "Interrupted" in result.output


class TestPlanCommand:
    def test_table(self):
        result = runner.invoke(app, ["plan"])
        assert result.exit_code == 0
        assert "Deployment Plan" in result.output
        assert "wasp_build" in result.output

    def test_json(self, project_dir):
        result = runner.invoke(app, ["plan", "--json", "--cleanup"])

        assert result.exit_code == 0
        steps = json.loads(result.stdout)
        names = [s["name"] for s in steps]
        assert names[0] == "enter_project"
        assert "prune_images" in names
        assert "git_pull" not in names
        wasp = steps[names.index("wasp_build")]
        assert wasp["command"] == ["wasp", "build"]
        assert wasp["cwd"] == str(project_dir)
        assert wasp["severity"] == "fatal"
        assert steps[names.index("migrate_uploads")]["conditional"] is True

    def test_runs_nothing(self, tmp_path):
        with patch("redeploy.deploy.commands.subprocess.run") as mock_run:
            result = runner.invoke(app, ["plan", "--project-dir", str(tmp_path / "not-built-yet")])
        assert result.exit_code == 0
        mock_run.assert_not_called()


class TestCleanupCommand:
    def test_cleanup(self, fake_sequencer, fake_runner):
        result = runner.invoke(app, ["cleanup"])

        assert result.exit_code == 0
        assert "Cleaning up Docker resources..." in result.output
        assert fake_runner.commands[-1] == "docker system df"

    def test_failures_tolerated(self, fake_sequencer, fake_runner):
        fake_runner.fail = {"docker": 1}
        result = runner.invoke(app, ["cleanup", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["overall_status"] == "PARTIAL"


class TestStatusCommand:
    @patch("redeploy.cli.deploy.ContainerManager")
    def test_json(self, mock_cls):
        mock_cls.return_value.get_container_status.side_effect = (
            lambda name: "running" if name == "pospay-server" else "not_found"
        )
        result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "pospay-server": "running",
            "pospay-client": "not_found",
        }

    @patch("redeploy.cli.deploy.ContainerManager")
    def test_table(self, mock_cls):
        mock_cls.return_value.get_container_status.return_value = "exited"
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "pospay-client" in result.output
        assert "exited" in result.output

    @patch("redeploy.cli.deploy.ContainerManager")
    def test_docker_error(self, mock_cls):
        mock_cls.return_value.get_container_status.side_effect = CommandError("Command not found: docker")
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "Command not found: docker" in result.output


class TestDoctorCommand:
    @patch("redeploy.cli.deploy.ContainerManager.is_docker_available", return_value=True)
    @patch("redeploy.cli.deploy.shutil.which", side_effect=lambda name, path=None: f"/usr/bin/{name}")
    def test_all_ok(self, _which, _available):
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 0, result.output
        assert "/usr/bin/wasp" in result.output

    @patch("redeploy.cli.deploy.ContainerManager.is_docker_available", return_value=False)
    @patch("redeploy.cli.deploy.shutil.which", return_value=None)
    def test_missing_tools(self, _which, _available):
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 1
        assert "not found" in result.output
        assert "not responding" in result.output

    @patch("redeploy.cli.deploy.ContainerManager.is_docker_available", return_value=True)
    @patch("redeploy.cli.deploy.shutil.which", return_value="/usr/bin/x")
    def test_missing_env_file(self, _which, _available, project_dir):
        (project_dir / ".env.client").unlink()
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 1


class TestConfigCommand:
    def test_json(self, project_dir, uploads_dir):
        result = runner.invoke(app, ["config", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["project_dir"] == str(project_dir)
        assert data["uploads_dir"] == str(uploads_dir)
        assert data["server_container"] == "pospay-server"
        assert data["network"] == "pospay-network"

    def test_text(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Deployment configuration" in result.output
        assert "client_container" in result.output


def test_status_uses_configured_docker(monkeypatch):
    monkeypatch.setenv("REDEPLOY_DOCKER_BIN", "podman")
    with patch("redeploy.cli.deploy.ContainerManager") as mock_cls:
        mock_cls.return_value = MagicMock(get_container_status=MagicMock(return_value="running"))
        runner.invoke(app, ["status", "--json"])
    assert mock_cls.call_args[0][0] == "podman"

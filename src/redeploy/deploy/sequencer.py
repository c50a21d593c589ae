"""The deployment sequencer.

Builds the ordered list of steps for a server + client redeploy and runs
it: each step executes only after the previous one finished, the first
failing ``FATAL`` step stops the run, failing ``BEST_EFFORT`` steps are
recorded as warnings.

Sequence (default configuration)::

    enter_project            fatal
    [git_pull]               fatal        (--pull)
    wasp_build               fatal
    create_uploads_dir       best effort
    migrate_uploads          best effort  (only if the old server exists)
    stop_server/client       best effort
    remove_server/client     best effort
    [cleanup routine]        best effort  (--cleanup)
    create_network           best effort
    enter_server_build_dir   fatal
    build_server_image       fatal
    run_server               fatal
    enter_web_app_dir        fatal
    npm_install              fatal
    build_web_app            fatal
    publish_client_assets    fatal
    build_client_image       fatal        (best effort with tolerate_client_failures)
    run_client               fatal        (best effort with tolerate_client_failures)
    report_completion        best effort
    disk_usage               best effort

Progress is reported to an optional :class:`StepListener`; the CLI uses
one to print coloured output.
"""

from __future__ import annotations

import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Protocol

from redeploy.core.envfile import build_client_env
from redeploy.core.errors import RedeployError, StepError
from redeploy.core.logging import LogContext, get_logger
from redeploy.deploy.cleanup import build_cleanup_steps
from redeploy.deploy.commands import CommandRunner
from redeploy.deploy.config import DeploymentConfig
from redeploy.deploy.container import ContainerManager, ContainerRunSpec
from redeploy.deploy.results import DeploymentResult, StepOutcome, StepStatus
from redeploy.deploy.steps import Severity, Step

logger = get_logger(__name__)


class StepListener(Protocol):
    """Receives progress notifications from the sequencer."""

    def step_started(self, step: Step) -> None: ...

    def step_finished(self, step: Step, outcome: StepOutcome) -> None: ...

    def notice(self, text: str) -> None: ...


def require_dir(path: Path) -> None:
    """Fail unless ``path`` is an existing directory."""
    if not path.is_dir():
        raise StepError(f"Failed to change directory to {path}!").with_context(path=str(path))


class DeploymentSequencer:
    """Runs the deployment steps in order, stopping at the first fatal failure.

    Parameters
    ----------
    config
        Deployment configuration.
    runner
        Command runner (built from ``config`` when omitted).
    containers
        Container manager (built from ``config`` and ``runner`` when omitted).
    listener
        Optional progress listener.

    Example::

        config = DeploymentConfig.from_env()
        result = DeploymentSequencer(config).run()
        raise SystemExit(result.exit_code)
    """

    def __init__(
        self,
        config: DeploymentConfig,
        runner: CommandRunner | None = None,
        containers: ContainerManager | None = None,
        listener: StepListener | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner(
            extra_path=config.extra_path,
            timeout=config.command_timeout,
        )
        self.containers = containers or ContainerManager(config.docker_bin, self.runner)
        self.listener = listener

    # ------------------------------------------------------------------
    # Step list
    # ------------------------------------------------------------------

    def build_steps(self) -> list[Step]:
        """Return the ordered deployment steps for the current config."""
        cfg = self.config
        root = cfg.project_root
        docker = self.containers
        client_severity = (
            Severity.BEST_EFFORT if cfg.tolerate_client_failures else Severity.FATAL
        )

        steps: list[Step] = [
            Step.call(
                "enter_project",
                "Navigating to the project directory...",
                lambda: require_dir(root),
                failure_message=f"Failed to change directory to {root}!",
            ),
        ]

        if cfg.git_pull:
            steps.append(
                Step.run(
                    "git_pull",
                    "Pulling latest changes from git...",
                    [cfg.git_bin, "pull"],
                    cwd=root,
                    failure_message="Git pull failed!",
                )
            )

        steps += [
            Step.run(
                "wasp_build",
                "Building the Wasp project...",
                [cfg.wasp_bin, "build"],
                cwd=root,
                failure_message="Wasp build failed!",
            ),
            Step.call(
                "create_uploads_dir",
                "Creating uploads directory on host...",
                lambda: cfg.uploads_dir.mkdir(parents=True, exist_ok=True),
                severity=Severity.BEST_EFFORT,
                failure_message="Failed to create uploads directory. It might already exist.",
            ),
            Step.run(
                "migrate_uploads",
                "Copying existing uploads from container to host...",
                docker.copy_from_command(
                    cfg.server_container, cfg.container_uploads_path, cfg.uploads_dir
                ),
                severity=Severity.BEST_EFFORT,
                when=lambda: docker.container_exists(cfg.server_container),
                failure_message="No existing uploads found or container not accessible.",
                capture=True,
            ),
        ]

        for name in (cfg.server_container, cfg.client_container):
            steps.append(
                Step.run(
                    f"stop_{self._role(name)}",
                    f"Stopping container {name}...",
                    docker.stop_command(name),
                    severity=Severity.BEST_EFFORT,
                    failure_message=f"Container {name} was not running.",
                    capture=True,
                )
            )
        for name in (cfg.server_container, cfg.client_container):
            steps.append(
                Step.run(
                    f"remove_{self._role(name)}",
                    f"Removing container {name}...",
                    docker.remove_command(name),
                    severity=Severity.BEST_EFFORT,
                    failure_message=f"Container {name} didn't exist.",
                    capture=True,
                )
            )

        if cfg.cleanup:
            steps += build_cleanup_steps(cfg, docker)

        add_hosts = [(cfg.host_gateway_alias, "host-gateway")]
        server_spec = ContainerRunSpec(
            name=cfg.server_container,
            image=cfg.server_image,
            network=cfg.network,
            ports=[(cfg.bind_address, cfg.server_port, cfg.server_port)],
            volumes=[(str(cfg.uploads_dir), cfg.container_uploads_path)],
            env_file=cfg.server_env_file,
            add_hosts=add_hosts,
        )
        client_spec = ContainerRunSpec(
            name=cfg.client_container,
            image=cfg.client_image,
            network=cfg.network,
            ports=[(cfg.bind_address, cfg.client_port, cfg.client_internal_port)],
            volumes=[
                (str(cfg.client_output_path), cfg.client_html_path),
                (str(cfg.uploads_dir), cfg.client_uploads_path),
            ],
            add_hosts=add_hosts,
        )

        steps += [
            Step.run(
                "create_network",
                f"Ensuring network {cfg.network} exists...",
                docker.network_create_command(cfg.network),
                severity=Severity.BEST_EFFORT,
                failure_message=f"Network {cfg.network} already exists.",
                capture=True,
            ),
            Step.call(
                "enter_server_build_dir",
                "Navigating to the build directory...",
                lambda: require_dir(cfg.server_build_path),
                failure_message=f"Failed to change directory to {cfg.build_dir}!",
            ),
            Step.run(
                "build_server_image",
                "Building the Docker image...",
                docker.build_image_command(cfg.server_image),
                cwd=cfg.server_build_path,
                failure_message="Docker build failed!",
            ),
            Step.run(
                "run_server",
                "Running the Docker container with uploads volume mount...",
                docker.run_command(server_spec),
                cwd=root,
                failure_message="Failed to run Docker container!",
            ),
            Step.call(
                "enter_web_app_dir",
                "Navigating to the web-app build directory...",
                lambda: require_dir(cfg.web_app_path),
                failure_message=f"Failed to change directory to {cfg.web_app_dir}!",
            ),
            Step.run(
                "npm_install",
                "Installing npm dependencies...",
                [cfg.npm_bin, "install"],
                cwd=cfg.web_app_path,
                failure_message="npm install failed!",
            ),
            Step.run(
                "build_web_app",
                "Building the React app...",
                [cfg.npm_bin, "run", "build"],
                cwd=cfg.web_app_path,
                env=self._client_env,
                failure_message="React build failed!",
            ),
            Step.call(
                "publish_client_assets",
                "Copying built files to the client directory...",
                self._publish_client_assets,
                failure_message="Failed to copy files!",
            ),
            Step.run(
                "build_client_image",
                "Building client Docker image...",
                docker.build_image_command(
                    cfg.client_image, dockerfile=cfg.client_dockerfile
                ),
                severity=client_severity,
                cwd=root,
                failure_message="Client Docker build failed!",
            ),
            Step.run(
                "run_client",
                "Starting client container...",
                docker.run_command(client_spec),
                severity=client_severity,
                cwd=root,
                failure_message="Failed to run client container!",
            ),
            Step.call(
                "report_completion",
                "Deployment and cleanup completed successfully!",
                self._report_completion,
                severity=Severity.BEST_EFFORT,
            ),
            Step.run(
                "disk_usage",
                "Docker disk usage:",
                docker.disk_usage_command(),
                severity=Severity.BEST_EFFORT,
            ),
        ]
        return steps

    def build_cleanup_steps(self) -> list[Step]:
        return build_cleanup_steps(self.config, self.containers)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, steps: list[Step] | None = None) -> DeploymentResult:
        """Execute ``steps`` (default: :meth:`build_steps`) in order.

        Returns
        -------
        DeploymentResult
            Outcomes in execution order. Steps after a fatal failure are
            never started and do not appear.
        """
        result = DeploymentResult(run_id=self.config.run_id)

        with LogContext(run_id=self.config.run_id):
            try:
                steps = self.build_steps() if steps is None else steps
                logger.info("sequence.started", steps=len(steps))
                for step in steps:
                    if self.listener is not None:
                        self.listener.step_started(step)
                    outcome = self.execute_step(step)
                    result.record(outcome)
                    if self.listener is not None:
                        self.listener.step_finished(step, outcome)
                    if outcome.status == StepStatus.FAILED:
                        logger.error("sequence.aborted", step=step.name, error=outcome.error)
                        break
            except Exception as e:
                result.error = str(e)
                logger.exception("sequence.error", error=str(e))

            result.mark_complete()
            logger.info(
                "sequence.complete",
                status=result.overall_status.value,
                summary=result.summary,
            )
        return result

    def cleanup(self) -> DeploymentResult:
        """Run only the cleanup routine."""
        return self.run(self.build_cleanup_steps())

    def execute_step(self, step: Step) -> StepOutcome:
        """Run a single step and classify the result."""
        start = time.perf_counter()
        command = step.describe() if step.command is not None else None
        returncode: int | None = None
        error: str | None = None

        logger.debug("step.started", step=step.name, severity=step.severity.value, command=command)
        try:
            if step.when is not None and not step.when():
                logger.info("step.skipped", step=step.name)
                return StepOutcome(
                    name=step.name,
                    severity=step.severity,
                    status=StepStatus.SKIPPED,
                    command=command,
                    duration_ms=(time.perf_counter() - start) * 1000,
                )
            if step.action is not None:
                step.action()
            elif step.command is not None:
                env = step.env() if step.env is not None else None
                proc = self.runner.run(step.command, cwd=step.cwd, env=env, capture=step.capture)
                returncode = proc.returncode
                if returncode != 0:
                    error = f"exit status {returncode}"
                    stderr = (proc.stderr or "").strip() if step.capture else ""
                    if stderr:
                        error += f": {stderr}"
        except (RedeployError, OSError) as exc:
            error = str(exc)

        duration_ms = (time.perf_counter() - start) * 1000
        if error is None:
            status = StepStatus.PASSED
            logger.info("step.passed", step=step.name, duration_ms=round(duration_ms))
        else:
            if step.failure_message:
                error = f"{step.failure_message} ({error})"
            status = StepStatus.FAILED if step.is_fatal else StepStatus.WARNED
            if step.is_fatal:
                logger.error("step.failed", step=step.name, error=error, returncode=returncode)
            else:
                logger.warning("step.warned", step=step.name, error=error, returncode=returncode)

        return StepOutcome(
            name=step.name,
            severity=step.severity,
            status=status,
            command=command,
            returncode=returncode,
            error=error,
            duration_ms=duration_ms,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _role(self, name: str) -> str:
        return "server" if name == self.config.server_container else "client"

    def _client_env(self) -> dict[str, str]:
        """Environment for ``npm run build``: client env file loaded, URL vars removed.

        A missing client env file is reported and the build runs without it.
        """
        cfg = self.config
        env_file: Path | None = cfg.client_env_path
        if not cfg.client_env_path.exists():
            logger.warning("client_env.missing", path=str(cfg.client_env_path))
            self._notify(f"{cfg.client_env_path} not found; building without client variables.")
            env_file = None
        env = build_client_env(
            self.runner.base_env(),
            env_file,
            unset=cfg.client_unset_vars,
        )
        logger.info(
            "client_env.loaded",
            path=str(cfg.client_env_path),
            unset=list(cfg.client_unset_vars),
        )
        for name in cfg.echo_client_vars:
            self._notify(f"{name}: {env.get(name, '')}")
        return env

    def _notify(self, text: str) -> None:
        if self.listener is not None:
            self.listener.notice(text)

    def _report_completion(self) -> None:
        cfg = self.config
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        logger.info("sequence.deployed", client_port=cfg.client_port, server_port=cfg.server_port)
        self._notify(f"Client container started successfully at {stamp}!")
        self._notify(f"Client available at: http://localhost:{cfg.client_port}")
        self._notify(
            f"API requests will be proxied to your existing backend at localhost:{cfg.server_port}"
        )

    def _publish_client_assets(self) -> None:
        """Replace the client output directory with the fresh web-app build."""
        source = self.config.web_build_path
        target = self.config.client_output_path
        if not source.is_dir():
            raise StepError(f"Build output {source} does not exist").with_context(path=str(source))
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(source, target)
        logger.info("client_assets.published", source=str(source), target=str(target))

"""Result models for a redeploy run.

Pydantic v2 models capturing what each step did and how the run ended.
``StepOutcome`` records one step; ``DeploymentResult`` collects them in
execution order and derives the overall status and process exit code in
``mark_complete()``.

Status rules:
    PASSED   every executed step passed or was skipped
    PARTIAL  no fatal failure, at least one best-effort step warned
    FAILED   a fatal step failed (``failed_step`` names it)
    ERROR    the run died outside any step (``error`` set)
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from redeploy.deploy.steps import Severity


class OverallStatus(str, Enum):
    """Overall status of a run."""

    PASSED = "PASSED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    ERROR = "ERROR"
    PENDING = "PENDING"


class StepStatus(str, Enum):
    """Outcome of a single step."""

    PASSED = "passed"
    FAILED = "failed"  # fatal step failed; run stopped here
    WARNED = "warned"  # best-effort step failed; run continued
    SKIPPED = "skipped"  # precondition not met


class StepOutcome(BaseModel):
    """What happened when one step ran."""

    name: str
    severity: Severity
    status: StepStatus
    command: str | None = None
    returncode: int | None = None
    error: str | None = None
    duration_ms: float = 0.0


class DeploymentResult(BaseModel):
    """Result of a full sequencer run."""

    run_id: str
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    steps: list[StepOutcome] = Field(default_factory=list)
    failed_step: str | None = None
    overall_status: OverallStatus = OverallStatus.PENDING
    exit_code: int | None = None
    error: str | None = None
    summary: str = ""

    @property
    def warnings(self) -> list[StepOutcome]:
        return [s for s in self.steps if s.status == StepStatus.WARNED]

    def record(self, outcome: StepOutcome) -> None:
        self.steps.append(outcome)
        if outcome.status == StepStatus.FAILED and self.failed_step is None:
            self.failed_step = outcome.name

    def mark_complete(self) -> None:
        """Finalize run: compute duration, status, exit code and summary."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

        if self.error:
            self.overall_status = OverallStatus.ERROR
        elif self.failed_step:
            self.overall_status = OverallStatus.FAILED
        elif self.warnings:
            self.overall_status = OverallStatus.PARTIAL
        else:
            self.overall_status = OverallStatus.PASSED

        self.exit_code = 0 if self.overall_status in (OverallStatus.PASSED, OverallStatus.PARTIAL) else 1

        passed = sum(1 for s in self.steps if s.status == StepStatus.PASSED)
        self.summary = (
            f"{passed}/{len(self.steps)} steps passed, "
            f"{len(self.warnings)} warnings in {self.duration_seconds:.1f}s"
        )
        if self.failed_step:
            self.summary += f" (stopped at {self.failed_step})"

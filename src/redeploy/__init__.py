"""redeploy - rebuild and replace a two-container web app on a single host."""

from redeploy.deploy import (
    DeploymentConfig,
    DeploymentResult,
    DeploymentSequencer,
    OverallStatus,
    Severity,
    Step,
    StepOutcome,
    StepStatus,
)

__version__ = "0.1.0"

__all__ = [
    "DeploymentConfig",
    "DeploymentResult",
    "DeploymentSequencer",
    "OverallStatus",
    "Severity",
    "Step",
    "StepOutcome",
    "StepStatus",
    "__version__",
]

"""Single-host server + client redeploys.

The package turns a deployment into an ordered list of typed steps and
runs them fail-fast:

- :mod:`redeploy.deploy.config` - ``DeploymentConfig``
- :mod:`redeploy.deploy.steps` - ``Step`` and ``Severity``
- :mod:`redeploy.deploy.sequencer` - ``DeploymentSequencer``
- :mod:`redeploy.deploy.container` - docker CLI commands and queries
- :mod:`redeploy.deploy.commands` - subprocess runner
- :mod:`redeploy.deploy.cleanup` - best-effort disk cleanup
- :mod:`redeploy.deploy.results` - ``DeploymentResult`` and ``StepOutcome``

Example:
    >>> from redeploy.deploy import DeploymentConfig, Severity
    >>> DeploymentConfig(prefix="demo").client_container
    'demo-client'
    >>> Severity.FATAL.value
    'fatal'
"""

from __future__ import annotations

from redeploy.deploy.config import DeploymentConfig
from redeploy.deploy.results import DeploymentResult, OverallStatus, StepOutcome, StepStatus
from redeploy.deploy.sequencer import DeploymentSequencer, StepListener
from redeploy.deploy.steps import Severity, Step

__all__ = [
    "DeploymentConfig",
    "DeploymentResult",
    "DeploymentSequencer",
    "OverallStatus",
    "Severity",
    "Step",
    "StepListener",
    "StepOutcome",
    "StepStatus",
]

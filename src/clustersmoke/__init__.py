"""
clustersmoke: Smoke Tests for Cluster Deployments
=================================================

Verifies that services deployed to a Kubernetes cluster are reachable and
healthy, and that CI / pull-request automation is in the expected state.

Core modules:
- models: Pydantic v2 data structures (TunnelHandle, CheckResult, RunState)
- config: YAML configuration loader with defaults and env overrides
- lifecycle: ProcessRegistry and the run-scoped SignalGuard
- retry: Bounded polling used for readiness waits
- cluster: kubectl existence queries
- tunnel: port-forward lifecycle (spawn, readiness wait, teardown)
- probe: HTTP GET + substring validation
- orchestrator: One reachability check with guaranteed tunnel cleanup
- aggregator: Final summary and exit status
- github: Workflow / PR checks through the gh CLI
- runner: Wires a whole run
"""

from clustersmoke.aggregator import ResultAggregator
from clustersmoke.cluster import ResourceExistenceChecker
from clustersmoke.config import load_config
from clustersmoke.errors import (
    SignalGuardError,
    SmokeError,
    TunnelError,
    TunnelSpawnFailure,
    TunnelTimeout,
)
from clustersmoke.github import GitHubChecks
from clustersmoke.lifecycle import ProcessRegistry, SignalGuard
from clustersmoke.models import (
    CheckKind,
    CheckResult,
    ReachabilitySpec,
    RunState,
    TunnelHandle,
    TunnelStatus,
)
from clustersmoke.orchestrator import CheckOrchestrator, CheckStage
from clustersmoke.output import ConsoleSink, OutputKind, OutputSink
from clustersmoke.probe import HttpProbe
from clustersmoke.retry import poll_until
from clustersmoke.runner import SmokeRun, run_smoke_test
from clustersmoke.tunnel import KubectlForwarder, TunnelManager, is_port_bound

__version__ = "0.1.0"

__all__ = [
    # Models
    "CheckKind",
    "CheckResult",
    "ReachabilitySpec",
    "RunState",
    "TunnelHandle",
    "TunnelStatus",
    # Errors
    "SignalGuardError",
    "SmokeError",
    "TunnelError",
    "TunnelSpawnFailure",
    "TunnelTimeout",
    # Components
    "CheckOrchestrator",
    "CheckStage",
    "ConsoleSink",
    "GitHubChecks",
    "HttpProbe",
    "KubectlForwarder",
    "OutputKind",
    "OutputSink",
    "ProcessRegistry",
    "ResourceExistenceChecker",
    "ResultAggregator",
    "SignalGuard",
    "SmokeRun",
    "TunnelManager",
    # Functions
    "is_port_bound",
    "load_config",
    "poll_until",
    "run_smoke_test",
]

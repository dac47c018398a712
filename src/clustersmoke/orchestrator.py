"""
Check Orchestrator
==================

Composes one reachability check:

    init -> namespace_check -> service_check -> tunnel_open -> http_probe -> done

The first failing stage short-circuits to ``done`` with the matching
CheckKind. Once a tunnel is open it is closed before ``check_reachable``
returns, whatever the probe outcome. Every completed invocation is recorded
in the caller's RunState exactly once.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from clustersmoke.cluster.kubectl import ResourceExistenceChecker
from clustersmoke.errors import TunnelSpawnFailure, TunnelTimeout
from clustersmoke.models import CheckKind, CheckResult, ReachabilitySpec, RunState
from clustersmoke.output import OutputKind, OutputSink
from clustersmoke.probe.http import HttpProbe
from clustersmoke.tunnel.manager import TunnelManager

logger = logging.getLogger("clustersmoke.orchestrator")

# Longest response excerpt echoed back on a content mismatch.
MAX_ECHOED_RESPONSE = 500


class CheckStage(str, Enum):
    INIT = "init"
    NAMESPACE_CHECK = "namespace_check"
    SERVICE_CHECK = "service_check"
    TUNNEL_OPEN = "tunnel_open"
    HTTP_PROBE = "http_probe"
    DONE = "done"


class CheckOrchestrator:
    """Runs reachability checks one after another against a cluster."""

    def __init__(
        self,
        cluster: ResourceExistenceChecker,
        tunnels: TunnelManager,
        probe: HttpProbe,
        sink: OutputSink,
        *,
        health_path: str = "/healthz",
    ):
        self.cluster = cluster
        self.tunnels = tunnels
        self.probe = probe
        self.sink = sink
        self.health_path = health_path if health_path.startswith("/") else f"/{health_path}"
        self.stage = CheckStage.INIT

    async def check_reachable(
        self,
        run_state: RunState,
        service: str,
        namespace: str,
        local_port: int,
        remote_port: int = 80,
        label: Optional[str] = None,
        expected: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> CheckResult:
        """Verify ``service`` answers on its health endpoint through a tunnel.

        Args:
            run_state: Accounting for the current run; updated exactly once.
            service: Kubernetes service name.
            namespace: Namespace the service lives in.
            local_port: Local end of the port-forward. Must not be reused by
                a concurrent check.
            remote_port: Service port to forward to.
            label: Human readable environment name (defaults to ``service``).
            expected: Substring the response must contain
                (defaults to ``"Hostname: <service>"``).
            hint: Remediation hint shown on absence or content mismatch.

        Returns:
            The immutable CheckResult that was recorded.
        """
        label = label or service
        expected = expected if expected is not None else f"Hostname: {service}"
        check_id = f"check_reachable:{namespace}/{service}"

        self.stage = CheckStage.INIT
        self.sink.emit(OutputKind.SECTION, f"Checking {label} Environment")
        result = await self._run_stages(
            service, namespace, local_port, remote_port, label, expected, hint, check_id
        )
        self.stage = CheckStage.DONE
        run_state.record(result)
        logger.info(
            "Check %s finished: %s (passed=%d failed=%d)",
            check_id,
            result.kind.value,
            run_state.passed_count,
            run_state.failed_count,
        )
        return result

    async def check_spec(self, run_state: RunState, spec: ReachabilitySpec) -> CheckResult:
        return await self.check_reachable(
            run_state,
            spec.service,
            spec.namespace,
            spec.local_port,
            spec.remote_port,
            label=spec.label,
            expected=spec.expected,
            hint=spec.hint,
        )

    async def _run_stages(
        self,
        service: str,
        namespace: str,
        local_port: int,
        remote_port: int,
        label: str,
        expected: str,
        hint: Optional[str],
        check_id: str,
    ) -> CheckResult:
        def fail(kind: CheckKind, message: str, with_hint: bool = True) -> CheckResult:
            return self._failed(kind, label, message, hint if with_hint else None, check_id)

        self.stage = CheckStage.NAMESPACE_CHECK
        if not await self.cluster.namespace_exists(namespace):
            return fail(CheckKind.RESOURCE_ABSENT, f"Namespace '{namespace}' does not exist")
        self.sink.emit(OutputKind.SUCCESS, f"Namespace '{namespace}' exists")

        self.stage = CheckStage.SERVICE_CHECK
        if not await self.cluster.service_exists(service, namespace):
            return fail(
                CheckKind.RESOURCE_ABSENT,
                f"Service '{service}' not found in namespace '{namespace}'",
            )
        self.sink.emit(OutputKind.SUCCESS, f"Service '{service}' exists")

        self.stage = CheckStage.TUNNEL_OPEN
        self.sink.emit(OutputKind.STEP, f"Setting up port-forward on localhost:{local_port}...")
        try:
            handle = await self.tunnels.open(service, namespace, local_port, remote_port)
        except TunnelTimeout as e:
            logger.warning("%s: %s", check_id, e)
            return fail(CheckKind.TUNNEL_TIMEOUT, "Port-forward failed to establish", with_hint=False)
        except TunnelSpawnFailure as e:
            logger.error("%s: %s", check_id, e)
            return fail(CheckKind.TUNNEL_SPAWN_FAILURE, f"Port-forward could not be started: {e}", with_hint=False)

        try:
            self.stage = CheckStage.HTTP_PROBE
            url = f"http://localhost:{local_port}{self.health_path}"
            self.sink.emit(OutputKind.STEP, "Testing health endpoint...")
            body = await self.probe.fetch(url)

            if not body:
                return fail(
                    CheckKind.CONNECTION_FAILURE,
                    "No response from service (connection failed)",
                    with_hint=False,
                )
            if not self.probe.validate(body, expected):
                result = fail(CheckKind.CONTENT_MISMATCH, "Service responded but with unexpected content")
                self.sink.emit(OutputKind.INFO, f"📝 Actual response: {body[:MAX_ECHOED_RESPONSE]}")
                return result

            message = f"{label} environment is healthy!"
            self.sink.emit(OutputKind.SUCCESS, message)
            return CheckResult(kind=CheckKind.SUCCESS, label=label, message=message, check_id=check_id)
        finally:
            await self.tunnels.close(handle)

    def _failed(
        self,
        kind: CheckKind,
        label: str,
        message: str,
        hint: Optional[str],
        check_id: str,
    ) -> CheckResult:
        self.sink.emit(OutputKind.ERROR, message)
        if hint:
            self.sink.emit(OutputKind.HINT, hint)
        return CheckResult(kind=kind, label=label, message=message, hint=hint, check_id=check_id)

"""
Run Driver
==========

Wires one smoke-test run: a fresh RunState and ProcessRegistry, the signal
guard around every check, then a single summary.

Reachability checks run first, then GitHub workflow and PR checks, strictly
one after another. An interruption stops scheduling further checks; the
check in flight unwinds through its ``finally`` blocks (closing its tunnel),
the guard drains whatever is still registered, and the run exits with
``128 + signum`` instead of the summary's status.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from clustersmoke.aggregator import ResultAggregator
from clustersmoke.audit import SmokeAuditLog
from clustersmoke.cluster.kubectl import ResourceExistenceChecker
from clustersmoke.config import pull_request_specs, reachability_specs, workflow_specs
from clustersmoke.github import GitHubChecks
from clustersmoke.lifecycle.guard import SignalGuard
from clustersmoke.lifecycle.registry import ProcessRegistry
from clustersmoke.models import ReachabilitySpec, RunState
from clustersmoke.orchestrator import CheckOrchestrator
from clustersmoke.output import ConsoleSink, OutputKind, OutputSink
from clustersmoke.probe.http import HttpProbe
from clustersmoke.tunnel.manager import TunnelManager

logger = logging.getLogger("clustersmoke.runner")


class SmokeRun:
    """One execution of the smoke test: checks, cleanup guard, summary."""

    def __init__(
        self,
        config: dict,
        *,
        sink: Optional[OutputSink] = None,
        cluster: Optional[ResourceExistenceChecker] = None,
        tunnels: Optional[TunnelManager] = None,
        probe: Optional[HttpProbe] = None,
        github: Optional[GitHubChecks] = None,
        inspect_on_failure: bool = True,
    ):
        self.config = config
        self.sink = sink or ConsoleSink()
        self.run_state = RunState()
        self.registry = tunnels.registry if tunnels is not None else ProcessRegistry()
        self.guard = SignalGuard(self.registry)

        probe_cfg = config.get("probe", {})
        self.cluster = cluster or ResourceExistenceChecker.from_config(config)
        self.tunnels = tunnels or TunnelManager.from_config(config, self.registry)
        self.probe = probe or HttpProbe(timeout=float(probe_cfg.get("timeout_seconds", 5.0)))
        self.orchestrator = CheckOrchestrator(
            self.cluster,
            self.tunnels,
            self.probe,
            self.sink,
            health_path=probe_cfg.get("health_path", "/healthz"),
        )

        gh_cfg = config.get("github", {})
        self.github = github or GitHubChecks(
            self.run_state,
            self.sink,
            gh=gh_cfg.get("gh", "gh"),
            timeout=float(gh_cfg.get("query_timeout_seconds", 30.0)),
        )

        summary_cfg = config.get("summary", {})
        apps_namespace = config.get("cluster", {}).get("applications_namespace", "argocd")
        self.aggregator = ResultAggregator(
            self.run_state,
            self.sink,
            inspect=(lambda: self.cluster.list_applications(apps_namespace)) if inspect_on_failure else None,
            success_message=summary_cfg.get("success_message", "You've successfully completed this level!"),
            next_steps=summary_cfg.get("next_steps") or (),
        )

        self.audit: Optional[SmokeAuditLog] = None

    async def execute(self, extra_checks: Sequence[ReachabilitySpec] = ()) -> int:
        """Run every configured check and return the process exit code.

        Raises:
            SignalGuardError: Signal handlers could not be installed; no
                tunnel has been opened yet.
            pydantic.ValidationError: A configured check entry is invalid.
        """
        checks = reachability_specs(self.config) + list(extra_checks)
        workflows = workflow_specs(self.config)
        pull_requests = pull_request_specs(self.config)

        audit_path = self.config.get("logging", {}).get("audit_log")
        if audit_path:
            self.audit = SmokeAuditLog(audit_path)
            self.audit.run_started(len(checks) + len(workflows) + len(pull_requests))

        try:
            self.guard.install()
            try:
                await self._run_checks(checks, workflows, pull_requests)
            except asyncio.CancelledError:
                if not self.guard.interrupted:
                    raise
                task = asyncio.current_task()
                if task is not None:
                    task.uncancel()
                self.sink.emit(OutputKind.ERROR, "Run interrupted; remaining checks skipped")
            finally:
                self.guard.release()

            if self.guard.interrupted:
                # No drill-down after an interruption; just report what completed.
                self.aggregator.inspect = None
            exit_code, _ = await self.aggregator.summarize()
            if self.guard.exit_code is not None:
                exit_code = self.guard.exit_code

            if self.audit:
                self.audit.run_finished(self.run_state, exit_code, interrupted=self.guard.interrupted)
            return exit_code
        finally:
            if self.audit:
                self.audit.close()

    async def _run_checks(self, checks, workflows, pull_requests) -> None:
        for spec in checks:
            result = await self.orchestrator.check_spec(self.run_state, spec)
            if self.audit:
                self.audit.check_finished(result)

        for workflow in workflows:
            await self.github.workflow_succeeded(workflow.file, workflow.name, workflow.hint)

        for pr_spec in pull_requests:
            pr = await self.github.pr_with_label(pr_spec.label, pr_spec.name, pr_spec.hint)
            for comment in pr_spec.comments:
                await self.github.pr_has_comment(
                    pr.number if pr else None, comment.pattern, comment.name, comment.hint
                )


async def run_smoke_test(
    config: dict,
    extra_checks: Sequence[ReachabilitySpec] = (),
    **kwargs,
) -> int:
    """Build a SmokeRun from ``config`` and execute it. Returns the exit code."""
    return await SmokeRun(config, **kwargs).execute(extra_checks)

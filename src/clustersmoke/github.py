"""
GitHub Automation Checks
========================

Verifies CI / pull-request state through the ``gh`` CLI. JSON output from
``gh --json`` is parsed directly. Each check records exactly one result into
the run's RunState, using the same accounting as the reachability checks.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from clustersmoke.models import CheckKind, CheckResult, PullRequest, RunState
from clustersmoke.output import OutputKind, OutputSink
from clustersmoke.shell import run_command

logger = logging.getLogger("clustersmoke.github")


class GitHubChecks:
    """Workflow and PR assertions backed by ``gh``."""

    def __init__(
        self,
        run_state: RunState,
        sink: OutputSink,
        gh: str = "gh",
        timeout: float = 30.0,
    ):
        self.run_state = run_state
        self.sink = sink
        self.gh = gh
        self.timeout = timeout

    async def workflow_succeeded(self, workflow_file: str, display_name: str, hint: str = "") -> bool:
        """Check that ``workflow_file`` has at least one successful run."""
        self.sink.emit(OutputKind.SECTION, f"Checking {display_name} workflow...")
        data = await self._gh_json(
            "run", "list",
            f"--workflow={workflow_file}",
            "--status=success",
            "--limit=1",
            "--json", "databaseId",
        )
        run_id = data[0].get("databaseId") if isinstance(data, list) and data else None

        check_id = f"check_workflow_succeeded:{workflow_file}"
        if run_id is None:
            return self._record_failure(
                display_name, f"{display_name} workflow has not succeeded yet", hint, check_id
            )
        return self._record_success(display_name, f"{display_name} workflow has succeeded", check_id)

    async def pr_with_label(self, label: str, display_name: str, hint: str = "") -> Optional[PullRequest]:
        """Return the first open PR carrying ``label``, or None."""
        self.sink.emit(OutputKind.SECTION, f"Checking if {display_name} PR exists...")
        data = await self._gh_json("pr", "list", f"--label={label}", "--json", "number,title")

        check_id = f"check_pr_exists_with_label:{label}"
        if not isinstance(data, list) or not data:
            self._record_failure(display_name, f"No PR with '{label}' label found", hint, check_id)
            return None

        pr = PullRequest.model_validate(data[0])
        self._record_success(display_name, f"{display_name} PR found: #{pr.number} - {pr.title}", check_id)
        return pr

    async def pr_has_comment(
        self,
        pr_number: Optional[int],
        pattern: str,
        display_name: str,
        hint: str = "",
    ) -> bool:
        """Check that PR ``pr_number`` has a comment matching regex ``pattern``."""
        self.sink.emit(OutputKind.SECTION, f"Checking {display_name}...")
        check_id = f"check_pr_has_comment:{display_name}"

        if pr_number is None:
            return self._record_failure(
                display_name, "Cannot check PR comments - no PR number provided", "", check_id
            )

        data = await self._gh_json("pr", "view", str(pr_number), "--comments", "--json", "comments")
        comments = data.get("comments", []) if isinstance(data, dict) else []
        try:
            matcher = re.compile(pattern)
        except re.error as e:
            return self._record_failure(
                display_name, f"Invalid comment pattern {pattern!r}: {e}", hint, check_id
            )
        matches = sum(1 for c in comments if matcher.search(c.get("body") or ""))

        if matches == 0:
            return self._record_failure(display_name, f"PR is missing {display_name}", hint, check_id)
        return self._record_success(display_name, f"PR has {display_name}", check_id)

    async def _gh_json(self, *args: str) -> Any:
        result = await run_command(self.gh, *args, timeout=self.timeout)
        if not result.ok or not result.stdout:
            if not result.ok:
                logger.info("gh %s failed: %s", " ".join(args[:2]), result.stderr)
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            logger.warning("gh %s returned invalid JSON: %s", " ".join(args[:2]), e)
            return None

    def _record_success(self, label: str, message: str, check_id: str) -> bool:
        self.sink.emit(OutputKind.SUCCESS, message)
        self.run_state.record(
            CheckResult(kind=CheckKind.SUCCESS, label=label, message=message, check_id=check_id)
        )
        return True

    def _record_failure(self, label: str, message: str, hint: str, check_id: str) -> bool:
        self.sink.emit(OutputKind.ERROR, message)
        if hint:
            self.sink.emit(OutputKind.HINT, hint)
        self.run_state.record(
            CheckResult(
                kind=CheckKind.RESOURCE_ABSENT,
                label=label,
                message=message,
                hint=hint or None,
                check_id=check_id,
            )
        )
        return False

"""Final outcome of a run: exit status plus a human readable report."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence

from clustersmoke.models import RunState
from clustersmoke.output import OutputKind, OutputSink

logger = logging.getLogger("clustersmoke.aggregator")

InspectCallback = Callable[[], Awaitable[str]]


class ResultAggregator:
    """Summarizes a RunState exactly once.

    On failure an optional inspection callback (for example listing the
    Argo CD applications) is awaited and its output appended to the report.
    """

    def __init__(
        self,
        run_state: RunState,
        sink: OutputSink,
        *,
        inspect: Optional[InspectCallback] = None,
        inspect_title: str = "ArgoCD Applications",
        success_message: str = "You've successfully completed this level!",
        next_steps: Sequence[str] = (),
    ):
        self.run_state = run_state
        self.sink = sink
        self.inspect = inspect
        self.inspect_title = inspect_title
        self.success_message = success_message
        self.next_steps = list(next_steps)
        self._summarized = False

    async def summarize(self) -> tuple[int, str]:
        """Return ``(exit_code, report)``; exit code is 0 iff nothing failed.

        Raises:
            RuntimeError: If the run was already summarized.
        """
        if self._summarized:
            raise RuntimeError("Run summary already produced")
        self._summarized = True

        state = self.run_state
        lines: list[str] = []

        def out(kind: OutputKind, text: str) -> None:
            self.sink.emit(kind, text)
            lines.append(text)

        out(OutputKind.HEADER, "Test Results Summary")
        if state.all_passed:
            out(OutputKind.SUCCESS, f"🎉 SUCCESS! All checks passed ({state.passed_count}/{state.completed})")
            out(OutputKind.INFO, self.success_message)
            if self.next_steps:
                out(OutputKind.INFO, "📋 Next Steps:")
                for step in self.next_steps:
                    out(OutputKind.INFO, f"  {step}")
            exit_code = 0
        else:
            out(
                OutputKind.ERROR,
                f"FAILED: {state.failed_count} check(s) failed, {state.passed_count} passed",
            )
            for check_id in state.failed_check_ids:
                out(OutputKind.INFO, f"- {check_id}")
            out(OutputKind.INFO, "Please review the errors above and try again.")
            out(
                OutputKind.INFO,
                "Need help? Check the challenge documentation or review your configuration.",
            )
            await self._run_inspection(out)
            exit_code = 1

        logger.info(
            "Run summary: exit=%d passed=%d failed=%d",
            exit_code,
            state.passed_count,
            state.failed_count,
        )
        return exit_code, "\n".join(lines)

    async def _run_inspection(self, out: Callable[[OutputKind, str], None]) -> None:
        if self.inspect is None:
            return
        try:
            text = await self.inspect()
        except Exception as e:
            logger.warning("Inspection callback failed: %s", e)
            text = ""
        if not text:
            out(OutputKind.ERROR, f"Failed to retrieve {self.inspect_title.lower()}")
            return
        out(OutputKind.SECTION, f"{self.inspect_title}:")
        for line in text.splitlines():
            out(OutputKind.INFO, line)

"""Bounded-time execution of read-only CLI queries (kubectl, gh)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger("clustersmoke.shell")


@dataclass
class CommandResult:
    """Exit status and decoded output of one CLI invocation."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# Returned when the binary is missing or the query timed out.
_FAILED = -1


async def run_command(*argv: str, timeout: float = 15.0) -> CommandResult:
    """Run ``argv`` and capture its output, never raising for query failures.

    A missing binary, a launch error or exceeding ``timeout`` all produce a
    result with ``returncode == -1`` and the reason in ``stderr``.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("Could not run %s: %s", argv[0], e)
        return CommandResult(returncode=_FAILED, stderr=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error("%s timed out after %.1fs", " ".join(argv), timeout)
        return CommandResult(returncode=_FAILED, stderr=f"timed out after {timeout}s")
    except asyncio.CancelledError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise

    result = CommandResult(
        returncode=proc.returncode if proc.returncode is not None else _FAILED,
        stdout=stdout.decode(errors="replace").strip() if stdout else "",
        stderr=stderr.decode(errors="replace").strip() if stderr else "",
    )
    logger.debug("%s exited with %d", " ".join(argv), result.returncode)
    return result

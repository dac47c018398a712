"""Bookkeeping for background tunnel processes spawned during a run."""

from __future__ import annotations

import logging
import os
import signal
from typing import Callable

logger = logging.getLogger("clustersmoke.lifecycle")


def terminate_pid(pid: int) -> None:
    """Send SIGTERM to ``pid``."""
    os.kill(pid, signal.SIGTERM)


class ProcessRegistry:
    """Tracks live forwarder pids and terminates them in bulk.

    Pids are added at spawn time, before readiness is known, and removed
    exactly once: either by ``terminate`` when a tunnel closes or by
    ``cleanup`` when the run ends. Termination errors (process already gone,
    no permission) are logged and swallowed.
    """

    def __init__(self, killer: Callable[[int], None] = terminate_pid):
        self._killer = killer
        self._live: set[int] = set()

    def register(self, pid: int) -> None:
        self._live.add(pid)
        logger.debug("Registered forwarder pid %d", pid)

    def __contains__(self, pid: int) -> bool:
        return pid in self._live

    def __len__(self) -> int:
        return len(self._live)

    @property
    def live_pids(self) -> frozenset[int]:
        return frozenset(self._live)

    def terminate(self, pid: int) -> bool:
        """Terminate and forget one tracked pid.

        Returns False without doing anything if ``pid`` is no longer tracked,
        e.g. because ``cleanup`` already drained it.
        """
        if pid not in self._live:
            return False
        self._live.discard(pid)
        self._kill(pid)
        return True

    def cleanup(self) -> None:
        """Terminate every tracked pid. Never raises; safe to call repeatedly."""
        if not self._live:
            return
        pids = sorted(self._live)
        self._live.clear()
        logger.info("Terminating %d leftover forwarder process(es): %s", len(pids), pids)
        for pid in pids:
            self._kill(pid)

    def _kill(self, pid: int) -> None:
        try:
            self._killer(pid)
        except ProcessLookupError:
            logger.debug("Forwarder pid %d already exited", pid)
        except OSError as e:
            logger.warning("Could not terminate forwarder pid %d: %s", pid, e)

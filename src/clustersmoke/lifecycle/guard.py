"""Run-scoped cleanup guard.

The guard owns the run's ProcessRegistry. It is released exactly once:
from the run's ``finally`` block, or from ``atexit`` if the interpreter is
shutting down without reaching it. SIGINT / SIGTERM do not exit directly;
they cancel the guarded task so the normal unwinding path (tunnel
``finally`` blocks, then ``release``) runs, and the signal is remembered so
the run can exit with ``128 + signum``.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import signal
from typing import Iterable

from clustersmoke.errors import SignalGuardError
from clustersmoke.lifecycle.registry import ProcessRegistry

logger = logging.getLogger("clustersmoke.lifecycle")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalGuard:
    """Drains a ProcessRegistry on normal exit, interruption and termination."""

    def __init__(
        self,
        registry: ProcessRegistry,
        signals: Iterable[int] = DEFAULT_SIGNALS,
    ):
        self.registry = registry
        self._signals = tuple(signals)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._installed = False
        self._released = False
        self.received: int | None = None

    async def __aenter__(self) -> "SignalGuard":
        self.install()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    def install(self) -> None:
        """Hook the running loop's signal handling and ``atexit``.

        Must be called from the task that runs the checks; that task is the
        one cancelled when a signal arrives.

        Raises:
            SignalGuardError: No running loop, or the platform / thread does
                not allow installing signal handlers.
        """
        if self._installed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SignalGuardError("SignalGuard.install() requires a running event loop") from e

        added: list[int] = []
        try:
            for sig in self._signals:
                loop.add_signal_handler(sig, self._on_signal, sig)
                added.append(sig)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            for sig in added:
                loop.remove_signal_handler(sig)
            raise SignalGuardError(f"Cannot install signal handlers: {e}") from e

        self._loop = loop
        self._task = asyncio.current_task()
        atexit.register(self.release)
        self._installed = True
        logger.debug("Signal guard installed for %s", [signal.Signals(s).name for s in self._signals])

    @property
    def interrupted(self) -> bool:
        return self.received is not None

    @property
    def exit_code(self) -> int | None:
        """Shell-style exit status for the received signal, if any."""
        if self.received is None:
            return None
        return 128 + self.received

    def _on_signal(self, signum: int) -> None:
        sig_name = signal.Signals(signum).name
        if self.received is not None:
            # Second signal: stop waiting for graceful unwinding.
            logger.warning("Received %s again, terminating forwarders now", sig_name)
            self.registry.cleanup()
            return
        self.received = signum
        logger.warning("Received %s, shutting down...", sig_name)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def release(self) -> None:
        """Drain the registry and unhook signal handlers. Idempotent."""
        if self._released:
            return
        self._released = True
        self.registry.cleanup()
        if self._installed:
            atexit.unregister(self.release)
            if self._loop is not None and not self._loop.is_closed():
                for sig in self._signals:
                    self._loop.remove_signal_handler(sig)

"""
Tunnel Manager
==============

Owns the full lifecycle of one ``kubectl port-forward`` tunnel: spawn,
bounded readiness wait, teardown.

The forwarder pid is registered with the run's ProcessRegistry as soon as
the process exists, so a readiness timeout or an interruption during the
wait can never leak it.

Known limitation: after a tunnel is closed the manager waits a fixed grace
period (``close_grace_ms``) before returning. This lowers the chance that the
next check finds the local port still held by the OS, but it is a heuristic,
not a guarantee that the port has been released. A forwarder that exits
because the port is taken is reported as a spawn failure, but only if its
exit is observed before the port is first seen bound.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol

from clustersmoke.errors import TunnelSpawnFailure, TunnelTimeout
from clustersmoke.lifecycle.registry import ProcessRegistry
from clustersmoke.models import TunnelHandle, TunnelStatus
from clustersmoke.retry import poll_until
from clustersmoke.tunnel.ports import is_port_bound

logger = logging.getLogger("clustersmoke.tunnel")


class ForwardProcess(Protocol):
    pid: int
    returncode: Optional[int]

    async def wait(self) -> int: ...

    def kill(self) -> None: ...


class Forwarder(Protocol):
    async def start(
        self, local_port: int, remote_port: int, target: str, namespace: str
    ) -> ForwardProcess: ...


class KubectlForwarder:
    """Starts ``kubectl port-forward`` as a background process."""

    def __init__(self, kubectl: str = "kubectl"):
        self.kubectl = kubectl

    async def start(
        self, local_port: int, remote_port: int, target: str, namespace: str
    ) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(
            self.kubectl,
            "port-forward",
            target,
            f"{local_port}:{remote_port}",
            "-n",
            namespace,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )


class TunnelManager:
    """Opens and closes one tunnel at a time on behalf of a reachability check."""

    def __init__(
        self,
        registry: ProcessRegistry,
        forwarder: Optional[Forwarder] = None,
        *,
        port_probe: Optional[Callable[[int], bool]] = None,
        bind_host: str = "127.0.0.1",
        max_wait_attempts: int = 10,
        poll_interval_ms: int = 500,
        close_grace_ms: int = 500,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.forwarder = forwarder or KubectlForwarder()
        self.port_probe = port_probe or partial(is_port_bound, host=bind_host)
        self.max_wait_attempts = max_wait_attempts
        self.poll_interval_ms = poll_interval_ms
        self.close_grace_ms = close_grace_ms
        self._sleep = sleep
        self._processes: dict[int, ForwardProcess] = {}

    @classmethod
    def from_config(cls, config: dict, registry: ProcessRegistry) -> "TunnelManager":
        tunnel = config.get("tunnel", {})
        cluster = config.get("cluster", {})
        return cls(
            registry,
            KubectlForwarder(cluster.get("kubectl", "kubectl")),
            bind_host=tunnel.get("bind_host", "127.0.0.1"),
            max_wait_attempts=int(tunnel.get("max_wait_attempts", 10)),
            poll_interval_ms=int(tunnel.get("poll_interval_ms", 500)),
            close_grace_ms=int(tunnel.get("close_grace_ms", 500)),
        )

    async def open(
        self,
        service: str,
        namespace: str,
        local_port: int,
        remote_port: int,
        max_wait_attempts: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> TunnelHandle:
        """Spawn a forwarder and wait until ``local_port`` is bound.

        Raises:
            TunnelSpawnFailure: The forwarder process could not be started
                (nothing was registered), or it exited before the port was
                bound (it has been reaped).
            TunnelTimeout: The port was not bound within the attempt budget.
                The forwarder has been killed.
        """
        attempts = self.max_wait_attempts if max_wait_attempts is None else max_wait_attempts
        interval_ms = self.poll_interval_ms if poll_interval_ms is None else poll_interval_ms
        target = f"svc/{service}"

        try:
            proc = await self.forwarder.start(local_port, remote_port, target, namespace)
        except OSError as e:
            raise TunnelSpawnFailure(
                f"Could not start port-forward to {target} in namespace '{namespace}': {e}"
            ) from e

        self.registry.register(proc.pid)
        self._processes[proc.pid] = proc
        handle = TunnelHandle(
            pid=proc.pid,
            local_port=local_port,
            remote_port=remote_port,
            service=service,
            namespace=namespace,
        )
        logger.info(
            "Port-forward %s %d:%d in %s started (pid %d)",
            target,
            local_port,
            remote_port,
            namespace,
            proc.pid,
        )

        def forwarding() -> bool:
            if proc.returncode is not None:
                raise TunnelSpawnFailure(
                    f"Port-forward to {target} exited with code {proc.returncode} "
                    f"before binding localhost:{local_port}"
                )
            return self.port_probe(local_port)

        try:
            ready = await poll_until(
                forwarding,
                attempts=attempts,
                interval=interval_ms / 1000,
                sleep=self._sleep,
            )
        except BaseException:
            await self._abandon(handle)
            raise

        if not ready:
            await self._abandon(handle)
            raise TunnelTimeout(
                f"Port-forward to {target} did not bind localhost:{local_port} "
                f"after {attempts} attempt(s) at {interval_ms}ms"
            )

        handle.advance(TunnelStatus.READY)
        logger.debug("Port-forward pid %d ready on localhost:%d", handle.pid, local_port)
        return handle

    async def close(self, handle: TunnelHandle) -> None:
        """Terminate a ready tunnel, mark it closed, then wait the grace period."""
        if handle.status != TunnelStatus.READY:
            return
        await self._stop(handle)
        handle.advance(TunnelStatus.CLOSED)
        logger.info("Port-forward pid %d closed", handle.pid)
        await self._sleep(self.close_grace_ms / 1000)

    @asynccontextmanager
    async def tunnel(
        self,
        service: str,
        namespace: str,
        local_port: int,
        remote_port: int,
        **kwargs,
    ) -> AsyncIterator[TunnelHandle]:
        """``async with`` form of open/close; the tunnel is closed on every exit path."""
        handle = await self.open(service, namespace, local_port, remote_port, **kwargs)
        try:
            yield handle
        finally:
            await self.close(handle)

    async def _abandon(self, handle: TunnelHandle) -> None:
        handle.advance(TunnelStatus.FAILED)
        await self._stop(handle)
        logger.warning("Port-forward pid %d abandoned before becoming ready", handle.pid)

    async def _stop(self, handle: TunnelHandle) -> None:
        self.registry.terminate(handle.pid)
        proc = self._processes.pop(handle.pid, None)
        if proc is None:
            return
        # Reap the child so it does not linger as a zombie.
        try:
            await asyncio.wait_for(proc.wait(), timeout=max(self.close_grace_ms / 1000, 0.1))
        except asyncio.TimeoutError:
            logger.warning("Port-forward pid %d ignored SIGTERM, killing it", handle.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()

"""Test doubles for the cluster, forwarder, probe and output sink."""

from __future__ import annotations

import asyncio
from typing import Optional

from clustersmoke.output import OutputKind
from clustersmoke.probe.http import HttpProbe


class RecordingSink:
    """OutputSink that keeps every (kind, text) pair."""

    def __init__(self):
        self.messages: list[tuple[OutputKind, str]] = []

    def emit(self, kind: OutputKind, text: str) -> None:
        self.messages.append((kind, text))

    def texts(self, kind: OutputKind) -> list[str]:
        return [text for k, text in self.messages if k == kind]

    @property
    def all_text(self) -> str:
        return "\n".join(text for _, text in self.messages)


class FakeProcess:
    """Forwarder process stand-in.

    ``returncode`` set at creation simulates a forwarder that exited at once.
    With ``ignores_term`` the process only exits once ``kill()`` is called.
    """

    def __init__(self, pid: int, returncode: Optional[int] = None, ignores_term: bool = False):
        self.pid = pid
        self.returncode = returncode
        self.waited = False
        self.killed = False
        self._exited = asyncio.Event()
        if not ignores_term:
            self._exited.set()

    def kill(self) -> None:
        self.killed = True
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        self.waited = True
        if self.returncode is None:
            self.returncode = -9 if self.killed else 0
        return self.returncode


class FakeForwarder:
    """Hands out fake processes with increasing pids, or fails to start."""

    def __init__(
        self,
        first_pid: int = 4242,
        error: Optional[Exception] = None,
        exit_code: Optional[int] = None,
        ignores_term: bool = False,
    ):
        self.next_pid = first_pid
        self.error = error
        self.exit_code = exit_code
        self.ignores_term = ignores_term
        self.started: list[tuple[int, int, str, str]] = []
        self.processes: list[FakeProcess] = []

    async def start(self, local_port: int, remote_port: int, target: str, namespace: str) -> FakeProcess:
        if self.error is not None:
            raise self.error
        self.started.append((local_port, remote_port, target, namespace))
        proc = FakeProcess(self.next_pid, returncode=self.exit_code, ignores_term=self.ignores_term)
        self.next_pid += 1
        self.processes.append(proc)
        return proc


class FakeCluster:
    """In-memory stand-in for ResourceExistenceChecker."""

    def __init__(self, namespaces=(), services=(), applications: str = ""):
        self.namespaces = set(namespaces)
        self.services = set(services)
        self.applications = applications
        self.queries: list[tuple[str, ...]] = []

    async def namespace_exists(self, name: str) -> bool:
        self.queries.append(("namespace", name))
        return name in self.namespaces

    async def service_exists(self, name: str, namespace: str) -> bool:
        self.queries.append(("service", name, namespace))
        return (name, namespace) in self.services

    async def list_applications(self, namespace: str = "argocd") -> str:
        self.queries.append(("applications", namespace))
        return self.applications


class StaticProbe(HttpProbe):
    """HttpProbe whose fetch returns a fixed body and remembers the URLs."""

    def __init__(self, body: str):
        super().__init__(timeout=0.1)
        self.body = body
        self.urls: list[str] = []

    async def fetch(self, url: str, timeout_seconds: float | None = None) -> str:
        self.urls.append(url)
        return self.body

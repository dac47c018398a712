"""
clustersmoke Data Models
========================

Pydantic v2 data structures shared by the tunnel manager, the check
orchestrator and the result aggregator.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TunnelStatus(str, Enum):
    SPAWNING = "spawning"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


_TUNNEL_TRANSITIONS: dict[TunnelStatus, set[TunnelStatus]] = {
    TunnelStatus.SPAWNING: {TunnelStatus.READY, TunnelStatus.FAILED},
    TunnelStatus.READY: {TunnelStatus.CLOSED},
    TunnelStatus.CLOSED: set(),
    TunnelStatus.FAILED: set(),
}


class TunnelHandle(BaseModel):
    """One port-forward process owned by a single reachability check."""

    pid: int
    local_port: int
    remote_port: int
    service: str
    namespace: str
    status: TunnelStatus = TunnelStatus.SPAWNING

    def advance(self, status: TunnelStatus) -> None:
        """Move to ``status``; only forward transitions are allowed."""
        if status not in _TUNNEL_TRANSITIONS[self.status]:
            raise ValueError(
                f"Illegal tunnel transition {self.status.value} -> {status.value} "
                f"for svc/{self.service} (pid {self.pid})"
            )
        self.status = status

    @property
    def target(self) -> str:
        return f"svc/{self.service}"


class CheckKind(str, Enum):
    RESOURCE_ABSENT = "resource_absent"
    TUNNEL_TIMEOUT = "tunnel_timeout"
    TUNNEL_SPAWN_FAILURE = "tunnel_spawn_failure"
    CONNECTION_FAILURE = "connection_failure"
    CONTENT_MISMATCH = "content_mismatch"
    SUCCESS = "success"


class CheckResult(BaseModel):
    """Outcome of one check. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    kind: CheckKind
    label: str
    message: str
    hint: Optional[str] = None
    check_id: str = ""

    @property
    def passed(self) -> bool:
        return self.kind == CheckKind.SUCCESS


class RunState(BaseModel):
    """Pass/fail accounting for one run, threaded through every check."""

    passed_count: int = 0
    failed_count: int = 0
    failed_check_ids: list[str] = Field(default_factory=list)

    def record(self, result: CheckResult) -> None:
        """Count ``result`` exactly once."""
        if result.passed:
            self.passed_count += 1
        else:
            self.failed_count += 1
            self.failed_check_ids.append(result.check_id or result.label)

    @property
    def completed(self) -> int:
        return self.passed_count + self.failed_count

    @property
    def all_passed(self) -> bool:
        return self.failed_count == 0


class ReachabilitySpec(BaseModel):
    """A configured reachability check (one entry of the ``checks`` list)."""

    service: str
    namespace: str
    local_port: int = Field(gt=0, lt=65536)
    remote_port: int = Field(default=80, gt=0, lt=65536)
    label: Optional[str] = None
    expected: Optional[str] = None
    hint: Optional[str] = None


class WorkflowSpec(BaseModel):
    """A GitHub Actions workflow that must have succeeded at least once."""

    file: str
    name: str
    hint: str = ""


class CommentSpec(BaseModel):
    pattern: str
    name: str
    hint: str = ""

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regular expression {v!r}: {e}") from e
        return v


class PullRequestSpec(BaseModel):
    """A labelled pull request, optionally required to carry certain comments."""

    label: str
    name: str
    hint: str = ""
    comments: list[CommentSpec] = Field(default_factory=list)


class PullRequest(BaseModel):
    number: int
    title: str = ""

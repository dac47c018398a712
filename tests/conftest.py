"""Ensure src/ is on sys.path so that ``import clustersmoke`` works without
an editable install, and provide the shared fakes as fixtures.
"""

import sys
from pathlib import Path

import pytest

_src = str(Path(__file__).resolve().parent.parent / "src")
if _src not in sys.path:
    sys.path.insert(0, _src)

from clustersmoke.lifecycle import ProcessRegistry  # noqa: E402
from clustersmoke.tunnel import TunnelManager  # noqa: E402

from helpers import FakeCluster, FakeForwarder, RecordingSink  # noqa: E402


@pytest.fixture
def killed():
    """Pids the registry was asked to terminate, in order."""
    return []


@pytest.fixture
def registry(killed):
    return ProcessRegistry(killer=killed.append)


@pytest.fixture
def forwarder():
    return FakeForwarder()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def cluster():
    return FakeCluster(namespaces={"staging"}, services={("svc-a", "staging")})


@pytest.fixture
def tunnels(registry, forwarder):
    """TunnelManager whose port is bound on the first poll, with no grace delay."""
    return TunnelManager(
        registry,
        forwarder,
        port_probe=lambda port: True,
        poll_interval_ms=1,
        close_grace_ms=0,
    )

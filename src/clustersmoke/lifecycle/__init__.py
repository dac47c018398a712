"""Process lifecycle: forwarder registry and the run-scoped signal guard."""

from clustersmoke.lifecycle.guard import SignalGuard
from clustersmoke.lifecycle.registry import ProcessRegistry, terminate_pid

__all__ = ["ProcessRegistry", "SignalGuard", "terminate_pid"]

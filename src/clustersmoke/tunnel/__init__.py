"""Ephemeral port-forward tunnels."""

from clustersmoke.tunnel.manager import KubectlForwarder, TunnelManager
from clustersmoke.tunnel.ports import is_port_bound

__all__ = ["KubectlForwarder", "TunnelManager", "is_port_bound"]

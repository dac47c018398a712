"""HTTP health probing."""

from clustersmoke.probe.http import HttpProbe

__all__ = ["HttpProbe"]

"""Cluster query interface (kubectl)."""

from clustersmoke.cluster.kubectl import ResourceExistenceChecker

__all__ = ["ResourceExistenceChecker"]

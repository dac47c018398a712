"""
Cluster Resource Queries
========================

Read-only ``kubectl get`` lookups used before a tunnel is opened.
Absence is a normal outcome (False), never an exception.
"""

from __future__ import annotations

import logging

from clustersmoke.shell import run_command

logger = logging.getLogger("clustersmoke.cluster")


class ResourceExistenceChecker:
    """Confirms namespaces and services exist in the current kube context."""

    def __init__(self, kubectl: str = "kubectl", timeout: float = 15.0):
        self.kubectl = kubectl
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: dict) -> "ResourceExistenceChecker":
        cluster = config.get("cluster", {})
        return cls(
            kubectl=cluster.get("kubectl", "kubectl"),
            timeout=float(cluster.get("query_timeout_seconds", 15.0)),
        )

    async def namespace_exists(self, name: str) -> bool:
        result = await run_command(self.kubectl, "get", "namespace", name, timeout=self.timeout)
        if not result.ok:
            logger.info("Namespace %s not found: %s", name, result.stderr or f"exit {result.returncode}")
        return result.ok

    async def service_exists(self, name: str, namespace: str) -> bool:
        result = await run_command(
            self.kubectl, "get", "service", name, "-n", namespace, timeout=self.timeout
        )
        if not result.ok:
            logger.info(
                "Service %s/%s not found: %s",
                namespace,
                name,
                result.stderr or f"exit {result.returncode}",
            )
        return result.ok

    async def list_applications(self, namespace: str = "argocd") -> str:
        """Wide listing of Argo CD applications, for failure drill-down."""
        result = await run_command(
            self.kubectl, "get", "applications", "-n", namespace, "-o", "wide", timeout=self.timeout
        )
        if not result.ok:
            logger.warning("Failed to retrieve applications in %s: %s", namespace, result.stderr)
            return ""
        return result.stdout

"""Presence checks for the external tools a run depends on."""

from __future__ import annotations

import shutil
from typing import Iterable


def missing_tools(tools: Iterable[str]) -> list[str]:
    """Return the tools from ``tools`` that are not on PATH, in order."""
    return [tool for tool in tools if shutil.which(tool) is None]


def required_tools(config: dict) -> list[str]:
    """Tools needed by the checks configured in ``config``."""
    tools: list[str] = []
    if config.get("checks"):
        tools.append(config.get("cluster", {}).get("kubectl", "kubectl"))
    if config.get("workflows") or config.get("pull_requests"):
        tools.append(config.get("github", {}).get("gh", "gh"))
    return tools

"""
clustersmoke Configuration
==========================

YAML-based configuration with sensible defaults.
Loads from smoke_config.yaml if present, otherwise uses built-in defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import yaml

from clustersmoke.models import PullRequestSpec, ReachabilitySpec, WorkflowSpec

_DEFAULTS = {
    "cluster": {
        "kubectl": "kubectl",
        "query_timeout_seconds": 15.0,
        "applications_namespace": "argocd",
    },
    "tunnel": {
        "max_wait_attempts": 10,
        "poll_interval_ms": 500,
        "close_grace_ms": 500,
        "bind_host": "127.0.0.1",
    },
    "probe": {
        "timeout_seconds": 5.0,
        "health_path": "/healthz",
    },
    "github": {
        "gh": "gh",
        "query_timeout_seconds": 30.0,
    },
    "logging": {
        "level": "info",
        "audit_log": None,
    },
    "summary": {
        "success_message": "You've successfully completed this level!",
        "next_steps": [],
    },
    "checks": [],
    "workflows": [],
    "pull_requests": [],
}

# Environment variable -> (section, key, type)
_ENV_OVERRIDES = {
    "KUBECTL": ("cluster", "kubectl", str),
    "SMOKE_MAX_WAIT_ATTEMPTS": ("tunnel", "max_wait_attempts", int),
    "SMOKE_PROBE_TIMEOUT": ("probe", "timeout_seconds", float),
}


def _fresh_defaults() -> dict:
    config: dict = {}
    for section, values in _DEFAULTS.items():
        config[section] = dict(values) if isinstance(values, dict) else list(values)
    return config


def load_config(
    path: str | Path | None = "smoke_config.yaml",
    env: Mapping[str, str] | None = None,
) -> dict:
    """Load configuration from YAML file, merging with defaults.

    Args:
        path: Path to YAML config file. If relative, resolved from CWD.
            ``None`` skips the file and returns defaults plus env overrides.
        env: Environment mapping for overrides (defaults to ``os.environ``).

    Returns:
        Merged config dict with all sections populated.
    """
    config = _fresh_defaults()
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                user = yaml.safe_load(f) or {}
            for section, values in user.items():
                if section in config and isinstance(values, dict) and isinstance(config[section], dict):
                    config[section].update(values)
                else:
                    config[section] = values

    source = os.environ if env is None else env
    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        if var in source:
            config[section][key] = cast(source[var])
    return config


def reachability_specs(config: dict) -> list[ReachabilitySpec]:
    """Validate the ``checks`` section into ReachabilitySpec models."""
    return [ReachabilitySpec.model_validate(entry) for entry in config.get("checks") or []]


def workflow_specs(config: dict) -> list[WorkflowSpec]:
    return [WorkflowSpec.model_validate(entry) for entry in config.get("workflows") or []]


def pull_request_specs(config: dict) -> list[PullRequestSpec]:
    return [PullRequestSpec.model_validate(entry) for entry in config.get("pull_requests") or []]


def parse_check_arg(value: str) -> ReachabilitySpec:
    """Parse ``SERVICE:NAMESPACE:LOCAL_PORT[:REMOTE_PORT]`` from the command line."""
    parts = value.split(":")
    if len(parts) not in (3, 4):
        raise ValueError(
            f"Invalid check '{value}', expected SERVICE:NAMESPACE:LOCAL_PORT[:REMOTE_PORT]"
        )
    entry: dict = {"service": parts[0], "namespace": parts[1], "local_port": int(parts[2])}
    if len(parts) == 4:
        entry["remote_port"] = int(parts[3])
    return ReachabilitySpec.model_validate(entry)

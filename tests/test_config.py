"""Tests for YAML config loading, env overrides and check parsing."""

import pytest
from pydantic import ValidationError

from clustersmoke.config import (
    load_config,
    parse_check_arg,
    pull_request_specs,
    reachability_specs,
    workflow_specs,
)


def test_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "nope.yaml", env={})
    assert config["tunnel"]["max_wait_attempts"] == 10
    assert config["tunnel"]["poll_interval_ms"] == 500
    assert config["probe"]["health_path"] == "/healthz"
    assert config["cluster"]["kubectl"] == "kubectl"
    assert config["checks"] == []


def test_defaults_are_not_shared_between_loads():
    first = load_config(None, env={})
    first["tunnel"]["max_wait_attempts"] = 99
    first["checks"].append({"service": "x"})
    second = load_config(None, env={})
    assert second["tunnel"]["max_wait_attempts"] == 10
    assert second["checks"] == []


def test_yaml_merges_over_defaults(tmp_path):
    path = tmp_path / "smoke_config.yaml"
    path.write_text(
        "tunnel:\n"
        "  max_wait_attempts: 3\n"
        "checks:\n"
        "  - service: echo-staging\n"
        "    namespace: staging\n"
        "    local_port: 8081\n",
        encoding="utf-8",
    )
    config = load_config(path, env={})

    assert config["tunnel"]["max_wait_attempts"] == 3
    assert config["tunnel"]["close_grace_ms"] == 500
    specs = reachability_specs(config)
    assert len(specs) == 1
    assert specs[0].service == "echo-staging"
    assert specs[0].remote_port == 80


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "smoke_config.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path, env={})["probe"]["timeout_seconds"] == 5.0


def test_env_overrides(tmp_path):
    env = {"KUBECTL": "/usr/bin/kubectl", "SMOKE_MAX_WAIT_ATTEMPTS": "20", "SMOKE_PROBE_TIMEOUT": "2.5"}
    config = load_config(None, env=env)
    assert config["cluster"]["kubectl"] == "/usr/bin/kubectl"
    assert config["tunnel"]["max_wait_attempts"] == 20
    assert config["probe"]["timeout_seconds"] == 2.5


def test_bad_env_override_raises():
    with pytest.raises(ValueError):
        load_config(None, env={"SMOKE_MAX_WAIT_ATTEMPTS": "lots"})


def test_invalid_port_rejected():
    config = load_config(None, env={})
    config["checks"] = [{"service": "svc", "namespace": "ns", "local_port": 70000}]
    with pytest.raises(ValidationError):
        reachability_specs(config)


def test_github_sections():
    config = load_config(None, env={})
    config["workflows"] = [{"file": "ci.yaml", "name": "CI"}]
    config["pull_requests"] = [
        {"label": "promotion", "name": "Promotion", "comments": [{"pattern": "Plan:", "name": "plan"}]}
    ]
    assert workflow_specs(config)[0].file == "ci.yaml"
    prs = pull_request_specs(config)
    assert prs[0].comments[0].pattern == "Plan:"


class TestParseCheckArg:
    def test_three_parts(self):
        spec = parse_check_arg("echo-staging:staging:8081")
        assert (spec.service, spec.namespace, spec.local_port, spec.remote_port) == (
            "echo-staging", "staging", 8081, 80,
        )

    def test_four_parts(self):
        assert parse_check_arg("echo-prod:prod:8082:8080").remote_port == 8080

    @pytest.mark.parametrize("value", ["svc", "svc:ns", "svc:ns:1:2:3", "svc:ns:port"])
    def test_malformed(self, value):
        with pytest.raises(ValueError):
            parse_check_arg(value)

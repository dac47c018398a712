"""
clustersmoke command line entry point.

Usage:
    clustersmoke --config smoke_config.yaml
    clustersmoke --check echo-staging:staging:8081 --check echo-prod:prod:8082:80
    SMOKE_MAX_WAIT_ATTEMPTS=20 clustersmoke --config smoke_config.yaml -v

Exit status: 0 when every check passed, 1 on any failure (or when the run
could not start), 128 + signal number when interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import yaml
from pydantic import ValidationError

from clustersmoke.config import load_config, parse_check_arg
from clustersmoke.errors import SignalGuardError
from clustersmoke.output import ConsoleSink, OutputKind
from clustersmoke.preflight import missing_tools, required_tools
from clustersmoke.runner import run_smoke_test

logger = logging.getLogger("clustersmoke.cli")


def _check_arg(value: str):
    try:
        return parse_check_arg(value)
    except (ValueError, ValidationError) as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clustersmoke",
        description="Smoke-test that services deployed to a Kubernetes cluster are reachable and healthy.",
        epilog="Examples:\n"
               "  clustersmoke --config smoke_config.yaml\n"
               "  clustersmoke --check echo-staging:staging:8081 --check echo-prod:prod:8082\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default="smoke_config.yaml",
        help="YAML config file (default: smoke_config.yaml; built-in defaults if absent).",
    )
    parser.add_argument(
        "--check",
        action="append",
        type=_check_arg,
        default=[],
        metavar="SERVICE:NAMESPACE:LOCAL_PORT[:REMOTE_PORT]",
        help="Add a reachability check (repeatable).",
    )
    parser.add_argument(
        "--no-inspect",
        action="store_true",
        default=False,
        help="Do not list Argo CD applications when checks fail.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Debug logging on stderr.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError, ValueError) as e:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        logger.error("Could not load %s: %s", args.config, e)
        return 1

    level = "debug" if args.verbose else str(config["logging"].get("level", "info"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    sink = ConsoleSink()
    if args.check:
        config["checks"] = list(config.get("checks") or []) + [spec.model_dump() for spec in args.check]
    if not (config.get("checks") or config.get("workflows") or config.get("pull_requests")):
        sink.emit(OutputKind.ERROR, "Nothing to check")
        sink.emit(OutputKind.HINT, "Add checks to the config file or pass --check SERVICE:NAMESPACE:LOCAL_PORT")
        return 1

    missing = missing_tools(required_tools(config))
    if missing:
        for tool in missing:
            sink.emit(OutputKind.ERROR, f"Required tool '{tool}' is not installed or not on PATH")
        sink.emit(OutputKind.HINT, "Install the missing tools and try again.")
        return 1

    try:
        return asyncio.run(
            run_smoke_test(config, sink=sink, inspect_on_failure=not args.no_inspect)
        )
    except ValidationError as e:
        logger.error("Invalid check configuration: %s", e)
        return 1
    except SignalGuardError as e:
        logger.error("Cannot start run: %s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""
SmokeAuditLog: JSONL record of a smoke-test run.

Writes one JSON object per line. Every event includes: timestamp,
event_type, run_id, and event-specific data.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from clustersmoke.models import CheckResult, RunState

logger = logging.getLogger(__name__)


class SmokeAuditLog:
    """
    Audit logger for smoke-test runs.

    Appends to the given JSONL file; the parent directory is created if
    needed. Write failures are logged, never raised, so auditing cannot
    change a run's outcome.
    """

    def __init__(self, path: str | Path, run_id: Optional[str] = None):
        self.path = Path(path).expanduser()
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.file_handle = open(self.path, "a", encoding="utf-8")

    def _write_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        record = {
            "timestamp": datetime.now().isoformat(),
            "event_type": event_type,
            "run_id": self.run_id,
        }
        if data:
            record.update(data)
        try:
            self.file_handle.write(json.dumps(record, default=str) + "\n")
            self.file_handle.flush()
        except Exception as e:
            logger.error(f"Failed to write audit event {event_type}: {e}")

    def run_started(self, check_count: int) -> None:
        self._write_event("run_started", {"check_count": check_count})

    def check_finished(self, result: CheckResult) -> None:
        self._write_event("check_finished", result.model_dump(mode="json"))

    def run_finished(self, run_state: RunState, exit_code: int, interrupted: bool = False) -> None:
        self._write_event(
            "run_finished",
            {
                "exit_code": exit_code,
                "interrupted": interrupted,
                **run_state.model_dump(mode="json"),
            },
        )

    def close(self) -> None:
        try:
            self.file_handle.close()
        except Exception as e:
            logger.error(f"Failed to close audit log: {e}")

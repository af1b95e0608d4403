"""
Structured JSON logger: append-only, one object per line (.jsonl).

Event types written by the pipeline:
    PERFORMANCE   {component, duration_ms, ...}   one per timed stage
    PIPELINE      {trip_id, scenario_id, days, drive_events, day_trips, spills, duration_ms}

Usage:
    from modules.observability.logger import StructuredLogger, configure_logging

    configure_logging()          # once per process, level from config.LOG_LEVEL

    perf = StructuredLogger()
    with perf.timed("default", "ItineraryScheduler.compute", legs=6):
        ...

Logs are written to  <LOGS_DIR>/<session_id>.jsonl  (config.LOGS_DIR).
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time as _time_mod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Iterator

import config

LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Root logging setup shared by the CLI and the API server."""
    logging.basicConfig(format=LOG_FORMAT)
    name = (level or config.LOG_LEVEL).upper()
    logging.getLogger().setLevel(getattr(logging, name, logging.INFO))


class StructuredLogger:
    """Thread-safe JSONL writer keyed by session id."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else Path(config.LOGS_DIR)
        self._lock = threading.Lock()
        self._handles: dict[str, IO[str]] = {}

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir

    # ── writing ───────────────────────────────────────────────────────────

    def log(self, session_id: str, event_type: str, payload: dict) -> None:
        """Append one record to ``<session_id>.jsonl``."""
        record = {
            "timestamp":  datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "event_type": event_type,
            "payload":    payload,
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            fh = self._handles.get(session_id) or self._open(session_id)
            fh.write(line)
            fh.flush()

    @contextmanager
    def timed(self, session_id: str, component: str, **extra: Any) -> Iterator[dict[str, Any]]:
        """
        Time the enclosed block and log a PERFORMANCE event when it exits.

        The yielded dict is the event payload; callers may add fields to it
        (e.g. result counts) before the block ends. Nothing is logged when the
        block raises.
        """
        payload: dict[str, Any] = {"component": component, **extra}
        t0 = _time_mod.perf_counter()
        yield payload
        payload["duration_ms"] = round((_time_mod.perf_counter() - t0) * 1000, 2)
        self.log(session_id, "PERFORMANCE", payload)

    # ── reading ───────────────────────────────────────────────────────────

    def read(self, session_id: str) -> list[dict]:
        path = self._logs_dir / f"{session_id}.jsonl"
        if not path.exists():
            return []
        with self._lock, open(path, "r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]

    def close(self, session_id: str | None = None) -> None:
        """Close one session's handle, or all of them."""
        with self._lock:
            if session_id:
                fh = self._handles.pop(session_id, None)
                if fh:
                    fh.close()
                return
            for fh in self._handles.values():
                fh.close()
            self._handles.clear()

    def _open(self, session_id: str) -> IO[str]:
        os.makedirs(self._logs_dir, exist_ok=True)
        fh = open(self._logs_dir / f"{session_id}.jsonl", "a", encoding="utf-8")  # noqa: SIM115
        self._handles[session_id] = fh
        return fh

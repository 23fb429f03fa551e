"""
Structured JSON event logger for mark refresh runs.

One JSON object per line (stderr by default). Every record carries the
trade file it belongs to and a run number, so interleaved output from
successive refreshes can be told apart.

Optional webhook: fetch_failed and error records are POSTed with a
one-line ``summary`` for chat-style receivers.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import urllib.request
from datetime import datetime, timezone
from typing import Any, TextIO

logger = logging.getLogger("optstruct.events")

ALERT_EVENTS = frozenset({"fetch_failed", "error"})
WEBHOOK_TIMEOUT_S = 5


class StructuredEventLogger:
    """Refresh lifecycle events for one trade file."""

    def __init__(
        self,
        source: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: TextIO | None = None,
    ) -> None:
        self.source = source
        self.enabled = enabled
        self.webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr
        self._run = 0
        self._run_started: float | None = None

    @property
    def run(self) -> int:
        """Number of the current (or last) refresh run; 0 before the first."""
        return self._run

    def _emit(self, event: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "source": self.source,
            "run": self._run,
            **fields,
        }
        if self.enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()
        if self.webhook_url and event in ALERT_EVENTS:
            self._alert(record)
        return record

    def _alert(self, record: dict) -> None:
        detail = record.get("key") or record.get("message", "")
        reason = record.get("error") or record.get("detail", "")
        summary = f"{self.source} run {self._run}: {record['event']} {detail}"
        if reason:
            summary += f" ({reason})"
        payload = json.dumps({"summary": summary, **record}).encode("utf-8")
        req = urllib.request.Request(
            self.webhook_url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            urllib.request.urlopen(req, timeout=WEBHOOK_TIMEOUT_S)
        except Exception as exc:
            # Alert delivery never interrupts a refresh.
            logger.warning("Webhook POST for %s failed: %s", record["event"], exc)

    # ---------- refresh lifecycle ----------

    def refresh_start(self, total: int) -> dict:
        self._run += 1
        self._run_started = time.monotonic()
        return self._emit("refresh_start", total=total)

    def batch_complete(self, batch: int, done: int, total: int, errors: int) -> dict:
        return self._emit("batch_complete", batch=batch, done=done, total=total, errors=errors)

    def fetch_failed(self, key: str, error: str) -> dict:
        return self._emit("fetch_failed", key=key, error=error)

    def refresh_complete(self, total: int, errors: int) -> dict:
        elapsed_ms = None
        if self._run_started is not None:
            elapsed_ms = round((time.monotonic() - self._run_started) * 1000)
            self._run_started = None
        return self._emit(
            "refresh_complete",
            total=total,
            errors=errors,
            fetched=total - errors,
            elapsed_ms=elapsed_ms,
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)

"""Authentication audit trail.

Appends one JSON object per line to an audit file (``.latchkey/auth-events.jsonl``
by default) and lets the CLI query it back.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_REDACTED_FIELDS = frozenset({"secret", "password", "token"})


class AuditLog:
    """JSONL audit trail. ``path=None`` turns recording into a no-op."""

    def __init__(self, path: str | Path | None):
        self.path = Path(path) if path else None

    def record(self, event_type: str, **details: Any) -> None:
        if self.path is None:
            return
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            **{k: v for k, v in details.items() if k not in _REDACTED_FIELDS},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(event, ensure_ascii=True, default=str) + "\n")
        except OSError as e:
            logger.warning(f"Could not write audit event {event_type}: {e}")

    def query(self, event_type: Optional[str] = None, limit: int = 100) -> list[dict[str, Any]]:
        """Most recent events (oldest first), optionally of one type."""
        if self.path is None or not self.path.exists():
            return []

        events = []
        with self.path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if event_type and event.get("event_type") != event_type:
                    continue
                events.append(event)

        return events[-limit:] if limit > 0 else []

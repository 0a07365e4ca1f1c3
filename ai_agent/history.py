from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml

from .errors import HistoryLoadError
from .models import HistoryEntry

logger = logging.getLogger(__name__)


class History:
    """Append-only command history, optionally mirrored to a YAML file."""

    def __init__(self, path: Optional[Path] = None, entries: Optional[List[HistoryEntry]] = None):
        self.path = path
        self.entries: List[HistoryEntry] = list(entries or [])

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def load(cls, path: Path) -> "History":
        """Read a history file; raises HistoryLoadError if it is unreadable or malformed."""
        if not path.exists():
            return cls(path=path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise HistoryLoadError(f"Error loading history {path}: {exc}") from exc
        if not isinstance(raw, dict) or not isinstance(raw.get("history") or [], list):
            raise HistoryLoadError(f"History {path} must contain a 'history' list")
        entries: List[HistoryEntry] = []
        for item in raw.get("history") or []:
            if not isinstance(item, dict):
                raise HistoryLoadError(f"History {path} has a malformed entry: {item!r}")
            ts = item.get("timestamp")
            if isinstance(ts, str):
                try:
                    ts = datetime.fromisoformat(ts)
                except ValueError as exc:
                    raise HistoryLoadError(f"History {path} has a bad timestamp: {ts!r}") from exc
            elif not isinstance(ts, datetime):
                ts = datetime.now(timezone.utc)
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            entries.append(
                HistoryEntry(
                    command=str(item.get("command", "")),
                    timestamp=ts,
                    type=str(item.get("type", "")),
                    description=str(item.get("description", "")),
                )
            )
        return cls(path=path, entries=entries)

    @classmethod
    def load_or_empty(cls, path: Path) -> "History":
        try:
            return cls.load(path)
        except HistoryLoadError as exc:
            logger.warning("%s; starting with empty history", exc)
            return cls(path=path)

    def record(self, command: str, plan_type: str, description: str) -> HistoryEntry:
        entry = HistoryEntry(
            command=command,
            timestamp=datetime.now(timezone.utc),
            type=plan_type,
            description=description,
        )
        self.entries.append(entry)
        if self.path is not None:
            self.save()
        return entry

    def recent(self, count: int = 5) -> List[HistoryEntry]:
        """Most recent first."""
        return list(reversed(self.entries[-count:])) if count > 0 else []

    def save(self) -> None:
        if self.path is None:
            return
        out = {
            "history": [
                {
                    "command": e.command,
                    "timestamp": e.timestamp.isoformat(),
                    "type": e.type,
                    "description": e.description,
                }
                for e in self.entries
            ]
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, sort_keys=False, allow_unicode=True)

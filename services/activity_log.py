from collections import deque
from datetime import datetime, timezone
from typing import Optional

from models import LogEntry, LogType

ICONS = {
    LogType.DETECTION: "◈",
    LogType.ANALYSIS: "◉",
    LogType.TRADE: "◆",
    LogType.SYSTEM: "○",
}

class ActivityLog:
    """
    Append-only record of every state transition in the pipeline.
    Storage is oldest-first; readers get newest-first copies.
    """

    def __init__(self, retention: Optional[int] = None, echo: bool = True):
        self._entries = deque(maxlen=retention)
        self._next_id = 1
        self.echo = echo

    def append(self, type: LogType, message: str, timestamp: Optional[datetime] = None) -> LogEntry:
        entry = LogEntry(
            id=self._next_id,
            type=LogType(type),
            message=message,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self._next_id += 1
        self._entries.append(entry)
        if self.echo:
            print(f"{ICONS[entry.type]} [{entry.type.value}] {message}")
        return entry.model_copy()

    def entries(self, limit: Optional[int] = None, type: Optional[LogType] = None) -> list[LogEntry]:
        result = []
        for entry in reversed(self._entries):
            if type is not None and entry.type != type:
                continue
            result.append(entry.model_copy())
            if limit is not None and len(result) >= limit:
                break
        return result

    def __len__(self) -> int:
        return len(self._entries)

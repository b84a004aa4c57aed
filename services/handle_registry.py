import itertools
from datetime import datetime, timezone
from typing import Optional

from errors import DuplicateHandle, EmptyHandle, NotFound
from models import LogType, MonitoredHandle
from services.activity_log import ActivityLog

PLACEHOLDER_POST = "Scanning for posts..."

def normalize_handle(raw: str) -> str:
    handle = (raw or "").strip()
    if not handle:
        return ""
    return handle if handle.startswith("@") else f"@{handle}"

class HandleRegistry:
    def __init__(self, log: ActivityLog):
        self.log = log
        self._handles: dict[str, MonitoredHandle] = {}
        self._ids = itertools.count(1)

    def add(self, raw: str, timestamp: Optional[datetime] = None) -> MonitoredHandle:
        handle = normalize_handle(raw)
        if not handle or handle == "@":
            self.log.append(LogType.SYSTEM, "Ignored empty handle", timestamp)
            raise EmptyHandle("Handle is empty")

        if self.find(handle) is not None:
            self.log.append(LogType.SYSTEM, f"{handle} is already monitored", timestamp)
            raise DuplicateHandle(handle)

        record = MonitoredHandle(
            id=str(next(self._ids)),
            handle=handle,
            last_post=PLACEHOLDER_POST,
            detected_tickers=[],
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self._handles[record.id] = record
        self.log.append(LogType.SYSTEM, f"Added {handle} to monitoring list", timestamp)
        return record.model_copy()

    def remove(self, handle_id: str, timestamp: Optional[datetime] = None) -> MonitoredHandle:
        record = self._handles.pop(handle_id, None)
        if record is None:
            raise NotFound("handle", handle_id)
        self.log.append(LogType.SYSTEM, f"Removed {record.handle} from monitoring", timestamp)
        return record

    def ingest_post(self, handle_id: str, text: str, timestamp: datetime) -> bool:
        """Store the latest post for a handle. Returns True if it differs from the last one seen."""
        record = self._get(handle_id)
        is_new = record.last_post != text or record.timestamp != timestamp
        record.last_post = text
        record.timestamp = timestamp
        return is_new

    def set_detected(self, handle_id: str, tickers: list[str]):
        self._get(handle_id).detected_tickers = list(tickers)

    def get(self, handle_id: str) -> MonitoredHandle:
        return self._get(handle_id).model_copy(deep=True)

    def find(self, handle: str) -> Optional[MonitoredHandle]:
        wanted = normalize_handle(handle).lower()
        for record in self._handles.values():
            if record.handle.lower() == wanted:
                return record.model_copy(deep=True)
        return None

    def all_handles(self) -> list[MonitoredHandle]:
        return [h.model_copy(deep=True) for h in self._handles.values()]

    def _get(self, handle_id: str) -> MonitoredHandle:
        record = self._handles.get(handle_id)
        if record is None:
            raise NotFound("handle", handle_id)
        return record

    def __contains__(self, handle_id: str) -> bool:
        return handle_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)

from datetime import datetime, timezone

from models import LogType
from services.activity_log import ActivityLog


def test_entries_newest_first_with_increasing_ids():
    log = ActivityLog(echo=False)
    ts = datetime(2024, 3, 1, tzinfo=timezone.utc)
    log.append(LogType.DETECTION, "one", ts)
    log.append(LogType.ANALYSIS, "two", ts)
    log.append(LogType.TRADE, "three", ts)

    entries = log.entries()
    assert [e.message for e in entries] == ["three", "two", "one"]
    assert [e.id for e in entries] == [3, 2, 1]


def test_reading_does_not_change_storage():
    log = ActivityLog(echo=False)
    log.append(LogType.SYSTEM, "a")
    log.append(LogType.SYSTEM, "b")
    log.entries()
    log.entries(limit=1)[0].message = "changed"

    assert [e.message for e in log.entries()] == ["b", "a"]


def test_retention_drops_oldest():
    log = ActivityLog(retention=2, echo=False)
    for message in ("a", "b", "c"):
        log.append(LogType.SYSTEM, message)

    assert [e.message for e in log.entries()] == ["c", "b"]
    assert log.entries()[0].id == 3


def test_filter_by_type_and_limit():
    log = ActivityLog(echo=False)
    log.append(LogType.TRADE, "t1")
    log.append(LogType.SYSTEM, "s1")
    log.append(LogType.TRADE, "t2")

    assert [e.message for e in log.entries(type=LogType.TRADE)] == ["t2", "t1"]
    assert [e.message for e in log.entries(limit=1, type=LogType.TRADE)] == ["t2"]

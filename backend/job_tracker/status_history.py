import re
from collections.abc import Iterable
from datetime import datetime, timezone

from job_tracker.models import HistorySummary, StatusChangeRecord, StatusHistory, TimelineEntry
from job_tracker.statuses import (
    DEFAULT_INITIAL_STATUS,
    UNKNOWN_STAGE,
    is_failed_status,
    is_passed_status,
    status_color,
    status_icon,
)

_FRACTION_RE = re.compile(r"\.(\d+)")


def ensure_collection(raw, what: str = "records"):
    if raw is None or isinstance(raw, (str, bytes, dict)) or not isinstance(raw, Iterable):
        raise TypeError(f"{what} must be an iterable collection of records, got {type(raw).__name__}")


def parse_timestamp(value) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value or "").strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        # fromisoformat on 3.10 only takes 3 or 6 fraction digits.
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _sort_key(record: StatusChangeRecord) -> tuple[int, float]:
    dt = parse_timestamp(record.status_changed_at)
    if dt is None:
        return (0, 0.0)
    return (1, dt.timestamp())


def _coerce_records(raw) -> list[StatusChangeRecord]:
    out = []
    for item in raw:
        if not item:
            continue
        if isinstance(item, StatusChangeRecord):
            out.append(item)
        elif isinstance(item, dict):
            out.append(StatusChangeRecord.from_dict(item))
    return out


def compress_adjacent_duplicates(records: list[StatusChangeRecord]) -> list[StatusChangeRecord]:
    compressed = []
    prev_status = None
    for record in records:
        new_status = record.new_status
        if new_status and new_status == prev_status:
            continue
        compressed.append(record)
        prev_status = new_status
    return compressed


def normalize_status_history(raw) -> StatusHistory:
    """Turn a raw status change log into an ordered, de-duplicated timeline.

    Records are stable-sorted by ``status_changed_at`` (missing or unparseable
    timestamps first), then a record is dropped when its status repeats the
    previously kept one. The summary is derived from the kept entries.
    """
    ensure_collection(raw, "status history")

    ordered = sorted(_coerce_records(raw), key=_sort_key)
    compressed = compress_adjacent_duplicates(ordered)
    entries = tuple(TimelineEntry.from_record(r) for r in compressed)

    total_duration = sum((e.duration or 0) for e in entries)
    initial_status = compressed[0].old_status if compressed and compressed[0].old_status else DEFAULT_INITIAL_STATUS

    summary = HistorySummary(
        total_duration=total_duration,
        status_count=len(entries),
        last_updated=entries[-1].timestamp if entries else "",
        current_stage=entries[-1].status if entries else UNKNOWN_STAGE,
        initial_status=initial_status,
    )
    return StatusHistory(entries=entries, summary=summary)


def to_timeline_items(history: StatusHistory) -> list[dict]:
    items = []
    last_index = len(history.entries) - 1
    for index, entry in enumerate(history.entries):
        items.append(
            {
                "id": f"{entry.timestamp}_{entry.status}",
                "status": entry.status,
                "timestamp": entry.timestamp,
                "duration": entry.duration,
                "note": entry.note or None,
                "is_current": index == last_index,
                "is_failed": is_failed_status(entry.status),
                "is_passed": is_passed_status(entry.status),
                "icon": status_icon(entry.status),
                "color": status_color(entry.status),
                "interview_scheduled": entry.interview_scheduled or None,
            }
        )
    return items


def format_duration(minutes) -> str:
    if not minutes:
        return "0分钟"
    total = int(minutes)
    days = total // (24 * 60)
    hours = (total % (24 * 60)) // 60
    mins = total % 60

    if days > 0:
        return f"{days}天" + (f"{hours}小时" if hours > 0 else "")
    if hours > 0:
        return f"{hours}小时" + (f"{mins}分钟" if mins > 0 else "")
    return f"{mins}分钟"


def calculate_duration(start_time, end_time=None, now: datetime | None = None) -> int:
    start = parse_timestamp(start_time)
    if start is None:
        raise ValueError(f"invalid start time: {start_time!r}")
    if end_time:
        end = parse_timestamp(end_time)
        if end is None:
            raise ValueError(f"invalid end time: {end_time!r}")
    else:
        end = parse_timestamp(now) if now else datetime.now(timezone.utc)
    return int((end - start).total_seconds() / 60)


def format_timestamp(timestamp, fmt: str = "%Y-%m-%d %H:%M") -> str:
    dt = parse_timestamp(timestamp)
    if dt is None:
        return str(timestamp or "")
    return dt.strftime(fmt)

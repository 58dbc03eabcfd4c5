import json
from datetime import datetime, timezone


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_event(event: str, level: str = "info", **fields):
    row = {"ts": _utc_now(), "event": event, "level": level, **fields}
    print(json.dumps(row, ensure_ascii=False, default=str))

import threading
from pathlib import Path

from job_tracker.json_io import load_json, save_json


class MemoryStorage:
    def __init__(self, initial: dict | None = None):
        self._items = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default=None):
        with self._lock:
            return self._items.get(key, default)

    def set(self, key: str, value):
        with self._lock:
            self._items[key] = value

    def remove(self, key: str):
        with self._lock:
            self._items.pop(key, None)


class JsonFileStorage:
    """Key/value storage persisted as one JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict:
        data = load_json(self.path, default={})
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default=None):
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value):
        with self._lock:
            data = self._load()
            data[key] = value
            save_json(self.path, data)

    def remove(self, key: str):
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                save_json(self.path, data)

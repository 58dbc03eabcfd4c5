import json
from pathlib import Path


def load_json(path: Path, default=None):
    if not path.exists():
        return {} if default is None else default
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {} if default is None else default
    return json.loads(text)


def save_json(path: Path, obj):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")

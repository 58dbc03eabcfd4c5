import os
from pathlib import Path
from urllib.parse import urlparse

from job_tracker.http_client import DEFAULT_BASE_URL, DEFAULT_SLOW_REQUEST_MS, DEFAULT_TIMEOUT_SEC, ApiClient
from job_tracker.json_io import load_json
from job_tracker.paths import CONFIG, DATA
from job_tracker.session import SessionManager
from job_tracker.storage import JsonFileStorage, MemoryStorage

DEFAULT_DOWNLOAD_TIMEOUT_SEC = 60

_ENV_OVERRIDES = {
    "JOB_TRACKER_BASE_URL": "base_url",
    "JOB_TRACKER_TIMEOUT_SEC": "timeout_sec",
    "JOB_TRACKER_DOWNLOAD_TIMEOUT_SEC": "download_timeout_sec",
    "JOB_TRACKER_MAX_RETRIES": "max_retries",
    "JOB_TRACKER_SLOW_REQUEST_MS": "slow_request_ms",
    "JOB_TRACKER_SESSION_FILE": "session_file",
}


def _as_number(value, default, cast=float, minimum=0):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


def normalize_client_config(cfg: dict | None) -> dict:
    src = cfg if isinstance(cfg, dict) else {}
    session_file = str(src.get("session_file") or "").strip()
    return {
        "base_url": str(src.get("base_url") or DEFAULT_BASE_URL).strip().rstrip("/"),
        "timeout_sec": _as_number(src.get("timeout_sec"), float(DEFAULT_TIMEOUT_SEC), float, 1),
        "download_timeout_sec": _as_number(
            src.get("download_timeout_sec"), float(DEFAULT_DOWNLOAD_TIMEOUT_SEC), float, 1
        ),
        "max_retries": _as_number(src.get("max_retries"), 2, int, 0),
        "slow_request_ms": _as_number(src.get("slow_request_ms"), DEFAULT_SLOW_REQUEST_MS, int, 0),
        "session_file": session_file or str(DATA / "session.json"),
    }


def validate_client_config(cfg: dict | None) -> list[str]:
    errors = []
    if not isinstance(cfg, dict):
        return ["client config must be a JSON object"]

    base_url = str(cfg.get("base_url") or "").strip()
    if base_url:
        parsed = urlparse(base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            errors.append(f"`base_url` must be an http(s) URL: {base_url!r}")

    for key in ("timeout_sec", "download_timeout_sec"):
        if key in cfg:
            value = cfg.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"`{key}` must be a positive number")

    for key in ("max_retries", "slow_request_ms"):
        if key in cfg:
            value = cfg.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(f"`{key}` must be a non-negative integer")

    if "session_file" in cfg and not isinstance(cfg.get("session_file"), str):
        errors.append("`session_file` must be a string path")

    return errors


def load_client_config(path: Path | None = None, environ: dict | None = None) -> dict:
    raw = load_json(path or (CONFIG / "client.json"), default={})
    merged = dict(raw) if isinstance(raw, dict) else {}
    env = os.environ if environ is None else environ
    for env_key, cfg_key in _ENV_OVERRIDES.items():
        value = str(env.get(env_key) or "").strip()
        if value:
            merged[cfg_key] = value
    return normalize_client_config(merged)


def build_client(cfg: dict | None = None, transport=None, persist_session: bool = True, on_session_expired=None) -> ApiClient:
    """Wire storage, session and HTTP client from a normalized config."""
    config = normalize_client_config(cfg if cfg is not None else load_client_config())
    kwargs = {"transport": transport} if transport is not None else {}

    storage = JsonFileStorage(Path(config["session_file"])) if persist_session else MemoryStorage()
    session = SessionManager(
        base_url=config["base_url"],
        storage=storage,
        session_storage=storage if persist_session else MemoryStorage(),
        on_session_expired=on_session_expired,
        timeout_sec=config["timeout_sec"],
        **kwargs,
    )
    session.restore()
    return ApiClient(
        base_url=config["base_url"],
        session=session,
        timeout_sec=config["timeout_sec"],
        max_retries=config["max_retries"],
        slow_request_ms=config["slow_request_ms"],
        **kwargs,
    )

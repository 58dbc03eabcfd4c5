import json
import threading
import time

from job_tracker.errors import NetworkError
from job_tracker.http_client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SEC, urllib_transport
from job_tracker.models import AuthTokens, User
from job_tracker.observability import log_event
from job_tracker.storage import MemoryStorage

TOKEN_VALIDATION_INTERVAL_SEC = 5 * 60
TOKEN_GRACE_PERIOD_SEC = 2 * 60
REFRESH_PATH = "/api/auth/refresh"

_ACCESS_TOKEN_KEY = "access_token"
_REFRESH_TOKEN_KEY = "refresh_token"
_USER_KEY = "user"
_LAST_VALIDATION_KEY = "last_token_validation"


class SessionManager:
    """Holds the signed-in user's tokens and refreshes them on demand.

    ``session_storage`` keeps the short-lived access token, ``storage`` the
    refresh token, user and last validation time. Concurrent refreshes are
    collapsed into one request.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        transport=urllib_transport,
        storage=None,
        session_storage=None,
        clock=time.time,
        on_session_expired=None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ):
        self.base_url = str(base_url or DEFAULT_BASE_URL).rstrip("/")
        self.transport = transport
        self.storage = storage if storage is not None else MemoryStorage()
        self.session_storage = session_storage if session_storage is not None else MemoryStorage()
        self.clock = clock
        self.on_session_expired = on_session_expired
        self.timeout_sec = float(timeout_sec)

        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.user: User | None = None
        self.last_token_validation = 0.0
        self.validation_failures = 0

        self._refresh_lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @property
    def is_logged_in(self) -> bool:
        return self.is_authenticated and self.user is not None

    def restore(self) -> bool:
        access_token = self.session_storage.get(_ACCESS_TOKEN_KEY)
        refresh_token = self.storage.get(_REFRESH_TOKEN_KEY)
        user = self.storage.get(_USER_KEY)
        if not (access_token and refresh_token and user):
            return False
        if not isinstance(user, dict):
            log_event("session_restore_failed", level="error", reason="stored user is not an object")
            self.clear()
            return False

        self.access_token = str(access_token)
        self.refresh_token = str(refresh_token)
        self.user = User.from_dict(user)
        try:
            self.last_token_validation = float(self.storage.get(_LAST_VALIDATION_KEY) or 0)
        except (TypeError, ValueError):
            self.last_token_validation = 0.0
        return True

    def save_auth(self, auth: AuthTokens):
        self.access_token = auth.token
        self.refresh_token = auth.refresh_token
        self.user = auth.user
        self.last_token_validation = self.clock()
        self.validation_failures = 0

        self.session_storage.set(_ACCESS_TOKEN_KEY, auth.token)
        if auth.refresh_token:
            self.storage.set(_REFRESH_TOKEN_KEY, auth.refresh_token)
        if auth.user is not None:
            self.storage.set(_USER_KEY, auth.user.to_dict())
        self.storage.set(_LAST_VALIDATION_KEY, self.last_token_validation)

    def set_user(self, user: User):
        self.user = user
        self.storage.set(_USER_KEY, user.to_dict())

    def clear(self, notify: bool = False):
        self.access_token = None
        self.refresh_token = None
        self.user = None
        self.last_token_validation = 0.0
        self.validation_failures = 0

        self.session_storage.remove(_ACCESS_TOKEN_KEY)
        for key in (_REFRESH_TOKEN_KEY, _USER_KEY, _LAST_VALIDATION_KEY):
            self.storage.remove(key)

        if notify and self.on_session_expired is not None:
            self.on_session_expired()

    def _apply_tokens(self, token: str, refresh_token: str | None):
        self.access_token = token
        self.session_storage.set(_ACCESS_TOKEN_KEY, token)
        if refresh_token:
            self.refresh_token = refresh_token
            self.storage.set(_REFRESH_TOKEN_KEY, refresh_token)

    def _request_refresh(self) -> bool:
        if not self.refresh_token:
            return False

        body = json.dumps({"refresh_token": self.refresh_token}).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        try:
            response = self.transport("POST", self.base_url + REFRESH_PATH, headers, body, self.timeout_sec)
        except NetworkError as e:
            log_event("token_refresh_failed", level="error", reason=e.message)
            return False

        if response.status_code < 200 or response.status_code >= 300:
            log_event("token_refresh_failed", level="error", status=response.status_code)
            return False
        try:
            payload = response.json()
        except ValueError:
            log_event("token_refresh_failed", level="error", reason="invalid JSON")
            return False

        data = payload.get("data") if isinstance(payload, dict) else None
        token = str((data or {}).get("token") or "").strip()
        if not token:
            log_event("token_refresh_failed", level="error", reason="missing token")
            return False

        self._apply_tokens(token, str(data.get("refresh_token") or "").strip() or None)
        log_event("token_refreshed")
        return True

    def refresh_after_rejection(self, rejected_token: str | None) -> str | None:
        """Return a usable access token after ``rejected_token`` got a 401.

        Only one refresh runs at a time; callers that waited on it pick up the
        token it produced instead of refreshing again.
        """
        with self._refresh_lock:
            if self.access_token and self.access_token != rejected_token:
                return self.access_token
            if self._request_refresh():
                return self.access_token
            return None

    def refresh_access_token(self) -> bool:
        with self._refresh_lock:
            ok = self._request_refresh()
        if not ok:
            self.clear()
        return ok

    def mark_validated(self):
        self.last_token_validation = self.clock()
        self.validation_failures = 0
        self.storage.set(_LAST_VALIDATION_KEY, self.last_token_validation)

    def mark_validation_failed(self):
        self.validation_failures += 1

    def should_validate_token(self) -> bool:
        if not self.access_token:
            return False
        elapsed = self.clock() - self.last_token_validation
        return not (elapsed < TOKEN_VALIDATION_INTERVAL_SEC and self.validation_failures == 0)

    def is_token_recently_valid(self) -> bool:
        if not self.access_token:
            return False
        elapsed = self.clock() - self.last_token_validation
        return elapsed < TOKEN_GRACE_PERIOD_SEC and self.validation_failures == 0

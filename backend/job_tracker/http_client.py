import json
import time
import uuid
from dataclasses import dataclass, field
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from job_tracker.errors import ApiError, AuthenticationError, NetworkError
from job_tracker.observability import log_event

DEFAULT_BASE_URL = "http://localhost:8010"
DEFAULT_TIMEOUT_SEC = 15
DEFAULT_SLOW_REQUEST_MS = 5000

_SUCCESS_CODES = {200, 201}
_RETRIABLE_STATUSES = {429, 502, 503, 504}
# A failed token refresh on these paths must not end the session.
_NON_CRITICAL_PATHS = ("/statistics", "/profile", "/validate")
# A 401 here means bad credentials, not an expired session.
_CREDENTIAL_PATHS = ("/api/auth/login", "/api/auth/register")

_STATUS_MESSAGES = {
    400: "invalid request parameters",
    403: "permission denied for this resource",
    404: "requested resource does not exist",
    409: "resource conflict",
    422: "data validation failed",
    429: "too many requests, please retry later",
    500: "internal server error, please retry later",
    502: "bad gateway, server temporarily unavailable",
    503: "service temporarily unavailable, please retry later",
    504: "gateway timeout, please check the network connection",
}
_SERVER_MESSAGE_STATUSES = {400, 409, 422}


@dataclass
class HttpResponse:
    status_code: int
    headers: dict = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str, default: str = "") -> str:
        return str(self.headers.get(name.lower(), default) or default)

    def json(self):
        return json.loads(self.body.decode("utf-8", errors="ignore") or "null")


@dataclass
class ApiResponse:
    success: bool
    message: str = ""
    data: object = None
    status_code: int = 200


def _lower_headers(headers) -> dict:
    if headers is None:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def urllib_transport(method: str, url: str, headers: dict, body: bytes | None, timeout_sec: float) -> HttpResponse:
    req = Request(url, data=body, headers=headers, method=method)
    try:
        with urlopen(req, timeout=timeout_sec) as resp:
            return HttpResponse(
                status_code=int(getattr(resp, "status", 200)),
                headers=_lower_headers(resp.headers),
                body=resp.read(),
            )
    except HTTPError as e:
        try:
            payload = e.read() or b""
        except Exception:
            payload = b""
        return HttpResponse(status_code=int(e.code), headers=_lower_headers(e.headers), body=payload)
    except (URLError, OSError) as e:
        reason = getattr(e, "reason", e)
        if isinstance(reason, TimeoutError) or "timed out" in str(reason):
            raise NetworkError("request timed out, please check the network connection") from e
        raise NetworkError(f"network connection failed: {reason}") from e


def encode_multipart(fields: dict | None, files: dict) -> tuple[bytes, str]:
    """Encode ``files`` as ``name -> (filename, content, content_type)``."""
    boundary = f"----jobtracker{uuid.uuid4().hex}"
    chunks = []
    for name, value in (fields or {}).items():
        chunks.append(f"--{boundary}\r\n".encode("utf-8"))
        chunks.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode("utf-8"))
        chunks.append(str(value).encode("utf-8") + b"\r\n")
    for name, (filename, content, content_type) in files.items():
        data = content if isinstance(content, bytes) else str(content).encode("utf-8")
        chunks.append(f"--{boundary}\r\n".encode("utf-8"))
        chunks.append(
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode("utf-8")
        )
        chunks.append(f"Content-Type: {content_type or 'application/octet-stream'}\r\n\r\n".encode("utf-8"))
        chunks.append(data + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def _server_message(response: HttpResponse) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        return str(payload.get("message") or "").strip()
    return ""


def _is_non_critical(path: str) -> bool:
    return any(marker in path for marker in _NON_CRITICAL_PATHS)


def _is_credential_request(path: str) -> bool:
    return path.split("?", 1)[0].rstrip("/").endswith(_CREDENTIAL_PATHS)


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session=None,
        transport=urllib_transport,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = 2,
        slow_request_ms: int = DEFAULT_SLOW_REQUEST_MS,
        sleep=time.sleep,
        clock=time.monotonic,
    ):
        self.base_url = str(base_url or DEFAULT_BASE_URL).rstrip("/")
        self.session = session
        self.transport = transport
        self.timeout_sec = float(timeout_sec)
        self.max_retries = max(0, int(max_retries))
        self.slow_request_ms = int(slow_request_ms)
        self._sleep = sleep
        self._clock = clock

    def build_url(self, path: str, params: dict | None = None) -> str:
        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}/{path.lstrip('/')}"
        query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        if query:
            url += ("&" if "?" in url else "?") + urlencode(query)
        return url

    def get(self, path: str, params: dict | None = None, **kwargs):
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json_body=None, **kwargs):
        return self.request("POST", path, json_body=json_body, **kwargs)

    def put(self, path: str, json_body=None, **kwargs):
        return self.request("PUT", path, json_body=json_body, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.request("DELETE", path, **kwargs)

    def request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_body=None,
        files: dict | None = None,
        fields: dict | None = None,
        headers: dict | None = None,
        raw: bool = False,
        timeout_sec: float | None = None,
    ):
        method = str(method or "GET").upper()
        url = self.build_url(path, params)
        timeout = float(timeout_sec) if timeout_sec is not None else self.timeout_sec

        base_headers = {"Accept": "application/json"}
        body = None
        if files:
            body, content_type = encode_multipart(fields, files)
            base_headers["Content-Type"] = content_type
        elif json_body is not None:
            body = json.dumps(json_body, ensure_ascii=False).encode("utf-8")
            base_headers["Content-Type"] = "application/json"
        base_headers.update(headers or {})

        response, token_used, duration_ms = self._send_with_retries(method, url, base_headers, body, timeout)
        if response.status_code == 401 and not _is_credential_request(path):
            response, duration_ms = self._retry_unauthorized(method, path, url, base_headers, body, timeout, token_used, response)

        if response.status_code >= 400:
            raise self._error_for(method, url, response, duration_ms)
        if raw:
            return response
        return self._unwrap(response)

    def _current_token(self) -> str | None:
        if self.session is None:
            return None
        return self.session.access_token

    def _send_once(self, method, url, headers, body, timeout):
        token = self._current_token()
        req_headers = dict(headers)
        if token:
            req_headers["Authorization"] = f"Bearer {token}"

        started = self._clock()
        try:
            response = self.transport(method, url, req_headers, body, timeout)
        finally:
            duration_ms = int((self._clock() - started) * 1000)
            if duration_ms > self.slow_request_ms:
                log_event("slow_request", level="warning", method=method, url=url, duration_ms=duration_ms)
        return response, token, duration_ms

    def _backoff_delay(self, attempt: int, response: HttpResponse | None) -> float:
        retry_after = response.header("retry-after").strip() if response is not None else ""
        try:
            delay = float(retry_after) if retry_after else 1.5 * (2**attempt)
        except ValueError:
            delay = 1.5 * (2**attempt)
        return min(12.0, max(0.25, delay))

    def _send_with_retries(self, method, url, headers, body, timeout):
        retries = self.max_retries if method == "GET" else 0
        attempt = 0
        while True:
            try:
                response, token, duration_ms = self._send_once(method, url, headers, body, timeout)
            except NetworkError as e:
                if attempt >= retries:
                    log_event("api_request_failed", level="error", method=method, url=url, message=e.message)
                    raise
                log_event("api_request_retry", level="warning", method=method, url=url, attempt=attempt + 1, message=e.message)
                self._sleep(self._backoff_delay(attempt, None))
                attempt += 1
                continue

            if response.status_code in _RETRIABLE_STATUSES and attempt < retries:
                log_event(
                    "api_request_retry",
                    level="warning",
                    method=method,
                    url=url,
                    attempt=attempt + 1,
                    status=response.status_code,
                )
                self._sleep(self._backoff_delay(attempt, response))
                attempt += 1
                continue
            return response, token, duration_ms

    def _session_lost(self, path: str, response: HttpResponse) -> AuthenticationError:
        if _is_non_critical(path):
            log_event("non_critical_auth_failure", level="warning", path=path)
            return AuthenticationError("authentication failed, please retry later", status_code=401)
        if self.session is not None:
            self.session.clear(notify=True)
        message = _server_message(response) or "session expired, please log in again"
        return AuthenticationError(message, status_code=401)

    def _retry_unauthorized(self, method, path, url, headers, body, timeout, token_used, response):
        if self.session is None or not self.session.refresh_token:
            raise self._session_lost(path, response)

        new_token = self.session.refresh_after_rejection(token_used)
        if not new_token:
            raise self._session_lost(path, response)

        retried, _, duration_ms = self._send_once(method, url, headers, body, timeout)
        return retried, duration_ms

    def _error_for(self, method: str, url: str, response: HttpResponse, duration_ms: int) -> ApiError:
        status = response.status_code
        server_message = _server_message(response)
        if status in _SERVER_MESSAGE_STATUSES and server_message:
            message = server_message
        else:
            message = _STATUS_MESSAGES.get(status) or server_message or "request failed"

        log_event(
            "api_request_failed",
            level="error",
            method=method,
            url=url,
            status=status,
            duration_ms=duration_ms,
            message=message,
        )
        payload = None
        try:
            payload = response.json()
        except ValueError:
            pass
        if status == 401:
            return AuthenticationError(server_message or "authentication failed", status_code=status, payload=payload)
        return ApiError(message, status_code=status, payload=payload)

    def _unwrap(self, response: HttpResponse) -> ApiResponse:
        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError("invalid JSON response from server", status_code=response.status_code) from e

        if isinstance(payload, dict) and payload.get("code") in _SUCCESS_CODES:
            return ApiResponse(
                success=True,
                message=str(payload.get("message") or ""),
                data=payload.get("data"),
                status_code=response.status_code,
            )
        message = payload.get("message") if isinstance(payload, dict) else ""
        raise ApiError(str(message or "request failed"), status_code=response.status_code, payload=payload)

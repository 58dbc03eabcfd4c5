from job_tracker.api.common import require_data
from job_tracker.auth import registration_payload, validate_credentials, validate_registration
from job_tracker.errors import ApiError
from job_tracker.models import AuthTokens, User
from job_tracker.observability import log_event

AUTH_BASE = "/api/auth"

_EMPTY_AUTH_STATS = {
    "total_users": 0,
    "active_users": 0,
    "new_registrations_today": 0,
    "login_attempts_today": 0,
}


class AuthAPI:
    def __init__(self, client):
        self.client = client

    def login(self, credentials: dict) -> AuthTokens:
        errors = validate_credentials(credentials)
        if errors:
            raise ValueError("; ".join(errors))
        payload = {k: v for k, v in credentials.items() if k != "remember_me"}
        resp = self.client.post(f"{AUTH_BASE}/login", payload)
        return AuthTokens.from_dict(require_data(resp, "login failed, unexpected server response"))

    def register(self, data: dict) -> AuthTokens:
        errors = validate_registration(data)
        if errors:
            raise ValueError("; ".join(errors))
        resp = self.client.post(f"{AUTH_BASE}/register", registration_payload(data))
        return AuthTokens.from_dict(require_data(resp, "registration failed, unexpected server response"))

    def refresh_token(self, refresh_token: str) -> AuthTokens:
        resp = self.client.post(f"{AUTH_BASE}/refresh", {"refresh_token": refresh_token})
        return AuthTokens.from_dict(require_data(resp, "token refresh failed"))

    def get_profile(self) -> User:
        resp = self.client.get(f"{AUTH_BASE}/profile")
        return User.from_dict(require_data(resp, "failed to load user profile"))

    def update_profile(self, data: dict) -> User:
        resp = self.client.put(f"{AUTH_BASE}/profile", data)
        return User.from_dict(require_data(resp, "failed to update user profile"))

    def change_password(self, current_password: str, new_password: str):
        resp = self.client.put(
            f"{AUTH_BASE}/change-password",
            {"current_password": current_password, "new_password": new_password},
        )
        if not resp.success:
            raise ApiError(resp.message or "failed to change password")

    def logout(self):
        resp = self.client.post(f"{AUTH_BASE}/logout")
        if not resp.success:
            raise ApiError(resp.message or "logout failed")

    def validate_token(self) -> User:
        resp = self.client.get(f"{AUTH_BASE}/validate")
        return User.from_dict(require_data(resp, "token validation failed"))

    def upload_avatar(self, filename: str, content: bytes, content_type: str = "image/png") -> dict:
        resp = self.client.post(f"{AUTH_BASE}/avatar", files={"avatar": (filename, content, content_type)})
        return require_data(resp, "failed to upload avatar")

    def get_sessions(self) -> list:
        try:
            resp = self.client.get(f"{AUTH_BASE}/sessions")
        except ApiError as e:
            log_event("auth_sessions_failed", level="error", message=e.message)
            return []
        return resp.data or []

    def terminate_session(self, session_id: str):
        resp = self.client.delete(f"{AUTH_BASE}/sessions/{session_id}")
        if not resp.success:
            raise ApiError(resp.message or "failed to terminate session")

    def _check_availability(self, kind: str, value: str) -> dict:
        try:
            resp = self.client.get(f"{AUTH_BASE}/check-{kind}", params={kind: value})
        except ApiError as e:
            log_event("availability_check_failed", level="error", kind=kind, message=e.message)
            return {"available": False, "message": "check failed"}
        return resp.data or {"available": False}

    def check_username_availability(self, username: str) -> dict:
        return self._check_availability("username", username)

    def check_email_availability(self, email: str) -> dict:
        return self._check_availability("email", email)

    def get_auth_stats(self) -> dict:
        try:
            resp = self.client.get(f"{AUTH_BASE}/stats")
        except ApiError as e:
            log_event("auth_stats_failed", level="error", message=e.message)
            return dict(_EMPTY_AUTH_STATS)
        return resp.data or dict(_EMPTY_AUTH_STATS)

    def health_check(self) -> bool:
        try:
            resp = self.client.get(f"{AUTH_BASE}/health")
        except ApiError:
            return False
        return resp.success is True

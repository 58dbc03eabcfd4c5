from job_tracker.api.auth import AuthAPI
from job_tracker.errors import ApiError
from job_tracker.observability import log_event

REMEMBERED_USERNAME_KEY = "remembered_username"


class AuthStore:
    """Login state on top of the client's SessionManager.

    Methods return ``True``/``False`` instead of raising, so callers can
    drive a prompt loop without catching API errors.
    """

    def __init__(self, client, api: AuthAPI | None = None):
        self.client = client
        self.session = client.session
        self.api = api or AuthAPI(client)

    @property
    def user(self):
        return self.session.user

    @property
    def is_logged_in(self) -> bool:
        return self.session.is_logged_in

    @property
    def user_name(self) -> str:
        return self.user.username if self.user else ""

    @property
    def user_email(self) -> str:
        return self.user.email if self.user else ""

    @property
    def remembered_username(self) -> str | None:
        return self.session.storage.get(REMEMBERED_USERNAME_KEY)

    def login(self, credentials: dict) -> bool:
        try:
            auth = self.api.login(credentials)
        except (ApiError, ValueError) as e:
            log_event("login_failed", level="error", username=credentials.get("username"), message=str(e))
            return False

        self.session.save_auth(auth)
        if credentials.get("remember_me"):
            self.session.storage.set(REMEMBERED_USERNAME_KEY, credentials.get("username"))
        else:
            self.session.storage.remove(REMEMBERED_USERNAME_KEY)
        log_event("login_succeeded", username=self.user_name)
        return True

    def register(self, data: dict) -> bool:
        try:
            auth = self.api.register(data)
        except (ApiError, ValueError) as e:
            log_event("register_failed", level="error", username=data.get("username"), message=str(e))
            return False
        self.session.save_auth(auth)
        log_event("register_succeeded", username=self.user_name)
        return True

    def logout(self):
        try:
            if self.session.refresh_token:
                self.api.logout()
        except ApiError as e:
            log_event("logout_failed", level="warning", message=e.message)
        finally:
            self.session.clear()

    def refresh_access_token(self) -> bool:
        return self.session.refresh_access_token()

    def fetch_user_profile(self):
        if not self.session.is_authenticated:
            return None
        try:
            profile = self.api.get_profile()
        except ApiError as e:
            log_event("profile_fetch_failed", level="error", message=e.message)
            return None
        self.session.set_user(profile)
        return profile

    def update_profile(self, data: dict) -> bool:
        if not self.session.is_logged_in:
            return False
        try:
            updated = self.api.update_profile(data)
        except ApiError as e:
            log_event("profile_update_failed", level="error", message=e.message)
            return False
        self.session.set_user(updated)
        return True

    def change_password(self, current_password: str, new_password: str) -> bool:
        if not self.session.is_authenticated:
            return False
        try:
            self.api.change_password(current_password, new_password)
        except ApiError as e:
            log_event("change_password_failed", level="error", message=e.message)
            return False
        # The server revokes existing tokens; sign in again with the new password.
        self.session.clear()
        return True

    def validate_token(self) -> bool:
        if not self.session.access_token:
            return False
        try:
            self.api.validate_token()
        except ApiError as e:
            log_event("token_validation_failed", level="warning", message=e.message)
            self.session.mark_validation_failed()
            return False
        self.session.mark_validated()
        return True

    def ensure_valid_session(self) -> bool:
        """Validate the token only when the last check is stale."""
        if not self.session.access_token:
            return False
        if self.session.is_token_recently_valid() or not self.session.should_validate_token():
            return True
        return self.validate_token()

import re

_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,50}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_credentials(credentials: dict | None) -> list[str]:
    if not isinstance(credentials, dict):
        return ["credentials must be an object"]
    errors = []
    if not str(credentials.get("username") or "").strip():
        errors.append("username is required")
    if not str(credentials.get("password") or ""):
        errors.append("password is required")
    return errors


def validate_registration(data: dict | None) -> list[str]:
    if not isinstance(data, dict):
        return ["registration data must be an object"]

    errors = []
    username = str(data.get("username") or "").strip()
    email = str(data.get("email") or "").strip()
    password = str(data.get("password") or "")
    confirm = str(data.get("confirm_password") or "")

    if not _USERNAME_PATTERN.match(username):
        errors.append(
            f"username {username!r} invalid (use 3-50 chars: letters, digits, underscore, hyphen)"
        )
    if not _EMAIL_PATTERN.match(email):
        errors.append(f"email {email!r} is not a valid address")
    if len(password) < 8:
        errors.append("password too short (minimum 8 characters)")
    elif len(password) > 128:
        errors.append("password too long (maximum 128 characters)")
    if password != confirm:
        errors.append("passwords do not match")
    return errors


def registration_payload(data: dict) -> dict:
    """Drop the client-only confirmation field before sending."""
    return {k: v for k, v in data.items() if k != "confirm_password"}

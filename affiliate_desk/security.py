"""Password rules for staff logins."""
from __future__ import annotations

MIN_PASSWORD_LENGTH = 8


class PasswordValidator:
    """Simple password strength validator for user creation and password changes."""

    @staticmethod
    def validate(password: str) -> tuple[bool, str]:
        if not password:
            return False, "Password cannot be empty"
        if len(password) < MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        return True, ""

    @staticmethod
    def validate_change(new_password: str, confirm_password: str) -> tuple[bool, str]:
        if new_password != confirm_password:
            return False, "New passwords do not match"
        return PasswordValidator.validate(new_password)

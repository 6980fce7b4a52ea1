"""Password strength rules shared by the API and Django's password validation."""
from __future__ import annotations

import re
from dataclasses import dataclass

from django.core.exceptions import ValidationError

PASSWORD_MIN_LENGTH = 12

_RULES = (
    ("min_length", lambda pw: len(pw) >= PASSWORD_MIN_LENGTH,
     f"Password must be at least {PASSWORD_MIN_LENGTH} characters."),
    ("has_uppercase", lambda pw: re.search(r"[A-Z]", pw) is not None,
     "Password must contain at least one uppercase letter."),
    ("has_lowercase", lambda pw: re.search(r"[a-z]", pw) is not None,
     "Password must contain at least one lowercase letter."),
    ("has_number", lambda pw: re.search(r"[0-9]", pw) is not None,
     "Password must contain at least one number."),
    ("has_symbol", lambda pw: re.search(r"[^A-Za-z0-9]", pw) is not None,
     "Password must contain at least one special character (!@#$%^&*...)."),
)

# Indexed by number of requirements met (0..5).
_STRENGTH_LEVELS = (
    (0, "Very Weak"),
    (1, "Weak"),
    (1, "Weak"),
    (2, "Fair"),
    (3, "Good"),
    (4, "Strong"),
)


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    label: str
    requirements: dict


def password_errors(password: str) -> list[str]:
    return [message for _key, check, message in _RULES if not check(password)]


def get_password_strength(password: str) -> PasswordStrength:
    requirements = {key: check(password) for key, check, _message in _RULES}
    score, label = _STRENGTH_LEVELS[sum(requirements.values())]
    return PasswordStrength(score=score, label=label, requirements=requirements)


class StrongPasswordValidator:
    """Django password validator enforcing length plus four character classes."""

    def validate(self, password, user=None):
        errors = password_errors(password)
        if errors:
            raise ValidationError(
                [ValidationError(message, code="password_too_weak") for message in errors]
            )

    def get_help_text(self):
        return (
            f"Your password must contain at least {PASSWORD_MIN_LENGTH} characters, "
            "with upper and lower case letters, a number and a special character."
        )

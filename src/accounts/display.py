"""Human-friendly display names for users."""
from __future__ import annotations

import re


def _title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split())


def _split_camel_case(value: str) -> list[str]:
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", value)
    spaced = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", spaced)
    return spaced.split()


def _name_from_email(email: str) -> str | None:
    local_part = email.split("@")[0]
    words = [w for w in re.split(r"[._\-\s]+", local_part) if w]
    if not words:
        return None
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def format_display_name(full_name: str | None, email: str | None = None) -> str:
    """Return a "First Last" style label for a user.

    >>> format_display_name("sheldon murphy")
    'Sheldon Murphy'
    >>> format_display_name("sheldonmurphy", "sheldon.murphy@tsm.com")
    'Sheldon Murphy'
    >>> format_display_name("JordanPollei")
    'Jordan Pollei'
    >>> format_display_name(None, None)
    'Unknown'
    """
    trimmed = (full_name or "").strip()

    if trimmed and " " in trimmed:
        return _title_case(trimmed)

    if trimmed:
        from_email = _name_from_email(email) if email else None
        if from_email and " " in from_email:
            return from_email
        camel = _split_camel_case(trimmed)
        if len(camel) > 1:
            return _title_case(" ".join(camel))
        if from_email:
            return from_email
        return _title_case(trimmed)

    if email:
        return _name_from_email(email) or email

    return "Unknown"

from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_int_range(value, field_name: str, *, min_value: int, max_value: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if number < min_value or number > max_value:
        raise ValidationError(f"{field_name} must be between {min_value} and {max_value}")
    return number


def require_owner_choice(user_id, family_member_id) -> None:
    if bool(user_id) == bool(family_member_id):
        raise ValidationError("Either user_id or family_member_id must be provided, but not both")


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: str) -> str:
    email = require_non_empty(value, "Email").lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or " " in email:
        raise ValidationError("Invalid email address")
    return email


def require_strong_password(value: str) -> str:
    require_min_length(value, "Password", 8)
    if not any(c.isupper() for c in value):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in value):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one number")
    return value


def require_phone(value: str) -> str:
    phone = require_non_empty(value, "Phone")
    if sum(c.isdigit() for c in phone) < 10:
        raise ValidationError("Phone number must be at least 10 digits")
    return phone


def capitalize_name(value: str) -> str:
    """``mary ann`` -> ``Mary Ann``."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in value.split())

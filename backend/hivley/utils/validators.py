"""Validation utilities."""
import os
import re
from typing import Dict, Iterable, Optional, Tuple

from hivley.errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6
SIGNUP_ROLES = ("provider", "client")


def validate_email(email: str) -> bool:
    """Validate email format."""
    return EMAIL_PATTERN.match(email) is not None


def validate_email_domain(email: str, allowed_domains: Iterable[str]) -> bool:
    """Check the address belongs to one of the allowed university domains."""
    email = email.lower()
    return any(email.endswith(f"@{domain.lower()}") for domain in allowed_domains)


def validate_password_strength(password: str) -> Tuple[bool, Optional[str]]:
    """Validate password strength."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"

    return True, None


def validate_signup(
    email: str,
    password: str,
    full_name: str,
    role: str,
    allowed_domains: Iterable[str]
) -> None:
    """Validate a signup form, raising ValidationError with per-field messages."""
    allowed_domains = list(allowed_domains)
    errors: Dict[str, str] = {}

    if not (email or "").strip():
        errors["email"] = "Email is required"
    elif not validate_email(email.strip()):
        errors["email"] = "Enter a valid email address"
    elif not validate_email_domain(email.strip(), allowed_domains):
        domains = " and ".join(f"@{d}" for d in allowed_domains)
        errors["email"] = f"Only {domains} email addresses are allowed."

    if not password:
        errors["password"] = "Password is required"
    else:
        ok, reason = validate_password_strength(password)
        if not ok:
            errors["password"] = reason

    if not (full_name or "").strip():
        errors["full_name"] = "Full name is required"

    if role not in SIGNUP_ROLES:
        errors["role"] = "Role must be provider or client"

    if errors:
        raise ValidationError("Signup form is invalid", fields=errors)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage."""
    # Remove path separators and null bytes
    filename = filename.replace("/", "_").replace("\\", "_").replace("\0", "")
    filename = filename.lstrip(".") or "file"

    # Limit length
    name, ext = os.path.splitext(filename)
    if len(name) > 100:
        name = name[:100]

    return name + ext

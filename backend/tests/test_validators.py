"""Tests for validation and helper utilities."""
import pytest

from hivley.errors import ValidationError
from hivley.utils.helpers import dedupe, pair_key
from hivley.utils.validators import (
    sanitize_filename,
    validate_email,
    validate_email_domain,
    validate_password_strength,
    validate_signup,
)

DOMAINS = ["psu.edu", "wm.edu"]


def test_validate_email():
    assert validate_email("student@psu.edu")
    assert not validate_email("student@")
    assert not validate_email("not an email")


def test_validate_email_domain():
    assert validate_email_domain("abc123@psu.edu", DOMAINS)
    assert validate_email_domain("Jane@WM.EDU", DOMAINS)
    assert not validate_email_domain("jane@gmail.com", DOMAINS)
    assert not validate_email_domain("jane@notpsu.edu", DOMAINS)


def test_validate_password_strength():
    assert validate_password_strength("secret") == (True, None)
    ok, reason = validate_password_strength("short")
    assert not ok
    assert "6" in reason


def test_validate_signup_accepts_valid_form():
    validate_signup("abc123@psu.edu", "secret1", "Alex Doe", "provider", DOMAINS)


def test_validate_signup_reports_each_field():
    with pytest.raises(ValidationError) as exc:
        validate_signup("alex@gmail.com", "123", " ", "admin", DOMAINS)

    fields = exc.value.fields
    assert fields["email"] == "Only @psu.edu and @wm.edu email addresses are allowed."
    assert set(fields) == {"email", "password", "full_name", "role"}


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "_.._etc_passwd"
    assert sanitize_filename(".hidden") == "hidden"
    assert sanitize_filename("a" * 150 + ".txt") == "a" * 100 + ".txt"


def test_pair_key_is_order_independent():
    assert pair_key("b", "a") == pair_key("a", "b") == "a:b"


def test_dedupe():
    assert dedupe(["b", "a", "b", "", "c"], exclude=("c",)) == ["b", "a"]

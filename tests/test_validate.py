"""Tests for configuration value validators."""

import pytest

from directory_resources.errors import ConfigValidationError
from directory_resources.validate import (
    is_app_uri,
    is_email_address,
    is_http_or_https_url,
    is_uuid,
    no_empty_strings,
    parse_rfc3339,
    role_scope_claim_value,
    validate_roles_scopes,
)


def test_is_uuid():
    assert is_uuid("00000000-0000-0000-0000-000000000001")
    with pytest.raises(ValueError):
        is_uuid("00000000000000000000000000000001")
    with pytest.raises(ValueError):
        is_uuid("nope")


@pytest.mark.parametrize("value", ["", "   ", "\t"])
def test_no_empty_strings(value):
    with pytest.raises(ValueError):
        no_empty_strings(value)


def test_urls():
    assert is_http_or_https_url("https://example.com/logout")
    with pytest.raises(ValueError):
        is_http_or_https_url("ftp://example.com")
    assert is_app_uri("api://my-app")
    assert is_app_uri("urn:example:app")
    with pytest.raises(ValueError):
        is_app_uri("mailto:someone@example.com")


def test_email():
    assert is_email_address("user@example.com")
    with pytest.raises(ValueError):
        is_email_address("user.example.com")


@pytest.mark.parametrize("value", ["has space", ".leading", ""])
def test_claim_value_rejects(value):
    with pytest.raises(ValueError):
        role_scope_claim_value(value)


def test_rfc3339_requires_offset():
    parsed = parse_rfc3339("2030-01-01T00:00:00Z")
    assert parsed.utcoffset().total_seconds() == 0
    with pytest.raises(ValueError):
        parse_rfc3339("2030-01-01T00:00:00")


def test_duplicate_values_across_roles_and_scopes():
    validate_roles_scopes(["Admin", None, ""], ["user.read"])
    with pytest.raises(ConfigValidationError, match="duplicate value found: 'Admin'"):
        validate_roles_scopes(["Admin"], ["Admin"])
    with pytest.raises(ConfigValidationError):
        validate_roles_scopes(["Reader", "Reader"], [])

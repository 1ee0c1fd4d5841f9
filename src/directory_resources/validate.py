"""Value validators shared by resource configuration models.

Each validator returns the value unchanged or raises ``ValueError`` so it can
be plugged into pydantic ``field_validator`` hooks directly.
"""

import re
import uuid
from collections.abc import Iterable
from datetime import datetime
from urllib.parse import urlparse

from .errors import ConfigValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_APP_URI_SCHEMES = ("http", "https", "api", "urn", "ms-appx")


def is_uuid(value: str) -> str:
    try:
        parsed = uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        raise ValueError(f"expected a UUID, got {value!r}") from None
    if str(parsed) != value.lower():
        raise ValueError(f"expected a UUID in 8-4-4-4-12 form, got {value!r}")
    return value


def no_empty_strings(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("value must not be empty or consist only of whitespace")
    return value


def is_http_or_https_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"expected an http or https URL, got {value!r}")
    return value


def is_app_uri(value: str) -> str:
    """Identifier URIs: URLs, ``api://`` and ``urn:`` forms."""
    parsed = urlparse(value)
    if parsed.scheme not in _APP_URI_SCHEMES:
        raise ValueError(
            f"expected a URI with one of the schemes {', '.join(_APP_URI_SCHEMES)}, got {value!r}"
        )
    if parsed.scheme in ("http", "https", "api") and not parsed.netloc:
        raise ValueError(f"expected a URI with a host, got {value!r}")
    return value


def is_email_address(value: str) -> str:
    if not _EMAIL_RE.match(value or ""):
        raise ValueError(f"expected an email address, got {value!r}")
    return value


def role_scope_claim_value(value: str) -> str:
    """Claim values of app roles and permission scopes end up in tokens."""
    no_empty_strings(value)
    if any(c.isspace() for c in value):
        raise ValueError(f"value must not contain whitespace, got {value!r}")
    if value.startswith("."):
        raise ValueError(f"value must not begin with a dot, got {value!r}")
    return value


def is_rfc3339_time(value: str) -> str:
    parse_rfc3339(value)
    return value


def parse_rfc3339(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"expected an RFC3339 timestamp, got {value!r}") from None
    if parsed.tzinfo is None:
        raise ValueError(f"RFC3339 timestamp must carry a UTC offset, got {value!r}")
    return parsed


def validate_roles_scopes(role_values: Iterable[str | None], scope_values: Iterable[str | None]) -> None:
    """
    Reject duplicate claim values across app roles and permission scopes.

    Raises:
        ConfigValidationError: If a value is used more than once
    """
    encountered: set[str] = set()
    for value in [*role_values, *scope_values]:
        if not value:
            continue
        if value in encountered:
            raise ConfigValidationError(
                f"validation failed: duplicate value found: {value!r}", attribute="app_role"
            )
        encountered.add(value)

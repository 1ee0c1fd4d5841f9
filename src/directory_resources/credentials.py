"""Construction of certificate and password credentials from configuration."""

import base64
import binascii
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from .errors import CredentialError
from .graph_client.models import KeyCredential, PasswordCredential
from .validate import parse_rfc3339

PASSWORD_LENGTH = 40
DEFAULT_PASSWORD_LIFETIME = timedelta(days=730)

_PEM_RE = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----(?P<body>.*?)-----END (?P=label)-----", re.DOTALL
)
_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}

KEY_USAGE = {
    "AsymmetricX509Cert": "Verify",
    "Symmetric": "Sign",
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration such as ``8760h`` or ``1h30m``.

    Raises:
        CredentialError: If the value is not a positive duration
    """
    text = value.strip()
    if not text or _DURATION_RE.sub("", text):
        raise CredentialError(
            f"Unable to parse duration {value!r}, expected e.g. '8760h' or '1h30m'",
            attribute="end_date_relative",
        )
    total = timedelta()
    for amount, unit in _DURATION_RE.findall(text):
        total += float(amount) * _DURATION_UNITS[unit]
    if total <= timedelta():
        raise CredentialError(
            f"Duration {value!r} must be positive", attribute="end_date_relative"
        )
    return total


def credential_dates(
    start_date: str | None,
    end_date: str | None,
    end_date_relative: str | None,
    default_lifetime: timedelta | None = None,
) -> tuple[datetime, datetime]:
    """
    Resolve start and end of a credential's validity.

    The start defaults to now; the end is absolute, relative to the start, or
    the default lifetime. Supplying both end forms is an error.
    """
    if end_date and end_date_relative:
        raise CredentialError(
            "Only one of end_date and end_date_relative may be specified", attribute="end_date"
        )

    try:
        start = parse_rfc3339(start_date) if start_date else datetime.now(timezone.utc)
    except ValueError as e:
        raise CredentialError(str(e), attribute="start_date") from None

    if end_date:
        try:
            end = parse_rfc3339(end_date)
        except ValueError as e:
            raise CredentialError(str(e), attribute="end_date") from None
    elif end_date_relative:
        end = start + parse_duration(end_date_relative)
    elif default_lifetime is not None:
        end = start + default_lifetime
    else:
        raise CredentialError(
            "One of end_date or end_date_relative must be specified", attribute="end_date"
        )

    if end <= start:
        raise CredentialError("end_date must be later than start_date", attribute="end_date")
    return start, end


def encode_certificate(value: str, encoding: str) -> str:
    """
    Convert certificate data in *encoding* to base64-encoded DER.

    Raises:
        CredentialError: If the value cannot be decoded
    """
    if encoding == "pem":
        match = _PEM_RE.search(value)
        if match is None:
            raise CredentialError("Failed to decode certificate block", attribute="value")
        if match.group("label") != "CERTIFICATE":
            raise CredentialError(
                f"Certificate block was of type {match.group('label')!r}, expected 'CERTIFICATE'",
                attribute="value",
            )
        body = "".join(match.group("body").split())
        try:
            der = base64.b64decode(body, validate=True)
        except binascii.Error as e:
            raise CredentialError(f"Failed to decode certificate body: {e}", attribute="value") from None
        return base64.b64encode(der).decode()

    if encoding == "hex":
        try:
            der = bytes.fromhex("".join(value.split()))
        except ValueError as e:
            raise CredentialError(f"Failed to decode hex certificate: {e}", attribute="value") from None
        return base64.b64encode(der).decode()

    if encoding == "base64":
        text = "".join(value.split())
        try:
            base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise CredentialError(f"Failed to decode base64 certificate: {e}", attribute="value") from None
        return text

    raise CredentialError(f"Unsupported encoding {encoding!r}", attribute="encoding")


def key_credential(
    value: str,
    encoding: str = "pem",
    key_type: str = "AsymmetricX509Cert",
    key_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    end_date_relative: str | None = None,
) -> KeyCredential:
    """Build a certificate credential ready to append to an application."""
    if key_type not in KEY_USAGE:
        raise CredentialError(f"Unsupported certificate type {key_type!r}", attribute="type")
    start, end = credential_dates(start_date, end_date, end_date_relative)
    return KeyCredential(
        key_id=key_id or str(uuid.uuid4()),
        type=key_type,
        usage=KEY_USAGE[key_type],
        key=encode_certificate(value, encoding),
        start_date_time=start,
        end_date_time=end,
    )


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return secrets.token_urlsafe(length)[:length]


def password_credential(
    value: str | None = None,
    description: str | None = None,
    key_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    end_date_relative: str | None = None,
) -> PasswordCredential:
    """Build a password credential, generating the secret when none is given."""
    start, end = credential_dates(
        start_date, end_date, end_date_relative, default_lifetime=DEFAULT_PASSWORD_LIFETIME
    )
    secret = value or generate_password()
    return PasswordCredential(
        key_id=key_id or str(uuid.uuid4()),
        display_name=description,
        secret_text=secret,
        start_date_time=start,
        end_date_time=end,
    )

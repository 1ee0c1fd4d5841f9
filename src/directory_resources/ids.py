"""Composite identifiers for sub-resources of an application."""

from dataclasses import dataclass
from enum import Enum

from .errors import ConfigValidationError
from .validate import is_uuid


class KeyType(str, Enum):
    """Credential flavours sharing one ID scheme."""

    CERTIFICATE = "certificate"
    PASSWORD = "password"


def _split(value: str, segments: int, kind: str) -> list[str]:
    parts = value.split("/")
    if len(parts) != segments or not all(parts):
        raise ConfigValidationError(
            f"{kind} ID should be in the format {_FORMATS[kind]} - but got {value!r}",
            attribute="id",
        )
    # Every segment but a credential key type must be a UUID
    for position, part in enumerate(parts):
        if segments == 3 and position == 1:
            continue
        try:
            is_uuid(part)
        except ValueError as e:
            raise ConfigValidationError(f"Parsing {kind} ID {value!r}: {e}", attribute="id") from None
    return parts


_FORMATS = {
    "App Role": "{objectId}/{roleId}",
    "OAuth2 Permission Scope": "{objectId}/{scopeId}",
    "Credential": "{objectId}/{keyType}/{keyId}",
}


@dataclass(frozen=True)
class AppRoleId:
    object_id: str
    role_id: str

    def __str__(self) -> str:
        return f"{self.object_id}/{self.role_id}"

    @classmethod
    def parse(cls, value: str) -> "AppRoleId":
        object_id, role_id = _split(value, 2, "App Role")
        return cls(object_id, role_id)


@dataclass(frozen=True)
class OAuth2PermissionScopeId:
    object_id: str
    scope_id: str

    def __str__(self) -> str:
        return f"{self.object_id}/{self.scope_id}"

    @classmethod
    def parse(cls, value: str) -> "OAuth2PermissionScopeId":
        object_id, scope_id = _split(value, 2, "OAuth2 Permission Scope")
        return cls(object_id, scope_id)


@dataclass(frozen=True)
class CredentialId:
    """Certificate or password credential on an application."""

    object_id: str
    key_type: KeyType
    key_id: str

    def __str__(self) -> str:
        return f"{self.object_id}/{self.key_type.value}/{self.key_id}"

    @classmethod
    def parse(cls, value: str, expected: KeyType | None = None) -> "CredentialId":
        object_id, key_type, key_id = _split(value, 3, "Credential")
        try:
            kind = KeyType(key_type)
        except ValueError:
            raise ConfigValidationError(
                f"Credential ID {value!r} has unknown key type {key_type!r}", attribute="id"
            ) from None
        if expected is not None and kind is not expected:
            raise ConfigValidationError(
                f"Credential ID {value!r} is a {kind.value} credential, expected {expected.value}",
                attribute="id",
            )
        return cls(object_id, kind, key_id)


def certificate_id(value: str) -> CredentialId:
    return CredentialId.parse(value, KeyType.CERTIFICATE)


def password_id(value: str) -> CredentialId:
    return CredentialId.parse(value, KeyType.PASSWORD)

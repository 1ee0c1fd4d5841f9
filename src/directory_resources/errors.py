"""Exceptions raised by directory resource adapters."""

from typing import Any


class DirectoryError(Exception):
    """Base exception for all directory resource errors."""

    def __init__(self, message: str, attribute: str | None = None):
        super().__init__(message)
        self.message = message
        self.attribute = attribute

    def __str__(self) -> str:
        text = self.message
        if self.attribute:
            text = f"{text} (attribute: {self.attribute})"
        if self.__cause__ is not None:
            text = f"{text}: {self.__cause__}"
        return text


class GraphError(DirectoryError):
    """Error response (or transport failure) from the directory API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.response = response

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status {self.status_code}")
        if self.code:
            parts.append(self.code)
        return " - ".join(parts)


class NotFoundError(GraphError):
    """The requested object does not exist (HTTP 404)."""

    def __init__(self, message: str, response: Any = None, attribute: str | None = None):
        super().__init__(message, status_code=404, code="Request_ResourceNotFound", response=response)
        self.attribute = attribute


class AlreadyExistsError(DirectoryError):
    """An object with the same identifier is already present."""

    def __init__(self, resource_type: str, resource_id: str, attribute: str | None = None):
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be managed it needs "
            f"to be imported into the state. Please see the documentation for {resource_type} "
            "for more information.",
            attribute=attribute,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class DuplicateNameError(DirectoryError):
    """An existing object already uses the requested display name."""

    def __init__(self, resource_type: str, existing_id: str, display_name: str):
        super().__init__(
            f"A {resource_type} with display name {display_name!r} already exists with object "
            f"ID {existing_id!r} - import it or disable prevent_duplicate_names",
            attribute="display_name",
        )
        self.resource_type = resource_type
        self.existing_id = existing_id


class ConfigValidationError(DirectoryError):
    """Configuration was rejected before any request was made."""


class CredentialError(ConfigValidationError):
    """A certificate or password credential could not be built."""


class ReplicationTimeoutError(DirectoryError):
    """A newly created object never became readable."""

    def __init__(self, object_id: str, attempts: int):
        super().__init__(
            f"Timed out waiting for object with ID {object_id!r} to replicate "
            f"after {attempts} attempts"
        )
        self.object_id = object_id
        self.attempts = attempts


class ResourceError(DirectoryError):
    """A remote operation failed; wraps the cause with the attempted action."""


class StateError(DirectoryError):
    """The local state file could not be written."""

"""Read-modify-write reconciliation of sub-resources stored on an application.

The directory API only accepts whole-collection updates of an application's
app roles, permission scopes and credentials. Several independently declared
sub-resources may target the same application at once, so every mutation
holds the application's named lock across the read and the write-back.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import AlreadyExistsError, GraphError, NotFoundError, ResourceError
from .graph_client import ApplicationsClient
from .graph_client.models import (
    Application,
    ApplicationApi,
    AppRole,
    GraphModel,
    KeyCredential,
    PasswordCredential,
    PermissionScope,
)
from .ids import AppRoleId, CredentialId, KeyType, OAuth2PermissionScopeId
from .locks import NamedLockRegistry, lock_by_name

E = TypeVar("E", bound=GraphModel)

logger = logging.getLogger(__name__)

APPLICATION_LOCK = "application"


@dataclass(frozen=True)
class SubCollection(Generic[E]):
    """How to find, replace and write back one collection on an application."""

    name: str
    resource_type: str
    id_attribute: str
    id_field: str
    get: Callable[[Application], list[E]]
    set: Callable[[Application, list[E]], None]
    patch: Callable[[Application], Application]
    make_id: Callable[[str, str], str]
    disable: Callable[[E], E] | None = None

    def entry_id(self, entry: E) -> str | None:
        return getattr(entry, self.id_field)

    def find(self, entries: list[E], entry_id: str) -> int | None:
        """Index of the entry with *entry_id*; collections are small and unordered."""
        for index, entry in enumerate(entries):
            if self.entry_id(entry) == entry_id:
                return index
        return None


def _get_app_roles(app: Application) -> list[AppRole]:
    return list(app.app_roles or [])


def _set_app_roles(app: Application, roles: list[AppRole]) -> None:
    app.app_roles = roles


def _get_scopes(app: Application) -> list[PermissionScope]:
    if app.api is None:
        return []
    return list(app.api.oauth2_permission_scopes or [])


def _set_scopes(app: Application, scopes: list[PermissionScope]) -> None:
    if app.api is None:
        app.api = ApplicationApi()
    app.api.oauth2_permission_scopes = scopes


def _get_key_credentials(app: Application) -> list[KeyCredential]:
    return list(app.key_credentials or [])


def _set_key_credentials(app: Application, credentials: list[KeyCredential]) -> None:
    app.key_credentials = credentials


def _get_password_credentials(app: Application) -> list[PasswordCredential]:
    return list(app.password_credentials or [])


def _set_password_credentials(app: Application, credentials: list[PasswordCredential]) -> None:
    app.password_credentials = credentials


def _disable(entry: E) -> E:
    return entry.model_copy(update={"is_enabled": False})


APP_ROLES: SubCollection[AppRole] = SubCollection(
    name="App Role",
    resource_type="application_app_role",
    id_attribute="role_id",
    id_field="id",
    get=_get_app_roles,
    set=_set_app_roles,
    patch=lambda app: Application(id=app.id, app_roles=_get_app_roles(app)),
    make_id=lambda object_id, entry_id: str(AppRoleId(object_id, entry_id)),
    disable=_disable,
)

OAUTH2_PERMISSION_SCOPES: SubCollection[PermissionScope] = SubCollection(
    name="OAuth2 Permission Scope",
    resource_type="application_oauth2_permission_scope",
    id_attribute="scope_id",
    id_field="id",
    get=_get_scopes,
    set=_set_scopes,
    patch=lambda app: Application(
        id=app.id, api=ApplicationApi(oauth2_permission_scopes=_get_scopes(app))
    ),
    make_id=lambda object_id, entry_id: str(OAuth2PermissionScopeId(object_id, entry_id)),
    disable=_disable,
)

# Credentials carry no enabled flag and are removed with a single write
KEY_CREDENTIALS: SubCollection[KeyCredential] = SubCollection(
    name="Certificate Credential",
    resource_type="application_certificate",
    id_attribute="key_id",
    id_field="key_id",
    get=_get_key_credentials,
    set=_set_key_credentials,
    patch=lambda app: Application(id=app.id, key_credentials=_get_key_credentials(app)),
    make_id=lambda object_id, entry_id: str(
        CredentialId(object_id, KeyType.CERTIFICATE, entry_id)
    ),
)

PASSWORD_CREDENTIALS: SubCollection[PasswordCredential] = SubCollection(
    name="Password Credential",
    resource_type="application_password",
    id_attribute="key_id",
    id_field="key_id",
    get=_get_password_credentials,
    set=_set_password_credentials,
    patch=lambda app: Application(id=app.id, password_credentials=_get_password_credentials(app)),
    make_id=lambda object_id, entry_id: str(CredentialId(object_id, KeyType.PASSWORD, entry_id)),
)


class SubResourceReconciler(Generic[E]):
    """
    Apply create/update/delete of one collection entry against its application.

    Each mutation runs under the application's named lock: fetch the
    application, mutate the collection in memory, write the collection back.
    Nothing is retried; callers decide whether to run again.
    """

    def __init__(
        self,
        client: ApplicationsClient,
        collection: SubCollection[E],
        registry: NamedLockRegistry | None = None,
    ):
        self.client = client
        self.collection = collection
        self.registry = registry

    def _fetch_parent(self, object_id: str) -> Application:
        try:
            return self.client.get(object_id)
        except NotFoundError:
            raise NotFoundError(
                f"Application with object ID {object_id!r} was not found",
                attribute="application_object_id",
            ) from None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving Application with object ID {object_id!r}",
                attribute="application_object_id",
            ) from e

    def _write(self, app: Application, action: str) -> None:
        try:
            self.client.update(self.collection.patch(app))
        except GraphError as e:
            raise ResourceError(f"{action} for Application with object ID {app.id!r}") from e

    def create(self, object_id: str, entry: E) -> E:
        """
        Append *entry* to the collection, generating an ID if it has none.

        Raises:
            NotFoundError: If the application does not exist
            AlreadyExistsError: If an entry with the same ID is present; nothing is written
        """
        entry_id = self.collection.entry_id(entry)
        if not entry_id:
            entry_id = str(uuid.uuid4())
            entry = entry.model_copy(update={self.collection.id_field: entry_id})

        with lock_by_name(APPLICATION_LOCK, object_id, self.registry):
            app = self._fetch_parent(object_id)
            entries = self.collection.get(app)
            if self.collection.find(entries, entry_id) is not None:
                raise AlreadyExistsError(
                    self.collection.resource_type,
                    self.collection.make_id(object_id, entry_id),
                    attribute=self.collection.id_attribute,
                )

            entries.append(entry)
            self.collection.set(app, entries)
            self._write(app, f"Adding {self.collection.name} {entry_id!r}")

        logger.info(f"Added {self.collection.name} {entry_id} to application {object_id}")
        return entry

    def update(self, object_id: str, entry: E) -> E | None:
        """
        Replace the entry with the same ID.

        Returns:
            The written entry, or None if it was removed out of band
        """
        entry_id = self.collection.entry_id(entry)
        if not entry_id:
            raise ResourceError(
                f"Cannot update {self.collection.name} without an ID",
                attribute=self.collection.id_attribute,
            )

        with lock_by_name(APPLICATION_LOCK, object_id, self.registry):
            app = self._fetch_parent(object_id)
            entries = self.collection.get(app)
            index = self.collection.find(entries, entry_id)
            if index is None:
                logger.debug(
                    f"{self.collection.name} {entry_id!r} (application {object_id!r}) was not "
                    "found - removing from state"
                )
                return None

            entries[index] = entry
            self.collection.set(app, entries)
            self._write(app, f"Updating {self.collection.name} {entry_id!r}")

        return entry

    def delete(self, object_id: str, entry_id: str) -> bool:
        """
        Remove the entry, disabling it first when the collection requires it.

        Returns:
            False if the entry was already gone
        """
        with lock_by_name(APPLICATION_LOCK, object_id, self.registry):
            app = self._fetch_parent(object_id)
            entries = self.collection.get(app)
            index = self.collection.find(entries, entry_id)
            if index is None:
                logger.debug(
                    f"{self.collection.name} {entry_id!r} (application {object_id!r}) was not "
                    "found - removing from state"
                )
                return False

            if self.collection.disable is not None:
                logger.debug(
                    f"Disabling {self.collection.name} {entry_id!r} for application "
                    f"{object_id!r} prior to removal"
                )
                entries[index] = self.collection.disable(entries[index])
                self.collection.set(app, entries)
                self._write(app, f"Disabling {self.collection.name} {entry_id!r}")

            logger.debug(
                f"Removing {self.collection.name} {entry_id!r} from application {object_id!r}"
            )
            remaining = [e for e in entries if self.collection.entry_id(e) != entry_id]
            self.collection.set(app, remaining)
            self._write(app, f"Removing {self.collection.name} {entry_id!r}")

        logger.info(f"Removed {self.collection.name} {entry_id} from application {object_id}")
        return True

    def read(self, object_id: str, entry_id: str) -> E | None:
        """Current entry, or None if it or its application is gone. Takes no lock."""
        try:
            app = self.client.get(object_id)
        except NotFoundError:
            logger.debug(f"Application with object ID {object_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving Application with object ID {object_id!r}",
                attribute="application_object_id",
            ) from e

        entries = self.collection.get(app)
        index = self.collection.find(entries, entry_id)
        if index is None:
            logger.debug(
                f"{self.collection.name} {entry_id!r} (application {object_id!r}) was not "
                "found - removing from state"
            )
            return None
        return entries[index]

    def replace_all(self, object_id: str, entries: list[E]) -> None:
        """
        Set the whole collection, disabling dropped entries in a first write.
        """
        desired_ids = {self.collection.entry_id(e) for e in entries}

        with lock_by_name(APPLICATION_LOCK, object_id, self.registry):
            app = self._fetch_parent(object_id)
            existing = self.collection.get(app)

            if self.collection.disable is not None:
                dropped = [
                    e
                    for e in existing
                    if self.collection.entry_id(e) not in desired_ids
                    and getattr(e, "is_enabled", None) is not False
                ]
                if dropped:
                    self.collection.set(
                        app,
                        [
                            self.collection.disable(e)
                            if self.collection.entry_id(e) not in desired_ids
                            else e
                            for e in existing
                        ],
                    )
                    self._write(app, f"Disabling {len(dropped)} {self.collection.name}(s)")

            self.collection.set(app, list(entries))
            self._write(app, f"Setting {self.collection.name}s")

"""Security group resource."""

import logging
import uuid
from typing import Any

from pydantic import field_validator

from ..errors import DuplicateNameError, GraphError, NotFoundError, ResourceError
from ..graph_client import GroupsClient, odata_quote
from ..graph_client.models import Group
from ..membership import reconcile_membership
from ..validate import is_uuid, no_empty_strings
from .base import Resource, ResourceConfig, ResourceData

logger = logging.getLogger(__name__)


class GroupConfig(ResourceConfig):
    """
    Declared group.

    ``members`` and ``owners`` left unset are not managed; an empty list
    removes everyone.
    """

    display_name: str
    description: str | None = None
    members: list[str] | None = None
    owners: list[str] | None = None
    prevent_duplicate_names: bool = False

    @field_validator("display_name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        return no_empty_strings(v)

    @field_validator("members", "owners")
    @classmethod
    def _check_ids(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [is_uuid(i) for i in v]


def flatten_group(group: Group) -> dict[str, Any]:
    return {
        "object_id": group.id,
        "display_name": group.display_name or "",
        "description": group.description or "",
        "mail_enabled": bool(group.mail_enabled),
        "security_enabled": bool(group.security_enabled),
    }


class GroupResource(Resource[GroupConfig]):
    type_name = "group"
    config_model = GroupConfig

    @property
    def client(self) -> GroupsClient:
        return self.graph.groups

    def _check_duplicate_name(self, display_name: str, object_id: str | None) -> None:
        try:
            existing = self.client.list(f"displayName eq {odata_quote(display_name)}")
        except GraphError as e:
            raise ResourceError(
                "Could not check for existing group(s)", attribute="display_name"
            ) from e
        for group in existing:
            if group.display_name != display_name or not group.id:
                continue
            if group.id != object_id:
                raise DuplicateNameError("group", group.id, display_name)

    def create(self, config: GroupConfig) -> ResourceData:
        if config.prevent_duplicate_names:
            self._check_duplicate_name(config.display_name, None)

        # Only security groups can be created through the API
        properties = Group(
            display_name=config.display_name,
            description=config.description or None,
            mail_nickname=str(uuid.uuid4()),
            security_enabled=True,
            mail_enabled=False,
        )
        if config.members:
            properties.members_bind = [self.graph.directory_object_url(m) for m in config.members]
        if config.owners:
            properties.owners_bind = [self.graph.directory_object_url(o) for o in config.owners]

        try:
            group = self.client.create(properties)
        except GraphError as e:
            raise ResourceError(f"Creating group {config.display_name!r}") from e

        if not group.id:
            raise ResourceError("Bad API response: API returned group with nil object ID")

        self.wait_for_replication(lambda: self.client.get(group.id), group.id)

        data = self.read(group.id)
        if data is None:
            raise ResourceError(f"Group with object ID {group.id!r} disappeared after creation")
        return data

    def read(self, resource_id: str) -> ResourceData | None:
        try:
            group = self.client.get(resource_id)
        except NotFoundError:
            logger.debug(f"Group with ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(f"Retrieving group with object ID {resource_id!r}") from e

        attributes = flatten_group(group)
        try:
            attributes["owners"] = sorted(self.client.list_owners(resource_id))
        except GraphError as e:
            raise ResourceError(
                f"Could not retrieve owners for group with object ID {resource_id!r}",
                attribute="owners",
            ) from e
        try:
            attributes["members"] = sorted(self.client.list_members(resource_id))
        except GraphError as e:
            raise ResourceError(
                f"Could not retrieve members for group with object ID {resource_id!r}",
                attribute="members",
            ) from e
        return ResourceData(id=resource_id, attributes=attributes)

    def update(
        self, resource_id: str, config: GroupConfig, previous: GroupConfig | None = None
    ) -> ResourceData | None:
        properties = Group(id=resource_id)
        if previous is None or config.display_name != previous.display_name:
            if config.prevent_duplicate_names:
                self._check_duplicate_name(config.display_name, resource_id)
            properties.display_name = config.display_name
        if previous is None or config.description != previous.description:
            properties.description = config.description or ""

        try:
            self.client.update(properties)
        except NotFoundError:
            logger.debug(f"Group with ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(f"Updating group with ID {resource_id!r}") from e

        if config.members is not None:
            reconcile_membership(
                "members",
                resource_id,
                config.members,
                self.client.list_members,
                self.client.add_members,
                self.client.remove_members,
            )

        if config.owners is not None:
            reconcile_membership(
                "owners",
                resource_id,
                config.owners,
                self.client.list_owners,
                self.client.add_owners,
                self.client.remove_owners,
                add_first=True,
            )

        return self.read(resource_id)

    def delete(self, resource_id: str) -> None:
        try:
            self.client.get(resource_id)
        except NotFoundError:
            raise ResourceError(
                f"Retrieving group with object ID {resource_id!r}: Group was not found",
                attribute="id",
            ) from None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving group with object ID {resource_id!r}", attribute="id"
            ) from e

        try:
            self.client.delete(resource_id)
        except GraphError as e:
            raise ResourceError(f"Deleting group with object ID {resource_id!r}") from e

"""Look up several users at once."""

import base64
import hashlib
from typing import Any

from pydantic import field_validator, model_validator

from ..errors import GraphError, NotFoundError, ResourceError
from ..graph_client import odata_quote
from ..graph_client.models import User
from ..resources.base import ResourceData
from ..validate import is_uuid, no_empty_strings
from .base import DataSource, DataSourceConfig


class UsersLookup(DataSourceConfig):
    object_ids: list[str] | None = None
    user_principal_names: list[str] | None = None
    mail_nicknames: list[str] | None = None
    ignore_missing: bool = False

    @field_validator("object_ids")
    @classmethod
    def _check_ids(cls, v: list[str] | None) -> list[str] | None:
        return [is_uuid(i) for i in v] if v is not None else v

    @field_validator("user_principal_names", "mail_nicknames")
    @classmethod
    def _check_names(cls, v: list[str] | None) -> list[str] | None:
        return [no_empty_strings(i) for i in v] if v is not None else v

    @model_validator(mode="after")
    def _exactly_one(self) -> "UsersLookup":
        given = [v for v in (self.object_ids, self.user_principal_names, self.mail_nicknames) if v]
        if len(given) != 1:
            raise ValueError(
                "exactly one of object_ids, user_principal_names or mail_nicknames must be specified"
            )
        return self


def users_id(upns: list[str]) -> str:
    digest = hashlib.sha1("-".join(upns).encode()).digest()
    return "users#" + base64.urlsafe_b64encode(digest).decode()


def flatten_user_summary(user: User) -> dict[str, Any]:
    return {
        "account_enabled": bool(user.account_enabled),
        "display_name": user.display_name or "",
        "mail": user.mail or "",
        "mail_nickname": user.mail_nickname or "",
        "object_id": user.id,
        "onpremises_immutable_id": user.on_premises_immutable_id or "",
        "onpremises_sam_account_name": user.on_premises_sam_account_name or "",
        "onpremises_user_principal_name": user.on_premises_user_principal_name or "",
        "usage_location": user.usage_location or "",
        "user_principal_name": user.user_principal_name or "",
    }


class UsersDataSource(DataSource[UsersLookup]):
    type_name = "users"
    config_model = UsersLookup

    def _find_one(self, field_name: str, attribute: str, value: str, ignore_missing: bool) -> User | None:
        query = f"{field_name} eq {odata_quote(value)}"
        try:
            result = self.graph.users.list(query)
        except GraphError as e:
            raise ResourceError(f"Finding user with {field_name} {value!r}") from e

        if len(result) > 1:
            raise ResourceError(
                f"More than one user found with {field_name} {value!r}", attribute=attribute
            )
        if not result:
            if ignore_missing:
                return None
            raise ResourceError(f"User with {field_name} {value!r} was not found", attribute=attribute)
        return result[0]

    def _get(self, object_id: str, ignore_missing: bool) -> User | None:
        try:
            return self.graph.users.get(object_id)
        except NotFoundError:
            if ignore_missing:
                return None
            raise ResourceError(
                f"User not found with object ID {object_id!r}", attribute="object_ids"
            ) from None
        except GraphError as e:
            raise ResourceError(f"Retrieving user with object ID {object_id!r}") from e

    def read(self, config: UsersLookup) -> ResourceData:
        found: list[User | None]
        if config.user_principal_names:
            expected = len(config.user_principal_names)
            found = [
                self._find_one("userPrincipalName", "user_principal_names", upn, config.ignore_missing)
                for upn in config.user_principal_names
            ]
        elif config.object_ids:
            expected = len(config.object_ids)
            found = [self._get(oid, config.ignore_missing) for oid in config.object_ids]
        else:
            nicknames = config.mail_nicknames or []
            expected = len(nicknames)
            found = [
                self._find_one("mailNickname", "mail_nicknames", nick, config.ignore_missing)
                for nick in nicknames
            ]

        users = [u for u in found if u is not None]
        if not config.ignore_missing and len(users) != expected:
            raise ResourceError(
                f"Unexpected number of users returned - expected: {expected}, actual: {len(users)}"
            )

        for user in users:
            if not user.id or not user.user_principal_name:
                raise ResourceError(
                    "Bad API response: API returned user with nil object ID or userPrincipalName"
                )

        upns = [u.user_principal_name for u in users]
        return ResourceData(
            id=users_id(upns),
            attributes={
                "object_ids": [u.id for u in users],
                "user_principal_names": upns,
                "mail_nicknames": [u.mail_nickname for u in users if u.mail_nickname],
                "users": [flatten_user_summary(u) for u in users],
            },
        )

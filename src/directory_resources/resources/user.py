"""Directory user resource."""

import logging
from typing import Any

from pydantic import Field, field_validator

from ..errors import GraphError, NotFoundError, ResourceError
from ..graph_client import UsersClient
from ..graph_client.models import PasswordProfile, User
from ..validate import no_empty_strings
from .base import Resource, ResourceConfig, ResourceData

logger = logging.getLogger(__name__)

# Optional profile attributes, keyed by configuration name
PROFILE_FIELDS = {
    "given_name": "given_name",
    "surname": "surname",
    "usage_location": "usage_location",
    "onpremises_immutable_id": "on_premises_immutable_id",
    "job_title": "job_title",
    "department": "department",
    "company_name": "company_name",
    "office_location": "office_location",
    "street_address": "street_address",
    "city": "city",
    "state": "state",
    "country": "country",
    "postal_code": "postal_code",
    "mobile_phone": "mobile_phone",
}


class UserConfig(ResourceConfig):
    user_principal_name: str
    display_name: str
    password: str = Field(min_length=1, max_length=256, repr=False)
    mail_nickname: str | None = None
    account_enabled: bool = True
    force_password_change: bool = False
    given_name: str | None = Field(default=None, max_length=64)
    surname: str | None = Field(default=None, max_length=64)
    usage_location: str | None = Field(default=None, min_length=2, max_length=2)
    onpremises_immutable_id: str | None = None
    job_title: str | None = Field(default=None, max_length=128)
    department: str | None = Field(default=None, max_length=64)
    company_name: str | None = Field(default=None, max_length=64)
    office_location: str | None = None
    street_address: str | None = Field(default=None, max_length=1024)
    city: str | None = Field(default=None, max_length=128)
    state: str | None = Field(default=None, max_length=128)
    country: str | None = Field(default=None, max_length=128)
    postal_code: str | None = Field(default=None, max_length=40)
    mobile_phone: str | None = Field(default=None, max_length=64)

    @field_validator("user_principal_name")
    @classmethod
    def _check_upn(cls, v: str) -> str:
        no_empty_strings(v)
        if "@" not in v:
            raise ValueError(f"user_principal_name must be of the form user@domain, got {v!r}")
        return v

    @field_validator("display_name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        return no_empty_strings(v)

    @property
    def effective_mail_nickname(self) -> str:
        """Nickname defaults to the local part of the UPN."""
        return self.mail_nickname or self.user_principal_name.split("@")[0]


def flatten_user(user: User) -> dict[str, Any]:
    return {
        "object_id": user.id,
        "user_principal_name": user.user_principal_name or "",
        "display_name": user.display_name or "",
        "mail": user.mail or "",
        "mail_nickname": user.mail_nickname or "",
        "account_enabled": bool(user.account_enabled),
        "onpremises_sam_account_name": user.on_premises_sam_account_name or "",
        "onpremises_user_principal_name": user.on_premises_user_principal_name or "",
        "user_type": user.user_type or "",
        **{name: getattr(user, field) or "" for name, field in PROFILE_FIELDS.items()},
    }


class UserResource(Resource[UserConfig]):
    type_name = "user"
    config_model = UserConfig

    @property
    def client(self) -> UsersClient:
        return self.graph.users

    def _properties(self, config: UserConfig, **extra: Any) -> User:
        profile = {field: getattr(config, name) for name, field in PROFILE_FIELDS.items()}
        return User(
            account_enabled=config.account_enabled,
            display_name=config.display_name,
            mail_nickname=config.effective_mail_nickname,
            user_principal_name=config.user_principal_name,
            **{k: v for k, v in profile.items() if v},
            **extra,
        )

    def create(self, config: UserConfig) -> ResourceData:
        properties = self._properties(
            config,
            password_profile=PasswordProfile(
                force_change_password_next_sign_in=config.force_password_change,
                password=config.password,
            ),
        )
        try:
            user = self.client.create(properties)
        except GraphError as e:
            raise ResourceError(f"Creating user {config.user_principal_name!r}") from e

        if not user.id:
            raise ResourceError("Bad API response: API returned user with nil object ID")

        self.wait_for_replication(lambda: self.client.get(user.id), user.id)

        data = self.read(user.id)
        if data is None:
            raise ResourceError(f"User with object ID {user.id!r} disappeared after creation")
        return data

    def read(self, resource_id: str) -> ResourceData | None:
        try:
            user = self.client.get(resource_id)
        except NotFoundError:
            logger.debug(f"User with object ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(f"Retrieving user with object ID {resource_id!r}") from e
        return ResourceData(id=resource_id, attributes=flatten_user(user))

    def update(
        self, resource_id: str, config: UserConfig, previous: UserConfig | None = None
    ) -> ResourceData | None:
        extra: dict[str, Any] = {"id": resource_id}
        # Resetting the password on every update would sign the user out
        if previous is None or previous.password != config.password:
            extra["password_profile"] = PasswordProfile(
                force_change_password_next_sign_in=config.force_password_change,
                password=config.password,
            )
        # Profile fields removed from the configuration are cleared remotely
        if previous is not None:
            for name, field in PROFILE_FIELDS.items():
                if getattr(previous, name) and not getattr(config, name):
                    extra[field] = ""

        try:
            self.client.update(self._properties(config, **extra))
        except NotFoundError:
            logger.debug(f"User with object ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(f"Updating user with ID {resource_id!r}") from e

        return self.read(resource_id)

    def delete(self, resource_id: str) -> None:
        try:
            self.client.get(resource_id)
        except NotFoundError:
            raise ResourceError(
                f"Retrieving user with object ID {resource_id!r}: User was not found",
                attribute="id",
            ) from None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving user with object ID {resource_id!r}", attribute="id"
            ) from e

        try:
            self.client.delete(resource_id)
        except GraphError as e:
            raise ResourceError(
                f"Deleting user with object ID {resource_id!r}, got status {e.status_code}",
                attribute="id",
            ) from e

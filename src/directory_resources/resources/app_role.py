"""App role managed independently of its parent application."""

from typing import Any, Literal

from pydantic import Field, field_validator

from ..graph_client.models import AppRole
from ..ids import AppRoleId
from ..reconcile import APP_ROLES, SubResourceReconciler
from ..validate import is_uuid, no_empty_strings, role_scope_claim_value
from .base import Resource, ResourceConfig, ResourceData


class AppRoleConfig(ResourceConfig):
    application_object_id: str
    role_id: str | None = None
    allowed_member_types: list[Literal["User", "Application"]] = Field(min_length=1)
    description: str
    display_name: str
    enabled: bool = True
    value: str | None = None

    @field_validator("application_object_id")
    @classmethod
    def _check_object_id(cls, v: str) -> str:
        return is_uuid(v)

    @field_validator("role_id")
    @classmethod
    def _check_role_id(cls, v: str | None) -> str | None:
        return is_uuid(v) if v is not None else v

    @field_validator("description", "display_name")
    @classmethod
    def _check_text(cls, v: str) -> str:
        return no_empty_strings(v)

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: str | None) -> str | None:
        return role_scope_claim_value(v) if v is not None else v

    def to_entry(self, role_id: str | None = None) -> AppRole:
        return AppRole(
            id=role_id or self.role_id,
            allowed_member_types=sorted(self.allowed_member_types),
            description=self.description,
            display_name=self.display_name,
            is_enabled=self.enabled,
            value=self.value,
        )


def flatten_app_role(object_id: str, role: AppRole) -> dict[str, Any]:
    return {
        "application_object_id": object_id,
        "role_id": role.id,
        "allowed_member_types": sorted(role.allowed_member_types or []),
        "description": role.description or "",
        "display_name": role.display_name or "",
        "enabled": bool(role.is_enabled),
        "value": role.value or "",
    }


class AppRoleResource(Resource[AppRoleConfig]):
    type_name = "application_app_role"
    config_model = AppRoleConfig

    @property
    def reconciler(self) -> SubResourceReconciler[AppRole]:
        return SubResourceReconciler(self.graph.applications, APP_ROLES, self.registry)

    def create(self, config: AppRoleConfig) -> ResourceData:
        role = self.reconciler.create(config.application_object_id, config.to_entry())
        role_id = str(AppRoleId(config.application_object_id, role.id))
        return ResourceData(id=role_id, attributes=flatten_app_role(config.application_object_id, role))

    def read(self, resource_id: str) -> ResourceData | None:
        rid = AppRoleId.parse(resource_id)
        role = self.reconciler.read(rid.object_id, rid.role_id)
        if role is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_app_role(rid.object_id, role))

    def update(
        self, resource_id: str, config: AppRoleConfig, previous: AppRoleConfig | None = None
    ) -> ResourceData | None:
        rid = AppRoleId.parse(resource_id)
        if rid.object_id != config.application_object_id or (
            config.role_id and config.role_id != rid.role_id
        ):
            return super().update(resource_id, config)

        role = self.reconciler.update(rid.object_id, config.to_entry(rid.role_id))
        if role is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_app_role(rid.object_id, role))

    def delete(self, resource_id: str) -> None:
        rid = AppRoleId.parse(resource_id)
        self.reconciler.delete(rid.object_id, rid.role_id)

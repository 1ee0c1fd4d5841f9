"""OAuth2 permission scope managed independently of its parent application."""

from typing import Any, Literal

from pydantic import field_validator

from ..graph_client.models import PermissionScope
from ..ids import OAuth2PermissionScopeId
from ..reconcile import OAUTH2_PERMISSION_SCOPES, SubResourceReconciler
from ..validate import is_uuid, no_empty_strings, role_scope_claim_value
from .base import Resource, ResourceConfig, ResourceData


class OAuth2PermissionScopeConfig(ResourceConfig):
    application_object_id: str
    scope_id: str | None = None
    admin_consent_description: str
    admin_consent_display_name: str
    enabled: bool = True
    type: Literal["Admin", "User"] = "User"
    user_consent_description: str | None = None
    user_consent_display_name: str | None = None
    value: str

    @field_validator("application_object_id")
    @classmethod
    def _check_object_id(cls, v: str) -> str:
        return is_uuid(v)

    @field_validator("scope_id")
    @classmethod
    def _check_scope_id(cls, v: str | None) -> str | None:
        return is_uuid(v) if v is not None else v

    @field_validator("admin_consent_description", "admin_consent_display_name")
    @classmethod
    def _check_admin_text(cls, v: str) -> str:
        return no_empty_strings(v)

    @field_validator("user_consent_description", "user_consent_display_name")
    @classmethod
    def _check_user_text(cls, v: str | None) -> str | None:
        return no_empty_strings(v) if v is not None else v

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: str) -> str:
        return role_scope_claim_value(v)

    def to_entry(self, scope_id: str | None = None) -> PermissionScope:
        return PermissionScope(
            id=scope_id or self.scope_id,
            admin_consent_description=self.admin_consent_description,
            admin_consent_display_name=self.admin_consent_display_name,
            is_enabled=self.enabled,
            type=self.type,
            user_consent_description=self.user_consent_description,
            user_consent_display_name=self.user_consent_display_name,
            value=self.value,
        )


def flatten_permission_scope(object_id: str, scope: PermissionScope) -> dict[str, Any]:
    return {
        "application_object_id": object_id,
        "scope_id": scope.id,
        "admin_consent_description": scope.admin_consent_description or "",
        "admin_consent_display_name": scope.admin_consent_display_name or "",
        "enabled": bool(scope.is_enabled),
        "type": scope.type or "",
        "user_consent_description": scope.user_consent_description or "",
        "user_consent_display_name": scope.user_consent_display_name or "",
        "value": scope.value or "",
    }


class OAuth2PermissionScopeResource(Resource[OAuth2PermissionScopeConfig]):
    type_name = "application_oauth2_permission_scope"
    config_model = OAuth2PermissionScopeConfig

    @property
    def reconciler(self) -> SubResourceReconciler[PermissionScope]:
        return SubResourceReconciler(self.graph.applications, OAUTH2_PERMISSION_SCOPES, self.registry)

    def create(self, config: OAuth2PermissionScopeConfig) -> ResourceData:
        scope = self.reconciler.create(config.application_object_id, config.to_entry())
        return ResourceData(
            id=str(OAuth2PermissionScopeId(config.application_object_id, scope.id)),
            attributes=flatten_permission_scope(config.application_object_id, scope),
        )

    def read(self, resource_id: str) -> ResourceData | None:
        sid = OAuth2PermissionScopeId.parse(resource_id)
        scope = self.reconciler.read(sid.object_id, sid.scope_id)
        if scope is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_permission_scope(sid.object_id, scope))

    def update(
        self,
        resource_id: str,
        config: OAuth2PermissionScopeConfig,
        previous: OAuth2PermissionScopeConfig | None = None,
    ) -> ResourceData | None:
        sid = OAuth2PermissionScopeId.parse(resource_id)
        if sid.object_id != config.application_object_id or (
            config.scope_id and config.scope_id != sid.scope_id
        ):
            return super().update(resource_id, config)

        scope = self.reconciler.update(sid.object_id, config.to_entry(sid.scope_id))
        if scope is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_permission_scope(sid.object_id, scope))

    def delete(self, resource_id: str) -> None:
        sid = OAuth2PermissionScopeId.parse(resource_id)
        self.reconciler.delete(sid.object_id, sid.scope_id)

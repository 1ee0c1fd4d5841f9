"""Resource adapters keyed by their configuration type name."""

from .app_role import AppRoleConfig, AppRoleResource
from .application import ApplicationConfig, ApplicationResource
from .base import Resource, ResourceConfig, ResourceData, decode_config
from .credential import CertificateConfig, CertificateResource, PasswordConfig, PasswordResource
from .group import GroupConfig, GroupResource
from .oauth2_permission_scope import OAuth2PermissionScopeConfig, OAuth2PermissionScopeResource
from .user import UserConfig, UserResource

RESOURCE_TYPES: dict[str, type[Resource]] = {
    cls.type_name: cls
    for cls in (
        ApplicationResource,
        AppRoleResource,
        OAuth2PermissionScopeResource,
        CertificateResource,
        PasswordResource,
        GroupResource,
        UserResource,
    )
}

__all__ = [
    "RESOURCE_TYPES",
    "AppRoleConfig",
    "AppRoleResource",
    "ApplicationConfig",
    "ApplicationResource",
    "CertificateConfig",
    "CertificateResource",
    "GroupConfig",
    "GroupResource",
    "OAuth2PermissionScopeConfig",
    "OAuth2PermissionScopeResource",
    "PasswordConfig",
    "PasswordResource",
    "Resource",
    "ResourceConfig",
    "ResourceData",
    "UserConfig",
    "UserResource",
    "decode_config",
]

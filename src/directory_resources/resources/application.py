"""Application registration resource."""

import logging
from typing import Any, Literal

from pydantic import Field, field_validator

from ..errors import DuplicateNameError, GraphError, NotFoundError, ResourceError
from ..graph_client import ApplicationsClient, odata_quote
from ..graph_client.models import (
    Application,
    ApplicationApi,
    ApplicationWeb,
    AppRole,
    ImplicitGrantSettings,
    OptionalClaim,
    OptionalClaims,
    PermissionScope,
    RequiredResourceAccess,
    ResourceAccess,
)
from ..membership import reconcile_membership
from ..reconcile import APP_ROLES, OAUTH2_PERMISSION_SCOPES, SubResourceReconciler
from ..validate import (
    is_app_uri,
    is_http_or_https_url,
    is_uuid,
    no_empty_strings,
    role_scope_claim_value,
    validate_roles_scopes,
)
from .base import Resource, ResourceConfig, ResourceData

logger = logging.getLogger(__name__)

GroupMembershipClaim = Literal["None", "SecurityGroup", "DirectoryRole", "ApplicationGroup", "All"]


class AppRoleBlock(ResourceConfig):
    id: str
    allowed_member_types: list[Literal["User", "Application"]] = Field(min_length=1)
    description: str
    display_name: str
    enabled: bool = True
    value: str | None = None

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        return is_uuid(v)

    @field_validator("description", "display_name")
    @classmethod
    def _check_text(cls, v: str) -> str:
        return no_empty_strings(v)

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: str | None) -> str | None:
        return role_scope_claim_value(v) if v is not None else v


class OAuth2PermissionScopeBlock(ResourceConfig):
    id: str
    admin_consent_description: str | None = None
    admin_consent_display_name: str | None = None
    enabled: bool = True
    type: Literal["Admin", "User"] = "User"
    user_consent_description: str | None = None
    user_consent_display_name: str | None = None
    value: str | None = None

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        return is_uuid(v)

    @field_validator(
        "admin_consent_description",
        "admin_consent_display_name",
        "user_consent_description",
        "user_consent_display_name",
    )
    @classmethod
    def _check_text(cls, v: str | None) -> str | None:
        return no_empty_strings(v) if v is not None else v

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: str | None) -> str | None:
        return role_scope_claim_value(v) if v is not None else v


class ApiBlock(ResourceConfig):
    oauth2_permission_scopes: list[OAuth2PermissionScopeBlock] | None = None


class OptionalClaimBlock(ResourceConfig):
    name: str
    source: str | None = None
    essential: bool = False
    additional_properties: list[str] = Field(default_factory=list)


class OptionalClaimsBlock(ResourceConfig):
    access_token: list[OptionalClaimBlock] = Field(default_factory=list)
    id_token: list[OptionalClaimBlock] = Field(default_factory=list)


class ResourceAccessBlock(ResourceConfig):
    id: str
    type: Literal["Role", "Scope"]

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        return is_uuid(v)


class RequiredResourceAccessBlock(ResourceConfig):
    resource_app_id: str
    resource_access: list[ResourceAccessBlock] = Field(min_length=1)


class ImplicitGrantBlock(ResourceConfig):
    access_token_issuance_enabled: bool = False


class WebBlock(ResourceConfig):
    homepage_url: str | None = None
    logout_url: str | None = None
    redirect_uris: list[str] = Field(default_factory=list)
    implicit_grant: ImplicitGrantBlock | None = None

    @field_validator("homepage_url", "logout_url")
    @classmethod
    def _check_url(cls, v: str | None) -> str | None:
        return is_http_or_https_url(v) if v is not None else v

    @field_validator("redirect_uris")
    @classmethod
    def _check_redirects(cls, v: list[str]) -> list[str]:
        return [no_empty_strings(uri) for uri in v]


class ApplicationConfig(ResourceConfig):
    """Declared shape of an application.

    ``app_roles``, ``api.oauth2_permission_scopes`` and ``owners`` left unset
    are not managed, so standalone sub-resources can own them instead.
    """

    display_name: str
    api: ApiBlock | None = None
    app_roles: list[AppRoleBlock] | None = None
    fallback_public_client_enabled: bool = False
    group_membership_claims: GroupMembershipClaim | None = None
    identifier_uris: list[str] = Field(default_factory=list)
    optional_claims: OptionalClaimsBlock | None = None
    owners: list[str] | None = None
    required_resource_access: list[RequiredResourceAccessBlock] = Field(default_factory=list)
    sign_in_audience: Literal["AzureADMyOrg", "AzureADMultipleOrgs"] = "AzureADMyOrg"
    web: WebBlock | None = None
    prevent_duplicate_names: bool = False

    @field_validator("display_name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        return no_empty_strings(v)

    @field_validator("identifier_uris")
    @classmethod
    def _check_uris(cls, v: list[str]) -> list[str]:
        return [is_app_uri(uri) for uri in v]

    @field_validator("owners")
    @classmethod
    def _check_owners(cls, v: list[str] | None) -> list[str] | None:
        return [no_empty_strings(o) for o in v] if v is not None else v

    @property
    def scopes(self) -> list[OAuth2PermissionScopeBlock] | None:
        return self.api.oauth2_permission_scopes if self.api else None


def expand_app_roles(blocks: list[AppRoleBlock]) -> list[AppRole]:
    return [
        AppRole(
            id=b.id,
            allowed_member_types=sorted(b.allowed_member_types),
            description=b.description,
            display_name=b.display_name,
            is_enabled=b.enabled,
            value=b.value,
        )
        for b in blocks
    ]


def expand_permission_scopes(blocks: list[OAuth2PermissionScopeBlock]) -> list[PermissionScope]:
    return [
        PermissionScope(
            id=b.id,
            admin_consent_description=b.admin_consent_description,
            admin_consent_display_name=b.admin_consent_display_name,
            is_enabled=b.enabled,
            type=b.type,
            user_consent_description=b.user_consent_description,
            user_consent_display_name=b.user_consent_display_name,
            value=b.value,
        )
        for b in blocks
    ]


def _expand_optional_claim(blocks: list[OptionalClaimBlock]) -> list[OptionalClaim]:
    return [
        OptionalClaim(
            name=b.name,
            source=b.source or None,
            essential=b.essential,
            additional_properties=list(b.additional_properties),
        )
        for b in blocks
    ]


def expand_application(config: ApplicationConfig, object_id: str | None = None) -> Application:
    """Translate configuration into an application payload."""
    web = config.web or WebBlock()
    implicit = web.implicit_grant or ImplicitGrantBlock()
    claims = config.optional_claims or OptionalClaimsBlock()

    app = Application(
        id=object_id,
        display_name=config.display_name,
        identifier_uris=list(config.identifier_uris),
        is_fallback_public_client=config.fallback_public_client_enabled,
        group_membership_claims=config.group_membership_claims,
        optional_claims=OptionalClaims(
            access_token=_expand_optional_claim(claims.access_token),
            id_token=_expand_optional_claim(claims.id_token),
        ),
        required_resource_access=[
            RequiredResourceAccess(
                resource_app_id=r.resource_app_id,
                resource_access=[ResourceAccess(id=a.id, type=a.type) for a in r.resource_access],
            )
            for r in config.required_resource_access
        ],
        sign_in_audience=config.sign_in_audience,
        web=ApplicationWeb(
            home_page_url=web.homepage_url,
            logout_url=web.logout_url,
            redirect_uris=sorted(set(web.redirect_uris)),
            implicit_grant_settings=ImplicitGrantSettings(
                enable_access_token_issuance=implicit.access_token_issuance_enabled
            ),
        ),
    )
    if config.app_roles is not None:
        app.app_roles = expand_app_roles(config.app_roles)
    if config.scopes is not None:
        app.api = ApplicationApi(oauth2_permission_scopes=expand_permission_scopes(config.scopes))
    return app


def flatten_app_roles(roles: list[AppRole] | None) -> list[dict[str, Any]]:
    return [
        {
            "id": r.id,
            "allowed_member_types": sorted(r.allowed_member_types or []),
            "description": r.description or "",
            "display_name": r.display_name or "",
            "enabled": bool(r.is_enabled),
            "value": r.value or "",
        }
        for r in roles or []
    ]


def flatten_permission_scopes(scopes: list[PermissionScope] | None) -> list[dict[str, Any]]:
    return [
        {
            "id": s.id,
            "admin_consent_description": s.admin_consent_description or "",
            "admin_consent_display_name": s.admin_consent_display_name or "",
            "enabled": bool(s.is_enabled),
            "type": s.type or "",
            "user_consent_description": s.user_consent_description or "",
            "user_consent_display_name": s.user_consent_display_name or "",
            "value": s.value or "",
        }
        for s in scopes or []
    ]


def _flatten_optional_claims(claims: OptionalClaims | None) -> list[dict[str, Any]]:
    if claims is None:
        return []

    def _claims(items: list[OptionalClaim] | None) -> list[dict[str, Any]]:
        return [
            {
                "name": c.name,
                "source": c.source or "",
                "essential": bool(c.essential),
                "additional_properties": list(c.additional_properties or []),
            }
            for c in items or []
        ]

    access_token = _claims(claims.access_token)
    id_token = _claims(claims.id_token)
    if not access_token and not id_token:
        return []
    return [{"access_token": access_token, "id_token": id_token}]


def _flatten_web(web: ApplicationWeb | None) -> list[dict[str, Any]]:
    if web is None:
        return []
    implicit = web.implicit_grant_settings
    return [
        {
            "homepage_url": web.home_page_url or "",
            "logout_url": web.logout_url or "",
            "redirect_uris": sorted(web.redirect_uris or []),
            "implicit_grant": [
                {
                    "access_token_issuance_enabled": bool(
                        implicit and implicit.enable_access_token_issuance
                    )
                }
            ],
        }
    ]


def flatten_application(app: Application) -> dict[str, Any]:
    """Flatten an application into state attributes."""
    return {
        "object_id": app.id,
        "application_id": app.app_id,
        "display_name": app.display_name or "",
        "api": [
            {
                "oauth2_permission_scopes": flatten_permission_scopes(
                    app.api.oauth2_permission_scopes if app.api else None
                )
            }
        ],
        "app_roles": flatten_app_roles(app.app_roles),
        "fallback_public_client_enabled": bool(app.is_fallback_public_client),
        "group_membership_claims": app.group_membership_claims or "",
        "identifier_uris": list(app.identifier_uris or []),
        "optional_claims": _flatten_optional_claims(app.optional_claims),
        "required_resource_access": [
            {
                "resource_app_id": r.resource_app_id,
                "resource_access": [{"id": a.id, "type": a.type} for a in r.resource_access],
            }
            for r in app.required_resource_access or []
        ],
        "sign_in_audience": app.sign_in_audience or "",
        "web": _flatten_web(app.web),
    }


class ApplicationResource(Resource[ApplicationConfig]):
    """Application registration, its roles, scopes and owners."""

    type_name = "application"
    config_model = ApplicationConfig

    @property
    def client(self) -> ApplicationsClient:
        return self.graph.applications

    def find_by_name(self, display_name: str) -> Application | None:
        """Return the first application whose display name matches exactly."""
        try:
            result = self.client.list(f"displayName eq {odata_quote(display_name)}")
        except GraphError as e:
            raise ResourceError(
                "Could not check for existing application(s)", attribute="display_name"
            ) from e
        for app in result:
            if app.display_name == display_name:
                return app
        return None

    def _check_duplicate_name(self, config: ApplicationConfig, object_id: str | None) -> None:
        if not config.prevent_duplicate_names:
            return
        existing = self.find_by_name(config.display_name)
        if existing is None:
            return
        if not existing.id:
            raise ResourceError(
                "API returned application with nil object ID during duplicate name check"
            )
        if existing.id != object_id:
            raise DuplicateNameError("application", existing.id, config.display_name)

    def _validate(self, config: ApplicationConfig) -> None:
        validate_roles_scopes(
            [r.value for r in config.app_roles or []],
            [s.value for s in config.scopes or []],
        )

    def _set_owners(self, object_id: str, owners: list[str]) -> None:
        reconcile_membership(
            "owners",
            object_id,
            owners,
            self.client.list_owners,
            self.client.add_owners,
            self.client.remove_owners,
            add_first=True,
        )

    def set_app_roles(self, resource_id: str, blocks: list[AppRoleBlock]) -> None:
        """Replace the application's roles, disabling dropped ones in a prior write."""
        SubResourceReconciler(self.client, APP_ROLES, self.registry).replace_all(
            resource_id, expand_app_roles(blocks)
        )

    def set_oauth2_permission_scopes(
        self, resource_id: str, blocks: list[OAuth2PermissionScopeBlock]
    ) -> None:
        SubResourceReconciler(self.client, OAUTH2_PERMISSION_SCOPES, self.registry).replace_all(
            resource_id, expand_permission_scopes(blocks)
        )

    def create(self, config: ApplicationConfig) -> ResourceData:
        self._check_duplicate_name(config, None)
        self._validate(config)

        try:
            app = self.client.create(expand_application(config))
        except GraphError as e:
            raise ResourceError(f"Could not create application {config.display_name!r}") from e

        if not app.id:
            raise ResourceError("Bad API response: object ID returned for application is empty")

        self.wait_for_replication(lambda: self.client.get(app.id), app.id)

        if config.owners:
            self._set_owners(app.id, config.owners)

        data = self.read(app.id)
        if data is None:
            raise ResourceError(f"Application with object ID {app.id!r} disappeared after creation")
        return data

    def read(self, resource_id: str) -> ResourceData | None:
        try:
            app = self.client.get(resource_id)
        except NotFoundError:
            logger.debug(f"Application with object ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving Application with object ID {resource_id!r}", attribute="id"
            ) from e

        attributes = flatten_application(app)
        try:
            attributes["owners"] = sorted(self.client.list_owners(resource_id))
        except GraphError as e:
            raise ResourceError(
                f"Could not retrieve owners for application with object ID {resource_id!r}",
                attribute="owners",
            ) from e
        return ResourceData(id=resource_id, attributes=attributes)

    def update(
        self,
        resource_id: str,
        config: ApplicationConfig,
        previous: ApplicationConfig | None = None,
    ) -> ResourceData | None:
        self._check_duplicate_name(config, resource_id)
        self._validate(config)

        # Roles and scopes are written separately so dropped entries get disabled first
        properties = expand_application(config, resource_id)
        properties.app_roles = None
        properties.api = None
        if (
            previous is not None
            and previous.group_membership_claims
            and config.group_membership_claims is None
        ):
            properties.group_membership_claims = "None"

        try:
            self.client.update(properties)
        except NotFoundError:
            logger.debug(f"Application with object ID {resource_id!r} was not found - removing from state")
            return None
        except GraphError as e:
            raise ResourceError(f"Could not update application with ID {resource_id!r}") from e

        if config.app_roles is not None:
            self.set_app_roles(resource_id, config.app_roles)

        if config.scopes is not None:
            self.set_oauth2_permission_scopes(resource_id, config.scopes)

        if config.owners is not None:
            self._set_owners(resource_id, config.owners)

        return self.read(resource_id)

    def delete(self, resource_id: str) -> None:
        try:
            self.client.get(resource_id)
        except NotFoundError:
            raise ResourceError(
                f"Retrieving Application with object ID {resource_id!r}: Application was not found",
                attribute="id",
            ) from None
        except GraphError as e:
            raise ResourceError(
                f"Retrieving Application with object ID {resource_id!r}", attribute="id"
            ) from e

        try:
            self.client.delete(resource_id)
        except GraphError as e:
            raise ResourceError(
                f"Deleting application with object ID {resource_id!r}, got status {e.status_code}",
                attribute="id",
            ) from e

"""Pydantic models for directory API entities.

Collections default to ``None`` rather than empty lists: update payloads are
serialised with ``exclude_none`` and an empty list would clear the collection
on the remote object.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class GraphModel(BaseModel):
    """Base for API entities: camelCase aliases, unknown fields ignored."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def to_payload(self, exclude: set[str] | None = None) -> dict[str, Any]:
        """Serialise to a request body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)


class AppRole(GraphModel):
    """Role that can be assigned to users or applications."""

    id: str | None = None
    allowed_member_types: list[str] | None = Field(default=None, alias="allowedMemberTypes")
    description: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    is_enabled: bool | None = Field(default=None, alias="isEnabled")
    value: str | None = None


class PermissionScope(GraphModel):
    """Delegated OAuth2 permission exposed by an application."""

    id: str | None = None
    admin_consent_description: str | None = Field(default=None, alias="adminConsentDescription")
    admin_consent_display_name: str | None = Field(default=None, alias="adminConsentDisplayName")
    is_enabled: bool | None = Field(default=None, alias="isEnabled")
    type: str | None = None
    user_consent_description: str | None = Field(default=None, alias="userConsentDescription")
    user_consent_display_name: str | None = Field(default=None, alias="userConsentDisplayName")
    value: str | None = None


class ApplicationApi(GraphModel):
    oauth2_permission_scopes: list[PermissionScope] | None = Field(
        default=None, alias="oauth2PermissionScopes"
    )


class KeyCredential(GraphModel):
    """Certificate credential."""

    key_id: str | None = Field(default=None, alias="keyId")
    custom_key_identifier: str | None = Field(default=None, alias="customKeyIdentifier")
    display_name: str | None = Field(default=None, alias="displayName")
    start_date_time: datetime | None = Field(default=None, alias="startDateTime")
    end_date_time: datetime | None = Field(default=None, alias="endDateTime")
    type: str | None = None
    usage: str | None = None
    key: str | None = None


class PasswordCredential(GraphModel):
    """Client secret credential."""

    key_id: str | None = Field(default=None, alias="keyId")
    custom_key_identifier: str | None = Field(default=None, alias="customKeyIdentifier")
    display_name: str | None = Field(default=None, alias="displayName")
    start_date_time: datetime | None = Field(default=None, alias="startDateTime")
    end_date_time: datetime | None = Field(default=None, alias="endDateTime")
    hint: str | None = None
    secret_text: str | None = Field(default=None, alias="secretText")


class OptionalClaim(GraphModel):
    name: str
    source: str | None = None
    essential: bool | None = None
    additional_properties: list[str] | None = Field(default=None, alias="additionalProperties")


class OptionalClaims(GraphModel):
    access_token: list[OptionalClaim] | None = Field(default=None, alias="accessToken")
    id_token: list[OptionalClaim] | None = Field(default=None, alias="idToken")
    saml2_token: list[OptionalClaim] | None = Field(default=None, alias="saml2Token")


class ResourceAccess(GraphModel):
    id: str
    type: str


class RequiredResourceAccess(GraphModel):
    resource_app_id: str = Field(alias="resourceAppId")
    resource_access: list[ResourceAccess] = Field(default_factory=list, alias="resourceAccess")


class ImplicitGrantSettings(GraphModel):
    enable_access_token_issuance: bool | None = Field(
        default=None, alias="enableAccessTokenIssuance"
    )
    enable_id_token_issuance: bool | None = Field(default=None, alias="enableIdTokenIssuance")


class ApplicationWeb(GraphModel):
    home_page_url: str | None = Field(default=None, alias="homePageUrl")
    logout_url: str | None = Field(default=None, alias="logoutUrl")
    redirect_uris: list[str] | None = Field(default=None, alias="redirectUris")
    implicit_grant_settings: ImplicitGrantSettings | None = Field(
        default=None, alias="implicitGrantSettings"
    )


class Application(GraphModel):
    """Application registration."""

    id: str | None = None
    app_id: str | None = Field(default=None, alias="appId")
    display_name: str | None = Field(default=None, alias="displayName")
    api: ApplicationApi | None = None
    app_roles: list[AppRole] | None = Field(default=None, alias="appRoles")
    group_membership_claims: str | None = Field(default=None, alias="groupMembershipClaims")
    identifier_uris: list[str] | None = Field(default=None, alias="identifierUris")
    is_fallback_public_client: bool | None = Field(default=None, alias="isFallbackPublicClient")
    optional_claims: OptionalClaims | None = Field(default=None, alias="optionalClaims")
    required_resource_access: list[RequiredResourceAccess] | None = Field(
        default=None, alias="requiredResourceAccess"
    )
    sign_in_audience: str | None = Field(default=None, alias="signInAudience")
    web: ApplicationWeb | None = None
    key_credentials: list[KeyCredential] | None = Field(default=None, alias="keyCredentials")
    password_credentials: list[PasswordCredential] | None = Field(
        default=None, alias="passwordCredentials"
    )


class Group(GraphModel):
    """Security group."""

    id: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    description: str | None = None
    mail_enabled: bool | None = Field(default=None, alias="mailEnabled")
    mail_nickname: str | None = Field(default=None, alias="mailNickname")
    security_enabled: bool | None = Field(default=None, alias="securityEnabled")
    members_bind: list[str] | None = Field(default=None, alias="members@odata.bind")
    owners_bind: list[str] | None = Field(default=None, alias="owners@odata.bind")


class PasswordProfile(GraphModel):
    force_change_password_next_sign_in: bool | None = Field(
        default=None, alias="forceChangePasswordNextSignIn"
    )
    password: str | None = None


class User(GraphModel):
    """Directory user."""

    id: str | None = None
    account_enabled: bool | None = Field(default=None, alias="accountEnabled")
    city: str | None = None
    company_name: str | None = Field(default=None, alias="companyName")
    country: str | None = None
    department: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    given_name: str | None = Field(default=None, alias="givenName")
    job_title: str | None = Field(default=None, alias="jobTitle")
    mail: str | None = None
    mail_nickname: str | None = Field(default=None, alias="mailNickname")
    mobile_phone: str | None = Field(default=None, alias="mobilePhone")
    office_location: str | None = Field(default=None, alias="officeLocation")
    on_premises_immutable_id: str | None = Field(default=None, alias="onPremisesImmutableId")
    on_premises_sam_account_name: str | None = Field(
        default=None, alias="onPremisesSamAccountName"
    )
    on_premises_user_principal_name: str | None = Field(
        default=None, alias="onPremisesUserPrincipalName"
    )
    password_profile: PasswordProfile | None = Field(default=None, alias="passwordProfile")
    postal_code: str | None = Field(default=None, alias="postalCode")
    state: str | None = None
    street_address: str | None = Field(default=None, alias="streetAddress")
    surname: str | None = None
    usage_location: str | None = Field(default=None, alias="usageLocation")
    user_principal_name: str | None = Field(default=None, alias="userPrincipalName")
    user_type: str | None = Field(default=None, alias="userType")


class Domain(GraphModel):
    """Verified or unverified tenant domain; ``id`` is the domain name."""

    id: str
    authentication_type: str | None = Field(default=None, alias="authenticationType")
    is_default: bool | None = Field(default=None, alias="isDefault")
    is_initial: bool | None = Field(default=None, alias="isInitial")
    is_verified: bool | None = Field(default=None, alias="isVerified")


class DirectoryObject(GraphModel):
    """Reference returned by owner/member listings."""

    id: str
    odata_type: str | None = Field(default=None, alias="@odata.type")

"""Certificate and password credentials on an application.

Credentials cannot change in place: any configuration change replaces them.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from ..credentials import key_credential, password_credential
from ..graph_client.models import KeyCredential, PasswordCredential
from ..ids import certificate_id, password_id
from ..reconcile import KEY_CREDENTIALS, PASSWORD_CREDENTIALS, SubResourceReconciler
from ..validate import is_rfc3339_time, is_uuid, no_empty_strings
from .base import Resource, ResourceConfig, ResourceData


def _format_time(value: datetime | None) -> str:
    return value.isoformat().replace("+00:00", "Z") if value else ""


class CredentialConfig(ResourceConfig):
    application_object_id: str
    key_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    end_date_relative: str | None = None

    @field_validator("application_object_id")
    @classmethod
    def _check_object_id(cls, v: str) -> str:
        return is_uuid(v)

    @field_validator("key_id")
    @classmethod
    def _check_key_id(cls, v: str | None) -> str | None:
        return is_uuid(v) if v is not None else v

    @field_validator("start_date", "end_date")
    @classmethod
    def _check_dates(cls, v: str | None) -> str | None:
        return is_rfc3339_time(v) if v is not None else v

    @field_validator("end_date_relative")
    @classmethod
    def _check_relative(cls, v: str | None) -> str | None:
        return no_empty_strings(v) if v is not None else v


class CertificateConfig(CredentialConfig):
    value: str = Field(repr=False)
    encoding: Literal["pem", "base64", "hex"] = "pem"
    type: Literal["AsymmetricX509Cert", "Symmetric"] = "AsymmetricX509Cert"


class PasswordConfig(CredentialConfig):
    value: str | None = Field(default=None, min_length=1, max_length=863, repr=False)
    description: str | None = None


def flatten_certificate(object_id: str, credential: KeyCredential) -> dict[str, Any]:
    return {
        "application_object_id": object_id,
        "key_id": credential.key_id,
        "type": credential.type or "",
        "start_date": _format_time(credential.start_date_time),
        "end_date": _format_time(credential.end_date_time),
    }


def flatten_password(object_id: str, credential: PasswordCredential) -> dict[str, Any]:
    return {
        "application_object_id": object_id,
        "key_id": credential.key_id,
        "description": credential.display_name or "",
        "start_date": _format_time(credential.start_date_time),
        "end_date": _format_time(credential.end_date_time),
    }


class CertificateResource(Resource[CertificateConfig]):
    type_name = "application_certificate"
    config_model = CertificateConfig

    @property
    def reconciler(self) -> SubResourceReconciler[KeyCredential]:
        return SubResourceReconciler(self.graph.applications, KEY_CREDENTIALS, self.registry)

    def create(self, config: CertificateConfig) -> ResourceData:
        credential = key_credential(
            config.value,
            encoding=config.encoding,
            key_type=config.type,
            key_id=config.key_id,
            start_date=config.start_date,
            end_date=config.end_date,
            end_date_relative=config.end_date_relative,
        )
        credential = self.reconciler.create(config.application_object_id, credential)
        resource_id = KEY_CREDENTIALS.make_id(config.application_object_id, credential.key_id)
        return ResourceData(
            id=resource_id, attributes=flatten_certificate(config.application_object_id, credential)
        )

    def read(self, resource_id: str) -> ResourceData | None:
        cid = certificate_id(resource_id)
        credential = self.reconciler.read(cid.object_id, cid.key_id)
        if credential is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_certificate(cid.object_id, credential))

    def delete(self, resource_id: str) -> None:
        cid = certificate_id(resource_id)
        self.reconciler.delete(cid.object_id, cid.key_id)


class PasswordResource(Resource[PasswordConfig]):
    """Client secret; the value is only known at creation time."""

    type_name = "application_password"
    config_model = PasswordConfig

    @property
    def reconciler(self) -> SubResourceReconciler[PasswordCredential]:
        return SubResourceReconciler(self.graph.applications, PASSWORD_CREDENTIALS, self.registry)

    def create(self, config: PasswordConfig) -> ResourceData:
        credential = password_credential(
            config.value,
            description=config.description,
            key_id=config.key_id,
            start_date=config.start_date,
            end_date=config.end_date,
            end_date_relative=config.end_date_relative,
        )
        secret = credential.secret_text
        credential = self.reconciler.create(config.application_object_id, credential)
        resource_id = PASSWORD_CREDENTIALS.make_id(config.application_object_id, credential.key_id)
        attributes = flatten_password(config.application_object_id, credential)
        attributes["value"] = secret
        return ResourceData(id=resource_id, attributes=attributes)

    def read(self, resource_id: str) -> ResourceData | None:
        cid = password_id(resource_id)
        credential = self.reconciler.read(cid.object_id, cid.key_id)
        if credential is None:
            return None
        return ResourceData(id=resource_id, attributes=flatten_password(cid.object_id, credential))

    def delete(self, resource_id: str) -> None:
        cid = password_id(resource_id)
        self.reconciler.delete(cid.object_id, cid.key_id)

"""Tests for composite sub-resource identifiers."""

import pytest

from directory_resources.errors import ConfigValidationError
from directory_resources.ids import (
    AppRoleId,
    CredentialId,
    KeyType,
    OAuth2PermissionScopeId,
    certificate_id,
    password_id,
)

OBJ = "00000000-0000-0000-0000-000000000001"
KEY = "00000000-0000-0000-0000-0000000000aa"


def test_app_role_id_round_trip():
    rid = AppRoleId.parse(f"{OBJ}/{KEY}")
    assert rid == AppRoleId(OBJ, KEY)
    assert str(rid) == f"{OBJ}/{KEY}"


def test_scope_id_parses():
    sid = OAuth2PermissionScopeId.parse(f"{OBJ}/{KEY}")
    assert sid.scope_id == KEY


@pytest.mark.parametrize(
    "value",
    [
        OBJ,
        f"{OBJ}/{KEY}/extra",
        f"{OBJ}/",
        f"not-a-uuid/{KEY}",
        f"{OBJ}/not-a-uuid",
    ],
)
def test_app_role_id_rejects_malformed(value):
    with pytest.raises(ConfigValidationError) as exc_info:
        AppRoleId.parse(value)
    assert exc_info.value.attribute == "id"


def test_credential_id_tagged_variants():
    cert = certificate_id(f"{OBJ}/certificate/{KEY}")
    assert cert.key_type is KeyType.CERTIFICATE
    assert str(cert) == f"{OBJ}/certificate/{KEY}"

    password = password_id(f"{OBJ}/password/{KEY}")
    assert password.key_type is KeyType.PASSWORD


def test_credential_id_rejects_wrong_kind():
    with pytest.raises(ConfigValidationError, match="expected certificate"):
        certificate_id(f"{OBJ}/password/{KEY}")


def test_credential_id_rejects_unknown_kind():
    with pytest.raises(ConfigValidationError, match="unknown key type"):
        CredentialId.parse(f"{OBJ}/secret/{KEY}")


def test_credential_key_id_must_be_uuid():
    with pytest.raises(ConfigValidationError):
        CredentialId.parse(f"{OBJ}/password/password")

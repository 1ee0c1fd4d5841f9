"""Tests for the application resource adapter."""

import uuid

import pytest

from directory_resources.errors import (
    ConfigValidationError,
    DuplicateNameError,
    GraphError,
    ResourceError,
)
from directory_resources.graph_client.models import AppRole
from directory_resources.resources import ApplicationResource
from directory_resources.resources.application import OAuth2PermissionScopeBlock

OWNER_1 = "10000000-0000-0000-0000-000000000001"
OWNER_2 = "10000000-0000-0000-0000-000000000002"
ROLE_A = "20000000-0000-0000-0000-00000000000a"
ROLE_B = "20000000-0000-0000-0000-00000000000b"
SCOPE = "30000000-0000-0000-0000-000000000001"


def app_role(role_id: str, value: str) -> dict:
    return {
        "id": role_id,
        "allowed_member_types": ["User"],
        "description": f"{value} role",
        "display_name": value,
        "value": value,
    }


@pytest.fixture
def resource(graph, provider, registry):
    return ApplicationResource(graph, provider, registry=registry)


class TestDecode:
    def test_unknown_attribute(self, resource):
        with pytest.raises(ConfigValidationError) as exc_info:
            resource.decode({"display_name": "app", "colour": "blue"})
        assert exc_info.value.attribute == "colour"

    def test_nested_path_reported(self, resource):
        with pytest.raises(ConfigValidationError) as exc_info:
            resource.decode({"display_name": "app", "app_roles": [app_role("not-a-uuid", "Admin")]})
        assert exc_info.value.attribute == "app_roles.0.id"

    def test_identifier_uri_scheme(self, resource):
        with pytest.raises(ConfigValidationError):
            resource.decode({"display_name": "app", "identifier_uris": ["mailto:x@example.com"]})

    def test_unset_collections_are_unmanaged(self, resource):
        config = resource.decode({"display_name": "app"})
        assert config.app_roles is None
        assert config.scopes is None
        assert config.owners is None


class TestCreate:
    def test_minimal(self, graph, resource):
        data = resource.create(resource.decode({"display_name": "my-app"}))

        stored = graph.applications.objects[data.id]
        assert stored.display_name == "my-app"
        assert data.attributes["application_id"] == stored.app_id
        assert data.attributes["owners"] == []
        assert data.attributes["sign_in_audience"] == "AzureADMyOrg"

    def test_roles_scopes_and_owners(self, graph, resource):
        config = resource.decode(
            {
                "display_name": "my-app",
                "app_roles": [app_role(ROLE_A, "Admin")],
                "api": {
                    "oauth2_permission_scopes": [
                        {
                            "id": SCOPE,
                            "admin_consent_description": "Read",
                            "admin_consent_display_name": "Read",
                            "value": "read",
                        }
                    ]
                },
                "owners": [OWNER_2, OWNER_1],
            }
        )

        data = resource.create(config)

        assert [r["value"] for r in data.attributes["app_roles"]] == ["Admin"]
        scopes = data.attributes["api"][0]["oauth2_permission_scopes"]
        assert [s["id"] for s in scopes] == [SCOPE]
        assert data.attributes["owners"] == [OWNER_1, OWNER_2]

    def test_waits_for_replication(self, graph, resource):
        original = graph.applications.create

        def lagging_create(obj):
            created = original(obj)
            graph.applications.pending_reads[created.id] = 2
            return created

        graph.applications.create = lagging_create

        data = resource.create(resource.decode({"display_name": "slow-app"}))

        gets = [c for c in graph.applications.calls if c == ("get", data.id)]
        assert len(gets) >= 3

    def test_duplicate_name_rejected(self, graph, resource, application):
        config = resource.decode({"display_name": "existing-app", "prevent_duplicate_names": True})

        with pytest.raises(DuplicateNameError) as exc_info:
            resource.create(config)

        assert exc_info.value.existing_id == application.id
        assert ("create",) not in graph.applications.calls

    def test_duplicate_name_allowed_by_default(self, resource, application):
        data = resource.create(resource.decode({"display_name": "existing-app"}))
        assert data.id != application.id

    def test_duplicate_claim_values_rejected(self, graph, resource):
        config = resource.decode(
            {
                "display_name": "my-app",
                "app_roles": [app_role(ROLE_A, "Admin"), app_role(ROLE_B, "Admin")],
            }
        )

        with pytest.raises(ConfigValidationError, match="duplicate value"):
            resource.create(config)
        assert ("create",) not in graph.applications.calls


class TestUpdate:
    def test_dropped_role_is_disabled_then_removed(self, graph, resource):
        data = resource.create(
            resource.decode({"display_name": "my-app", "app_roles": [app_role(ROLE_A, "Admin")]})
        )
        graph.applications.writes.clear()

        updated = resource.update(
            data.id,
            resource.decode({"display_name": "my-app", "app_roles": [app_role(ROLE_B, "Reader")]}),
        )

        assert [r["id"] for r in updated.attributes["app_roles"]] == [ROLE_B]
        disabled = [w for w in graph.applications.writes if w.app_roles]
        assert [(r.id, r.is_enabled) for r in disabled[0].app_roles] == [(ROLE_A, False)]

    def test_unmanaged_roles_are_left_alone(self, graph, resource, application):
        graph.applications.objects[application.id].app_roles = [
            AppRole(id=ROLE_A, value="Admin", is_enabled=True, allowed_member_types=["User"])
        ]

        updated = resource.update(application.id, resource.decode({"display_name": "renamed"}))

        assert updated.attributes["display_name"] == "renamed"
        assert [r["id"] for r in updated.attributes["app_roles"]] == [ROLE_A]

    def test_owners_added_before_removed(self, graph, resource, application):
        graph.applications.relations["owners"][application.id] = [OWNER_1]

        resource.update(
            application.id, resource.decode({"display_name": "existing-app", "owners": [OWNER_2]})
        )

        owner_calls = [c for c in graph.applications.calls if c[0].endswith("_owners")]
        assert owner_calls == [("add_owners", OWNER_2), ("remove_owners", OWNER_1)]

    def test_missing_application_returns_none(self, resource):
        assert resource.update(str(uuid.uuid4()), resource.decode({"display_name": "x"})) is None

    def test_removed_group_membership_claims_are_reset(self, graph, resource):
        data = resource.create(
            resource.decode({"display_name": "my-app", "group_membership_claims": "All"})
        )
        previous = resource.decode({"display_name": "my-app", "group_membership_claims": "All"})

        updated = resource.update(data.id, resource.decode({"display_name": "my-app"}), previous)

        assert graph.applications.writes[0].to_payload()["groupMembershipClaims"] == "None"
        assert updated.attributes["group_membership_claims"] == "None"

    def test_unset_group_membership_claims_are_not_sent(self, graph, resource, application):
        resource.update(application.id, resource.decode({"display_name": "existing-app"}))

        assert "groupMembershipClaims" not in graph.applications.writes[0].to_payload()

    def test_set_scopes_disables_dropped_scope_first(self, graph, resource, application):
        resource.set_oauth2_permission_scopes(
            application.id,
            [OAuth2PermissionScopeBlock(id=SCOPE, type="User", value="read")],
        )
        graph.applications.writes.clear()

        resource.set_oauth2_permission_scopes(application.id, [])

        first, second = graph.applications.writes
        assert [(s.id, s.is_enabled) for s in first.api.oauth2_permission_scopes] == [(SCOPE, False)]
        assert second.api.oauth2_permission_scopes == []


class TestReadDelete:
    def test_read_server_error(self, graph, resource, application):
        graph.applications.errors[application.id] = GraphError("Internal error", status_code=500)

        with pytest.raises(ResourceError) as exc_info:
            resource.read(application.id)
        assert exc_info.value.attribute == "id"

    def test_read_missing(self, resource):
        assert resource.read(str(uuid.uuid4())) is None

    def test_read_flattens(self, resource, application):
        data = resource.read(application.id)
        assert data.attributes["object_id"] == application.id
        assert data.attributes["app_roles"] == []

    def test_delete(self, graph, resource, application):
        resource.delete(application.id)
        assert graph.applications.deleted == [application.id]

    def test_delete_missing_is_an_error(self, resource):
        with pytest.raises(ResourceError, match="was not found"):
            resource.delete(str(uuid.uuid4()))

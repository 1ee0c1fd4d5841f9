"""Tests for read-modify-write reconciliation of application collections."""

import threading
import uuid

import pytest

from directory_resources.errors import AlreadyExistsError, GraphError, NotFoundError, ResourceError
from directory_resources.graph_client.models import AppRole, PasswordCredential
from directory_resources.reconcile import (
    APP_ROLES,
    OAUTH2_PERMISSION_SCOPES,
    PASSWORD_CREDENTIALS,
    SubResourceReconciler,
)


def role(value: str, role_id: str | None = None) -> AppRole:
    return AppRole(
        id=role_id or str(uuid.uuid4()),
        allowed_member_types=["User"],
        description=f"{value} role",
        display_name=value,
        is_enabled=True,
        value=value,
    )


@pytest.fixture
def roles(graph, registry):
    return SubResourceReconciler(graph.applications, APP_ROLES, registry)


class TestCreate:
    def test_appends_entry(self, graph, roles, application):
        created = roles.create(application.id, role("Admin"))

        stored = graph.applications.objects[application.id].app_roles
        assert [r.id for r in stored] == [created.id]
        assert len(graph.applications.writes) == 1

    def test_generates_id(self, roles, application):
        created = roles.create(application.id, role("Admin").model_copy(update={"id": None}))
        uuid.UUID(created.id)

    def test_existing_id_is_rejected_without_write(self, graph, roles, application):
        existing = roles.create(application.id, role("Admin"))
        graph.applications.writes.clear()

        with pytest.raises(AlreadyExistsError) as exc_info:
            roles.create(application.id, role("Other", existing.id))

        assert exc_info.value.resource_id == f"{application.id}/{existing.id}"
        assert exc_info.value.attribute == "role_id"
        assert graph.applications.writes == []

    def test_missing_application(self, roles):
        with pytest.raises(NotFoundError) as exc_info:
            roles.create(str(uuid.uuid4()), role("Admin"))
        assert exc_info.value.attribute == "application_object_id"

    def test_concurrent_creates_all_persist(self, graph, roles, application):
        graph.applications.write_delay = 0.01
        entries = [role(f"Role{i}") for i in range(8)]
        threads = [
            threading.Thread(target=roles.create, args=(application.id, entry)) for entry in entries
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = {r.id for r in graph.applications.objects[application.id].app_roles}
        assert stored == {e.id for e in entries}


class TestUpdate:
    def test_replaces_matching_entry(self, graph, roles, application):
        created = roles.create(application.id, role("Admin"))
        changed = created.model_copy(update={"description": "changed"})

        assert roles.update(application.id, changed) == changed
        stored = graph.applications.objects[application.id].app_roles
        assert stored[0].description == "changed"

    def test_missing_entry_returns_none(self, graph, roles, application):
        assert roles.update(application.id, role("Admin")) is None
        assert graph.applications.writes == []


class TestDelete:
    def test_role_is_disabled_then_removed(self, graph, roles, application):
        keep = roles.create(application.id, role("Keep"))
        drop = roles.create(application.id, role("Drop"))
        graph.applications.writes.clear()

        assert roles.delete(application.id, drop.id) is True

        writes = graph.applications.writes
        assert len(writes) == 2
        disabled = {r.id: r.is_enabled for r in writes[0].app_roles}
        assert disabled == {keep.id: True, drop.id: False}
        assert [r.id for r in writes[1].app_roles] == [keep.id]

    def test_credential_removed_in_one_write(self, graph, registry, application):
        passwords = SubResourceReconciler(graph.applications, PASSWORD_CREDENTIALS, registry)
        key_id = str(uuid.uuid4())
        passwords.create(application.id, PasswordCredential(key_id=key_id, secret_text="x"))
        graph.applications.writes.clear()

        assert passwords.delete(application.id, key_id) is True
        assert len(graph.applications.writes) == 1
        assert graph.applications.writes[0].password_credentials == []

    def test_missing_entry_returns_false(self, graph, roles, application):
        assert roles.delete(application.id, str(uuid.uuid4())) is False
        assert graph.applications.writes == []


class TestRead:
    def test_returns_entry(self, roles, application):
        created = roles.create(application.id, role("Admin"))
        assert roles.read(application.id, created.id).value == "Admin"

    def test_missing_entry(self, roles, application):
        assert roles.read(application.id, str(uuid.uuid4())) is None

    def test_missing_application(self, roles):
        assert roles.read(str(uuid.uuid4()), str(uuid.uuid4())) is None

    def test_scopes_without_api_block(self, graph, registry, application):
        scopes = SubResourceReconciler(graph.applications, OAUTH2_PERMISSION_SCOPES, registry)
        assert scopes.read(application.id, str(uuid.uuid4())) is None


class TestReplaceAll:
    def test_dropped_entries_disabled_first(self, graph, roles, application):
        old = roles.create(application.id, role("Old"))
        graph.applications.writes.clear()
        new = role("New")

        roles.replace_all(application.id, [new])

        writes = graph.applications.writes
        assert len(writes) == 2
        assert [(r.id, r.is_enabled) for r in writes[0].app_roles] == [(old.id, False)]
        assert [r.id for r in writes[1].app_roles] == [new.id]

    def test_single_write_when_nothing_dropped(self, graph, roles, application):
        kept = roles.create(application.id, role("Kept"))
        graph.applications.writes.clear()

        roles.replace_all(application.id, [kept, role("Extra")])

        assert len(graph.applications.writes) == 1


class TestServerErrors:
    @pytest.fixture(autouse=True)
    def failing_application(self, graph, application):
        graph.applications.errors[application.id] = GraphError("Internal error", status_code=500)

    def test_read_is_an_error(self, roles, application):
        with pytest.raises(ResourceError) as exc_info:
            roles.read(application.id, str(uuid.uuid4()))
        assert exc_info.value.attribute == "application_object_id"
        assert exc_info.value.__cause__.status_code == 500

    def test_create_writes_nothing(self, graph, roles, application):
        with pytest.raises(ResourceError):
            roles.create(application.id, role("Admin"))
        assert graph.applications.writes == []

"""Tests for the group resource adapter."""

import uuid

import pytest

from directory_resources.errors import ConfigValidationError, DuplicateNameError, ResourceError
from directory_resources.graph_client.models import Group
from directory_resources.resources import GroupResource

A = "40000000-0000-0000-0000-00000000000a"
B = "40000000-0000-0000-0000-00000000000b"
C = "40000000-0000-0000-0000-00000000000c"
D = "40000000-0000-0000-0000-00000000000d"


@pytest.fixture
def resource(graph, provider, registry):
    return GroupResource(graph, provider, registry=registry)


@pytest.fixture
def group(graph):
    created = graph.groups.add(Group(display_name="team", description="old", security_enabled=True))
    graph.groups.relations["members"][created.id] = [A, B, C]
    graph.groups.relations["owners"][created.id] = [A]
    return created


def test_create_binds_members_and_owners(graph, resource):
    data = resource.create(
        resource.decode({"display_name": "team", "members": [B, A], "owners": [C]})
    )

    stored = graph.groups.objects[data.id]
    assert stored.security_enabled is True
    assert stored.mail_enabled is False
    uuid.UUID(stored.mail_nickname)
    assert data.attributes["members"] == [A, B]
    assert data.attributes["owners"] == [C]


def test_create_rejects_duplicate_name(graph, resource, group):
    with pytest.raises(DuplicateNameError):
        resource.create(resource.decode({"display_name": "team", "prevent_duplicate_names": True}))
    assert ("create",) not in graph.groups.calls


def test_member_ids_must_be_uuids(resource):
    with pytest.raises(ConfigValidationError) as exc_info:
        resource.decode({"display_name": "team", "members": ["bob"]})
    assert exc_info.value.attribute == "members"


def test_update_reconciles_members_remove_first(graph, resource, group):
    updated = resource.update(group.id, resource.decode({"display_name": "team", "members": [B, C, D]}))

    member_calls = [c for c in graph.groups.calls if c[0].endswith("_members")]
    assert member_calls == [("remove_members", A), ("add_members", D)]
    assert updated.attributes["members"] == [B, C, D]


def test_update_reconciles_owners_add_first(graph, resource, group):
    resource.update(group.id, resource.decode({"display_name": "team", "owners": [B]}))

    owner_calls = [c for c in graph.groups.calls if c[0].endswith("_owners")]
    assert owner_calls == [("add_owners", B), ("remove_owners", A)]


def test_update_leaves_unmanaged_members(graph, resource, group):
    updated = resource.update(group.id, resource.decode({"display_name": "team"}))

    assert not [c for c in graph.groups.calls if c[0].endswith("_members")]
    assert updated.attributes["members"] == [A, B, C]


def test_update_sends_only_changed_fields(graph, resource, group):
    previous = resource.decode({"display_name": "team", "description": "old"})
    config = resource.decode({"display_name": "team", "description": "new"})

    resource.update(group.id, config, previous)

    patch = graph.groups.writes[-1]
    assert patch.display_name is None
    assert patch.description == "new"


def test_update_missing_group(resource):
    assert resource.update(str(uuid.uuid4()), resource.decode({"display_name": "x"})) is None


def test_read_missing_group(resource):
    assert resource.read(str(uuid.uuid4())) is None


def test_delete(graph, resource, group):
    resource.delete(group.id)
    assert group.id not in graph.groups.objects


def test_delete_missing_group_is_an_error(resource):
    with pytest.raises(ResourceError) as exc_info:
        resource.delete(str(uuid.uuid4()))
    assert exc_info.value.attribute == "id"

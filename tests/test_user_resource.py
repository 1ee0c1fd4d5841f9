"""Tests for the user resource adapter."""

import uuid

import pytest

from directory_resources.errors import ConfigValidationError, ResourceError
from directory_resources.resources import UserResource


@pytest.fixture
def resource(graph, provider, registry):
    return UserResource(graph, provider, registry=registry)


def user_config(resource, **overrides):
    attributes = {
        "user_principal_name": "jdoe@example.com",
        "display_name": "J. Doe",
        "password": "Secret-Passw0rd",
        **overrides,
    }
    return resource.decode(attributes)


def test_create_defaults_mail_nickname(graph, resource):
    data = resource.create(user_config(resource, department="Engineering"))

    stored = graph.users.objects[data.id]
    assert stored.mail_nickname == "jdoe"
    assert stored.password_profile.password == "Secret-Passw0rd"
    assert stored.password_profile.force_change_password_next_sign_in is False
    assert data.attributes["department"] == "Engineering"
    assert data.attributes["job_title"] == ""
    assert "password" not in data.attributes


def test_explicit_mail_nickname(graph, resource):
    data = resource.create(user_config(resource, mail_nickname="johnd"))
    assert data.attributes["mail_nickname"] == "johnd"


@pytest.mark.parametrize(
    "overrides,attribute",
    [
        ({"user_principal_name": "jdoe"}, "user_principal_name"),
        ({"password": ""}, "password"),
        ({"usage_location": "USA"}, "usage_location"),
        ({"given_name": "x" * 65}, "given_name"),
    ],
)
def test_invalid_configuration(resource, overrides, attribute):
    with pytest.raises(ConfigValidationError) as exc_info:
        user_config(resource, **overrides)
    assert exc_info.value.attribute == attribute


def test_password_not_exposed_in_repr(resource):
    assert "Secret-Passw0rd" not in repr(user_config(resource))


def test_update_without_password_change(graph, resource):
    data = resource.create(user_config(resource))
    previous = user_config(resource)

    resource.update(data.id, user_config(resource, display_name="Jane Doe"), previous)

    patch = graph.users.writes[-1]
    assert patch.display_name == "Jane Doe"
    assert patch.password_profile is None


def test_update_with_password_change(graph, resource):
    data = resource.create(user_config(resource))
    previous = user_config(resource)

    resource.update(data.id, user_config(resource, password="N3w-Password"), previous)

    assert graph.users.writes[-1].password_profile.password == "N3w-Password"


def test_update_missing_user(resource):
    assert resource.update(str(uuid.uuid4()), user_config(resource)) is None


def test_delete_missing_user_is_an_error(resource):
    with pytest.raises(ResourceError, match="User was not found"):
        resource.delete(str(uuid.uuid4()))


def test_update_clears_removed_profile_fields(graph, resource):
    data = resource.create(user_config(resource, job_title="Engineer", city="Oslo"))
    previous = user_config(resource, job_title="Engineer", city="Oslo")

    updated = resource.update(data.id, user_config(resource, city="Bergen"), previous)

    patch = graph.users.writes[-1]
    assert patch.job_title == ""
    assert patch.city == "Bergen"
    assert patch.department is None
    assert updated.attributes["job_title"] == ""
    assert updated.attributes["city"] == "Bergen"


def test_update_without_previous_leaves_profile_alone(graph, resource):
    data = resource.create(user_config(resource, job_title="Engineer"))

    resource.update(data.id, user_config(resource))

    assert graph.users.writes[-1].job_title is None
    assert graph.users.objects[data.id].job_title == "Engineer"

"""Shared fixtures: an in-memory stand-in for the directory API."""

import re
import threading
import time
import uuid
from typing import Any

import pytest

from directory_resources.config import AppConfig, GraphConfig, ProviderConfig
from directory_resources.errors import GraphError, NotFoundError
from directory_resources.graph_client.models import (
    Application,
    Domain,
    GraphModel,
    Group,
    User,
)
from directory_resources.locks import NamedLockRegistry

_FILTER_RE = re.compile(r"^(\w+) eq '(.*)'$")

BASE_URL = "https://graph.test/v1.0"


def _matches(obj: GraphModel, filter: str | None) -> bool:
    if not filter:
        return True
    match = _FILTER_RE.match(filter)
    assert match, f"unsupported filter {filter!r}"
    api_field, value = match.group(1), match.group(2).replace("''", "'")
    for name, info in type(obj).model_fields.items():
        if info.alias == api_field or name == api_field:
            return getattr(obj, name) == value
    raise AssertionError(f"unknown filter field {api_field!r}")


def _object_id(url: str) -> str:
    return url.rsplit("/", 1)[-1]


class FakeCollection:
    """Dictionary-backed CRUD with the same surface as ``ObjectClient``."""

    model: type[GraphModel]

    def __init__(self) -> None:
        self.objects: dict[str, Any] = {}
        self.writes: list[Any] = []
        self.deleted: list[str] = []
        self.calls: list[tuple[str, ...]] = []
        self.errors: dict[str, GraphError] = {}
        self.pending_reads: dict[str, int] = {}
        self.write_delay = 0.0
        self._lock = threading.Lock()

    def add(self, obj: Any) -> Any:
        obj = obj.model_copy(deep=True)
        if not obj.id:
            obj.id = str(uuid.uuid4())
        self.objects[obj.id] = obj
        return obj

    def get(self, object_id: str) -> Any:
        self.calls.append(("get", object_id))
        if object_id in self.errors:
            raise self.errors[object_id]
        with self._lock:
            if self.pending_reads.get(object_id, 0) > 0:
                self.pending_reads[object_id] -= 1
                raise NotFoundError(f"Not found: {object_id}")
        if object_id not in self.objects:
            raise NotFoundError(f"Not found: {object_id}")
        return self.objects[object_id].model_copy(deep=True)

    def create(self, obj: Any) -> Any:
        self.calls.append(("create",))
        created = self.add(obj.model_copy(update={"id": None}))
        return created.model_copy(deep=True)

    def update(self, obj: Any) -> None:
        if obj.id not in self.objects:
            raise NotFoundError(f"Not found: {obj.id}")
        if self.write_delay:
            time.sleep(self.write_delay)
        self.calls.append(("update", obj.id))
        self.writes.append(obj.model_copy(deep=True))
        changes = {
            name: getattr(obj, name)
            for name in type(obj).model_fields
            if name != "id" and getattr(obj, name) is not None
        }
        self.objects[obj.id] = self.objects[obj.id].model_copy(update=changes, deep=True)

    def delete(self, object_id: str) -> None:
        if object_id not in self.objects:
            raise NotFoundError(f"Not found: {object_id}")
        self.calls.append(("delete", object_id))
        del self.objects[object_id]
        self.deleted.append(object_id)

    def list(self, filter: str | None = None) -> list[Any]:
        self.calls.append(("list", filter or ""))
        return [o.model_copy(deep=True) for o in self.objects.values() if _matches(o, filter)]


class FakeRelationships:
    """Owner and member lists keyed by object ID."""

    def __init__(self) -> None:
        super().__init__()
        self.relations: dict[str, dict[str, list[str]]] = {"owners": {}, "members": {}}

    def _relation(self, name: str) -> dict[str, list[str]]:
        return self.relations[name]

    def list_owners(self, object_id: str) -> list[str]:
        return list(self._relation("owners").get(object_id, []))

    def add_owners(self, object_id: str, owner_ids: list[str]) -> None:
        self.calls.append(("add_owners", *owner_ids))  # type: ignore[attr-defined]
        self._relation("owners").setdefault(object_id, []).extend(owner_ids)

    def remove_owners(self, object_id: str, owner_ids: list[str]) -> None:
        self.calls.append(("remove_owners", *owner_ids))  # type: ignore[attr-defined]
        current = self._relation("owners").get(object_id, [])
        self._relation("owners")[object_id] = [o for o in current if o not in owner_ids]

    def list_members(self, object_id: str) -> list[str]:
        return list(self._relation("members").get(object_id, []))

    def add_members(self, object_id: str, member_ids: list[str]) -> None:
        self.calls.append(("add_members", *member_ids))  # type: ignore[attr-defined]
        self._relation("members").setdefault(object_id, []).extend(member_ids)

    def remove_members(self, object_id: str, member_ids: list[str]) -> None:
        self.calls.append(("remove_members", *member_ids))  # type: ignore[attr-defined]
        current = self._relation("members").get(object_id, [])
        self._relation("members")[object_id] = [m for m in current if m not in member_ids]


class FakeApplications(FakeRelationships, FakeCollection):
    model = Application

    def create(self, obj: Application) -> Application:
        return super().create(obj.model_copy(update={"app_id": str(uuid.uuid4())}))


class FakeGroups(FakeRelationships, FakeCollection):
    model = Group

    def create(self, obj: Group) -> Group:
        members = [_object_id(u) for u in obj.members_bind or []]
        owners = [_object_id(u) for u in obj.owners_bind or []]
        created = super().create(obj.model_copy(update={"members_bind": None, "owners_bind": None}))
        self._relation("members")[created.id] = members
        self._relation("owners")[created.id] = owners
        return created


class FakeUsers(FakeCollection):
    model = User


class FakeDomains(FakeCollection):
    model = Domain


class FakeGraph:
    """Duck-typed ``GraphClient`` backed by the fakes above."""

    def __init__(self) -> None:
        self.base_url = BASE_URL
        self.applications = FakeApplications()
        self.groups = FakeGroups()
        self.users = FakeUsers()
        self.domains = FakeDomains()
        self.claims: dict[str, Any] = {}
        self.closed = False

    def directory_object_url(self, object_id: str) -> str:
        return f"{self.base_url}/directoryObjects/{object_id}"

    def token_claims(self) -> dict[str, Any]:
        if not self.claims:
            raise GraphError("Configured authentication does not expose a token")
        return dict(self.claims)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def registry() -> NamedLockRegistry:
    return NamedLockRegistry()


@pytest.fixture
def provider(tmp_path) -> ProviderConfig:
    return ProviderConfig(
        state_file=tmp_path / "state.json",
        parallelism=4,
        replication_max_attempts=5,
        replication_initial_delay=0,
        replication_max_delay=0,
    )


@pytest.fixture
def app_config(provider) -> AppConfig:
    return AppConfig(
        graph=GraphConfig(tenant_id="tenant-1", client_id="client-1", access_token="token"),
        provider=provider,
    )


@pytest.fixture
def application(graph) -> Application:
    """An existing application without roles, scopes or credentials."""
    return graph.applications.add(Application(display_name="existing-app", app_id=str(uuid.uuid4())))

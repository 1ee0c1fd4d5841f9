"""Directory (Graph) API client."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import Any, Generic, TypeVar

import httpx
from pydantic import ValidationError

from ..config import GraphConfig
from ..errors import GraphError, NotFoundError
from .auth import ClientCredentialsAuth, StaticTokenAuth, decode_claims
from .models import Application, DirectoryObject, Domain, GraphModel, Group, User

T = TypeVar("T", bound=GraphModel)

logger = logging.getLogger(__name__)

# Graph accepts at most 20 references per members@odata.bind patch
MEMBER_BIND_BATCH = 20


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData ``$filter`` expression."""
    return "'" + value.replace("'", "''") + "'"


def _error_details(response: httpx.Response) -> tuple[str | None, str | None]:
    """Extract the Graph error code and message from a response body."""
    try:
        body = response.json()
    except ValueError:
        return None, None
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, None
    return error.get("code"), error.get("message")


def parse_model(model: type[T], data: Any) -> T:
    """Validate an API body, failing with ``GraphError`` on an unexpected shape."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise GraphError(f"Unexpected {model.__name__} in API response: {e}") from e


class GraphClient:
    """Client for interacting with the directory API."""

    def __init__(
        self,
        base_url: str,
        auth: httpx.Auth,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the directory client.

        Args:
            base_url: API root including the version, e.g. https://graph.microsoft.com/v1.0
            auth: httpx auth flow adding the bearer token
            timeout: Request timeout in seconds
            transport: Optional transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

        self.applications = ApplicationsClient(self)
        self.groups = GroupsClient(self)
        self.users = UsersClient(self)
        self.domains = DomainsClient(self)

    @classmethod
    def from_config(cls, config: GraphConfig) -> GraphClient:
        """Build a client from configuration, choosing the auth flow."""
        auth: httpx.Auth
        if config.access_token:
            auth = StaticTokenAuth(config.access_token)
        elif config.client_secret:
            auth = ClientCredentialsAuth(
                tenant_id=config.tenant_id,
                client_id=config.client_id,
                client_secret=config.client_secret,
                authority=config.authority,
                timeout=config.timeout,
            )
        else:
            raise GraphError(
                "No credentials configured - set DIRECTORY_ACCESS_TOKEN or DIRECTORY_CLIENT_SECRET"
            )
        return cls(config.base_url, auth, timeout=config.timeout)

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        client = self._client
        if client is not None and not client.is_closed:
            return client
        # Pool threads share one connection pool
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    base_url=self.base_url,
                    auth=self.auth,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                    transport=self._transport,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        with self._client_lock:
            if self._client and not self._client.is_closed:
                self._client.close()
            self._client = None

    def __enter__(self) -> GraphClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def token_claims(self) -> dict[str, Any]:
        """Claims of the token currently used to authenticate."""
        current = getattr(self.auth, "current_token", None)
        if current is None:
            raise GraphError("Configured authentication does not expose a token")
        return decode_claims(current())

    def directory_object_url(self, object_id: str) -> str:
        """Absolute reference URL used in ``@odata.bind`` / ``$ref`` bodies."""
        return f"{self.base_url}/directoryObjects/{object_id}"

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an HTTP request to the API."""
        # Filter out None values from params
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self.client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise GraphError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {path}", response.text)
        if response.status_code >= 400:
            code, message = _error_details(response)
            raise GraphError(
                f"{method} {path}: {message or 'API error'}",
                response.status_code,
                code,
                response.text,
            )

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    def paginate(self, path: str, model: type[T], params: dict[str, Any] | None = None) -> Iterator[T]:
        """Follow ``@odata.nextLink`` and yield parsed items."""
        url: str | None = path
        page_params = params
        while url:
            data = self.request("GET", url, params=page_params)
            for raw in (data or {}).get("value", []):
                yield parse_model(model, raw)
            url = (data or {}).get("@odata.nextLink")
            # nextLink already carries the query string
            page_params = None


class ObjectClient(Generic[T]):
    """CRUD operations on one collection of directory objects."""

    collection: str = ""
    model: type[T]

    def __init__(self, graph: GraphClient):
        self.graph = graph

    def _path(self, object_id: str, *suffix: str) -> str:
        return "/".join([f"/{self.collection}", object_id, *suffix])

    def get(self, object_id: str) -> T:
        data = self.graph.request("GET", self._path(object_id))
        return parse_model(self.model, data)

    def create(self, obj: T) -> T:
        data = self.graph.request("POST", f"/{self.collection}", json=obj.to_payload(exclude={"id"}))
        created = parse_model(self.model, data)
        logger.info(f"Created {self.collection} object {getattr(created, 'id', None)}")
        return created

    def update(self, obj: T) -> None:
        object_id = getattr(obj, "id", None)
        if not object_id:
            raise GraphError(f"Cannot update {self.collection} object without an ID")
        self.graph.request("PATCH", self._path(object_id), json=obj.to_payload(exclude={"id"}))

    def delete(self, object_id: str) -> None:
        self.graph.request("DELETE", self._path(object_id))
        logger.info(f"Deleted {self.collection} object {object_id}")

    def list(self, filter: str | None = None) -> list[T]:
        return list(self.graph.paginate(f"/{self.collection}", self.model, {"$filter": filter}))


class OwnersMixin:
    """Owner relationship shared by applications and groups."""

    graph: GraphClient
    collection: str

    def _path(self, object_id: str, *suffix: str) -> str:
        return "/".join([f"/{self.collection}", object_id, *suffix])

    def list_owners(self, object_id: str) -> list[str]:
        path = self._path(object_id, "owners")
        return [o.id for o in self.graph.paginate(path, DirectoryObject, {"$select": "id"})]

    def add_owners(self, object_id: str, owner_ids: list[str]) -> None:
        # Owners can only be bound one reference per request
        for owner_id in owner_ids:
            self.graph.request(
                "POST",
                self._path(object_id, "owners", "$ref"),
                json={"@odata.id": self.graph.directory_object_url(owner_id)},
            )

    def remove_owners(self, object_id: str, owner_ids: list[str]) -> None:
        for owner_id in owner_ids:
            self.graph.request("DELETE", self._path(object_id, "owners", owner_id, "$ref"))


class ApplicationsClient(OwnersMixin, ObjectClient[Application]):
    collection = "applications"
    model = Application


class GroupsClient(OwnersMixin, ObjectClient[Group]):
    collection = "groups"
    model = Group

    def list_members(self, object_id: str) -> list[str]:
        path = self._path(object_id, "members")
        return [m.id for m in self.graph.paginate(path, DirectoryObject, {"$select": "id"})]

    def add_members(self, object_id: str, member_ids: list[str]) -> None:
        for start in range(0, len(member_ids), MEMBER_BIND_BATCH):
            batch = member_ids[start : start + MEMBER_BIND_BATCH]
            self.graph.request(
                "PATCH",
                self._path(object_id),
                json={"members@odata.bind": [self.graph.directory_object_url(m) for m in batch]},
            )

    def remove_members(self, object_id: str, member_ids: list[str]) -> None:
        for member_id in member_ids:
            self.graph.request("DELETE", self._path(object_id, "members", member_id, "$ref"))


class UsersClient(ObjectClient[User]):
    collection = "users"
    model = User


class DomainsClient(ObjectClient[Domain]):
    collection = "domains"
    model = Domain

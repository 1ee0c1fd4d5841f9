"""Common plumbing for resource adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import ProviderConfig
from ..errors import ConfigValidationError
from ..graph_client import GraphClient
from ..locks import NamedLockRegistry
from ..replication import wait_for_creation_replication

C = TypeVar("C", bound=BaseModel)
T = TypeVar("T")

logger = logging.getLogger(__name__)


class ResourceConfig(BaseModel):
    """Base for decoded resource configuration blocks."""

    model_config = {"extra": "forbid", "frozen": True}


@dataclass
class ResourceData:
    """Remote ID plus the flattened attributes read back from the directory."""

    id: str
    attributes: dict[str, Any] = field(default_factory=dict)


def decode_config(model: type[C], attributes: dict[str, Any]) -> C:
    """
    Validate raw attributes into a typed configuration model.

    Raises:
        ConfigValidationError: With the first offending attribute path
    """
    try:
        return model.model_validate(attributes)
    except ValidationError as e:
        errors = e.errors()
        first = errors[0] if errors else {}
        path = ".".join(str(p) for p in first.get("loc", ()))
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in errors
        )
        raise ConfigValidationError(
            f"Invalid {model.__name__}: {details}", attribute=path or None
        ) from None


class Resource(ABC, Generic[C]):
    """
    Adapter translating one configuration block into directory API calls.

    ``read`` and ``update`` return None when the remote object is gone, which
    tells the caller to drop it from local state.
    """

    type_name: ClassVar[str]
    config_model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        graph: GraphClient,
        provider: ProviderConfig | None = None,
        registry: NamedLockRegistry | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.graph = graph
        self.provider = provider or ProviderConfig()
        self.registry = registry
        self._sleep = sleep

    def decode(self, attributes: dict[str, Any]) -> C:
        return decode_config(self.config_model, attributes)  # type: ignore[return-value]

    def wait_for_replication(self, probe: Callable[[], T], object_id: str) -> T:
        """Block until a freshly created object can be read."""
        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return wait_for_creation_replication(
            probe,
            object_id,
            max_attempts=self.provider.replication_max_attempts,
            initial_delay=self.provider.replication_initial_delay,
            max_delay=self.provider.replication_max_delay,
            consecutive_successes=self.provider.replication_consecutive_successes,
            **kwargs,
        )

    @abstractmethod
    def create(self, config: C) -> ResourceData: ...

    @abstractmethod
    def read(self, resource_id: str) -> ResourceData | None: ...

    def update(
        self, resource_id: str, config: C, previous: C | None = None
    ) -> ResourceData | None:
        """
        Apply *config* to an existing object.

        The default replaces the object; resources whose attributes can change
        in place override this. *previous* is the configuration last applied.
        """
        self.delete(resource_id)
        return self.create(config)

    @abstractmethod
    def delete(self, resource_id: str) -> None: ...

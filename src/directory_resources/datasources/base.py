"""Common plumbing for read-only data sources."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from ..config import GraphConfig
from ..graph_client import GraphClient
from ..resources.base import ResourceData, decode_config

C = TypeVar("C", bound=BaseModel)


class DataSourceConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}


class DataSource(ABC, Generic[C]):
    """Looks up existing directory objects; never mutates anything."""

    type_name: ClassVar[str]
    config_model: ClassVar[type[BaseModel]]

    def __init__(self, graph: GraphClient, settings: GraphConfig | None = None):
        self.graph = graph
        self.settings = settings or GraphConfig()

    def decode(self, attributes: dict[str, Any]) -> C:
        return decode_config(self.config_model, attributes)  # type: ignore[return-value]

    def tenant_id(self) -> str:
        """Configured tenant, falling back to the token's ``tid`` claim."""
        return self.settings.tenant_id or self.graph.token_claims().get("tid", "")

    @abstractmethod
    def read(self, config: C) -> ResourceData: ...

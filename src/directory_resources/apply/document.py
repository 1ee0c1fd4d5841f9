"""Desired-state document: declared resources and the references between them."""

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigValidationError

logger = logging.getLogger(__name__)

REFERENCE_RE = re.compile(r"\$\{([A-Za-z][A-Za-z0-9_]*)\.([A-Za-z0-9_-]+)\.([A-Za-z0-9_]+)\}")

Reference = tuple[str, str, str]


class ResourceSpec(BaseModel):
    """One declared resource."""

    type: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_-]+", v):
            raise ValueError(f"resource names may only contain letters, digits, '_' and '-', got {v!r}")
        return v

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def references(self) -> set[Reference]:
        return find_references(self.attributes)

    def dependencies(self) -> set[str]:
        return {f"{t}.{n}" for t, n, _ in self.references()}


def find_references(value: Any) -> set[Reference]:
    """Collect every ``${type.name.attribute}`` reference nested in *value*."""
    if isinstance(value, str):
        return {m.groups() for m in REFERENCE_RE.finditer(value)}  # type: ignore[misc]
    if isinstance(value, Mapping):
        return set().union(*(find_references(v) for v in value.values()))
    if isinstance(value, list):
        return set().union(*(find_references(v) for v in value))
    return set()


def resolve_references(value: Any, lookup: Callable[[str, str, str], Any]) -> Any:
    """
    Substitute references in *value* using *lookup*.

    A string that is exactly one reference takes the referenced value as-is
    (lists stay lists); references embedded in longer strings are formatted in.
    """
    if isinstance(value, str):
        whole = REFERENCE_RE.fullmatch(value)
        if whole:
            return lookup(*whole.groups())
        return REFERENCE_RE.sub(lambda m: str(lookup(*m.groups())), value)
    if isinstance(value, Mapping):
        return {k: resolve_references(v, lookup) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_references(v, lookup) for v in value]
    return value


def dependency_waves(graph: Mapping[str, Iterable[str]]) -> list[list[str]]:
    """
    Group nodes into waves so each node comes after everything it depends on.

    Dependencies outside *graph* are ignored. Waves are sorted for stable output.

    Raises:
        ConfigValidationError: If the graph has a cycle
    """
    pending = {node: {d for d in deps if d in graph and d != node} for node, deps in graph.items()}
    for node, deps in graph.items():
        if node in deps:
            raise ConfigValidationError(f"Resource {node} references itself")

    waves: list[list[str]] = []
    done: set[str] = set()
    while pending:
        ready = sorted(node for node, deps in pending.items() if deps <= done)
        if not ready:
            raise ConfigValidationError(
                f"Dependency cycle between resources: {', '.join(sorted(pending))}"
            )
        waves.append(ready)
        done.update(ready)
        for node in ready:
            del pending[node]
    return waves


class DesiredDocument(BaseModel):
    """Resources declared in a YAML document."""

    resources: list[ResourceSpec] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @classmethod
    def from_yaml(cls, path: Path) -> "DesiredDocument":
        """Load a document from a YAML file."""
        if not path.exists():
            raise ConfigValidationError(f"Document not found: {path}")
        with open(path) as f:
            return cls.from_text(f.read(), source=str(path))

    @classmethod
    def from_text(cls, text: str, source: str = "<string>") -> "DesiredDocument":
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Could not parse {source}: {e}") from None
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid document {source}: {e}") from None

    def by_address(self) -> dict[str, ResourceSpec]:
        return {spec.address: spec for spec in self.resources}

    def validate_against(self, known_types: Iterable[str]) -> None:
        """
        Check types, addresses and references before anything is applied.

        Raises:
            ConfigValidationError: On unknown types, duplicate addresses,
                references to undeclared resources or dependency cycles
        """
        known = set(known_types)
        seen: set[str] = set()
        for spec in self.resources:
            if spec.type not in known:
                raise ConfigValidationError(
                    f"Unknown resource type {spec.type!r} for {spec.address}; "
                    f"expected one of {', '.join(sorted(known))}",
                    attribute="type",
                )
            if spec.address in seen:
                raise ConfigValidationError(f"Duplicate resource address {spec.address}")
            seen.add(spec.address)

        for spec in self.resources:
            for dependency in sorted(spec.dependencies()):
                if dependency not in seen:
                    raise ConfigValidationError(
                        f"Resource {spec.address} references undeclared resource {dependency}"
                    )

        self.waves()

    def waves(self) -> list[list[str]]:
        return dependency_waves({spec.address: spec.dependencies() for spec in self.resources})

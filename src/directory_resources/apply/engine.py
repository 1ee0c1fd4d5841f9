"""Apply engine converging the directory towards a desired document."""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import AppConfig
from ..datasources import DATA_SOURCE_TYPES
from ..errors import ConfigValidationError, DirectoryError, StateError
from ..graph_client import GraphClient
from ..locks import NamedLockRegistry
from ..resources import RESOURCE_TYPES, Resource, ResourceData
from .document import DesiredDocument, ResourceSpec, dependency_waves, resolve_references
from .state import ProviderState, ResourceState, compute_data_hash

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of an apply, refresh or destroy run, as lists of addresses."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def changed(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)

    @property
    def success(self) -> bool:
        return not self.errors


class ApplyEngine:
    """
    Orchestrates resource adapters against the local state file.

    Resources are processed in dependency waves. Each wave runs on a thread
    pool; sub-resources of one application written concurrently are
    serialised by the named lock registry inside the adapters.
    """

    def __init__(
        self,
        config: AppConfig,
        graph: GraphClient | None = None,
        state_path: Path | None = None,
        registry: NamedLockRegistry | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        """
        Initialize the apply engine.

        Args:
            config: Application configuration
            graph: Directory client (built from configuration when omitted)
            state_path: Path to state file (defaults to config value)
            registry: Lock registry (defaults to the process-wide one)
            sleep: Sleep function used while waiting for replication
        """
        self.config = config
        self.state_path = state_path or config.provider.state_file
        self.state = ProviderState.load(self.state_path)
        self.registry = registry
        self._sleep = sleep
        self._graph = graph
        self._resources: dict[str, Resource] = {}
        self._state_lock = threading.Lock()

    @property
    def graph(self) -> GraphClient:
        """Get or create the directory client."""
        if self._graph is None:
            self._graph = GraphClient.from_config(self.config.graph)
        return self._graph

    def close(self) -> None:
        """Clean up resources."""
        if self._graph is not None:
            self._graph.close()
            self._graph = None

    def save_state(self) -> None:
        """
        Persist the state file.

        Raises:
            StateError: If the file cannot be written
        """
        with self._state_lock:
            try:
                self.state.save(self.state_path)
            except OSError as e:
                raise StateError(f"Could not save state to {self.state_path}: {e}") from e

    def resource(self, resource_type: str) -> Resource:
        """Adapter instance for *resource_type*."""
        if resource_type not in self._resources:
            try:
                cls = RESOURCE_TYPES[resource_type]
            except KeyError:
                raise ConfigValidationError(
                    f"Unknown resource type {resource_type!r}", attribute="type"
                ) from None
            self._resources[resource_type] = cls(
                self.graph, self.config.provider, registry=self.registry, sleep=self._sleep
            )
        return self._resources[resource_type]

    def read_data_source(self, source_type: str, attributes: dict[str, Any]) -> ResourceData:
        """Look up existing objects with a data source."""
        try:
            cls = DATA_SOURCE_TYPES[source_type]
        except KeyError:
            raise ConfigValidationError(
                f"Unknown data source {source_type!r}; expected one of "
                f"{', '.join(sorted(DATA_SOURCE_TYPES))}"
            ) from None
        source = cls(self.graph, self.config.graph)
        return source.read(source.decode(attributes))

    # ==================== Reference resolution ====================

    def _lookup(self, resource_type: str, name: str, attribute: str) -> Any:
        address = f"{resource_type}.{name}"
        with self._state_lock:
            entry = self.state.get(address)
        if entry is None:
            raise ConfigValidationError(f"Referenced resource {address} has not been created")
        if attribute == "id":
            return entry.id
        if attribute not in entry.attributes:
            raise ConfigValidationError(
                f"Referenced resource {address} has no attribute {attribute!r}"
            )
        return entry.attributes[attribute]

    # ==================== Apply ====================

    def _apply_one(self, spec: ResourceSpec) -> list[tuple[str, str]]:
        """Converge one resource; returns (outcome, address) pairs."""
        address = spec.address
        resource = self.resource(spec.type)
        raw = resolve_references(spec.attributes, self._lookup)
        config = resource.decode(raw)
        config_hash = compute_data_hash(raw)
        dependencies = sorted(spec.dependencies())
        outcomes: list[tuple[str, str]] = []

        with self._state_lock:
            entry = self.state.get(address)

        if entry is not None:
            current = resource.read(entry.id)
            if current is None:
                logger.info(f"{address} ({entry.id}) no longer exists - recreating")
                with self._state_lock:
                    self.state.remove(address)
                outcomes.append(("removed", address))
            elif entry.config_hash == config_hash:
                with self._state_lock:
                    self.state.put(
                        spec.type,
                        spec.name,
                        entry.id,
                        {**entry.attributes, **current.attributes},
                        dependencies=dependencies,
                    )
                return [("unchanged", address)]
            else:
                previous = None
                if entry.config:
                    try:
                        previous = resource.decode(entry.config)
                    except ConfigValidationError:
                        logger.debug(f"Stored configuration of {address} no longer decodes")
                updated = resource.update(entry.id, config, previous)
                with self._state_lock:
                    if updated is None:
                        logger.info(f"{address} ({entry.id}) disappeared during update - removing from state")
                        self.state.remove(address)
                        return [("removed", address)]
                    self.state.put(
                        spec.type,
                        spec.name,
                        updated.id,
                        updated.attributes,
                        config=raw,
                        config_hash=config_hash,
                        dependencies=dependencies,
                    )
                logger.info(f"Updated {address} ({updated.id})")
                return [("updated", address)]

        created = resource.create(config)
        with self._state_lock:
            self.state.put(
                spec.type,
                spec.name,
                created.id,
                created.attributes,
                config=raw,
                config_hash=config_hash,
                dependencies=dependencies,
            )
        logger.info(f"Created {address} ({created.id})")
        outcomes.append(("created", address))
        return outcomes

    def _record(self, result: ApplyResult, outcomes: list[tuple[str, str]]) -> None:
        for outcome, address in outcomes:
            getattr(result, outcome).append(address)

    def _run_waves(
        self,
        waves: list[list[str]],
        blockers: dict[str, set[str]],
        action: Callable[[str], list[tuple[str, str]]],
        result: ApplyResult,
    ) -> bool:
        """
        Run *action* for every address, wave by wave, on the thread pool.

        An address is skipped when any of its *blockers* failed or was skipped.
        State is saved after each wave; if that fails the error is recorded
        under the state file path, the remaining waves are not started and
        False is returned.
        """
        failed: set[str] = set()
        with ThreadPoolExecutor(max_workers=self.config.provider.parallelism) as pool:
            for wave in waves:
                futures = {}
                for address in wave:
                    if blockers.get(address, set()) & failed:
                        logger.warning(f"Skipping {address}: a resource it depends on failed")
                        result.skipped.append(address)
                        failed.add(address)
                        continue
                    futures[address] = pool.submit(action, address)

                for address, future in futures.items():
                    try:
                        self._record(result, future.result())
                    except DirectoryError as e:
                        logger.error(f"{address}: {e}")
                        result.errors[address] = str(e)
                        failed.add(address)

                try:
                    self.save_state()
                except StateError as e:
                    logger.error(str(e))
                    result.errors[str(self.state_path)] = str(e)
                    return False
        return True

    def _delete_addresses(self, addresses: set[str], result: ApplyResult) -> bool:
        """Delete tracked resources, dependents before the resources they depend on."""
        with self._state_lock:
            graph = {a: set(self.state.resources[a].dependencies) for a in addresses}
        waves = list(reversed(dependency_waves(graph)))

        # A resource is blocked by whatever still depends on it
        dependents: dict[str, set[str]] = {a: set() for a in addresses}
        for address, deps in graph.items():
            for dep in deps & addresses:
                dependents[dep].add(address)

        def _delete(address: str) -> list[tuple[str, str]]:
            with self._state_lock:
                entry = self.state.resources[address]
            self.resource(entry.type).delete(entry.id)
            with self._state_lock:
                self.state.remove(address)
            logger.info(f"Deleted {address} ({entry.id})")
            return [("deleted", address)]

        return self._run_waves(waves, dependents, _delete, result)

    def apply(self, document: DesiredDocument) -> ApplyResult:
        """
        Converge the directory to *document*.

        Raises:
            ConfigValidationError: If the document itself is invalid; nothing is applied
        """
        start = time.monotonic()
        document.validate_against(RESOURCE_TYPES)
        specs = document.by_address()
        result = ApplyResult()

        saved = self._run_waves(
            document.waves(),
            {address: spec.dependencies() for address, spec in specs.items()},
            lambda address: self._apply_one(specs[address]),
            result,
        )

        with self._state_lock:
            orphans = set(self.state.resources) - set(specs)
        if saved and orphans:
            logger.info(f"Deleting {len(orphans)} resource(s) no longer declared")
            self._delete_addresses(orphans, result)

        result.duration_seconds = time.monotonic() - start
        return result

    def refresh(self) -> ApplyResult:
        """Read every tracked resource, dropping the ones that are gone."""
        start = time.monotonic()
        result = ApplyResult()

        def _refresh(address: str) -> list[tuple[str, str]]:
            with self._state_lock:
                entry = self.state.resources[address]
            current = self.resource(entry.type).read(entry.id)
            with self._state_lock:
                if current is None:
                    logger.info(f"{address} ({entry.id}) no longer exists - removing from state")
                    self.state.remove(address)
                    return [("removed", address)]
                self.state.put(
                    entry.type, entry.name, entry.id, {**entry.attributes, **current.attributes}
                )
            return [("unchanged", address)]

        with self._state_lock:
            addresses = sorted(self.state.resources)
        self._run_waves([addresses], {}, _refresh, result)

        result.duration_seconds = time.monotonic() - start
        return result

    def destroy(self) -> ApplyResult:
        """Delete every tracked resource in reverse dependency order."""
        start = time.monotonic()
        result = ApplyResult()
        with self._state_lock:
            addresses = set(self.state.resources)
        if addresses:
            self._delete_addresses(addresses, result)
        result.duration_seconds = time.monotonic() - start
        return result

    def tracked(self) -> list[ResourceState]:
        """Tracked resources, sorted by address."""
        with self._state_lock:
            return [self.state.resources[a] for a in sorted(self.state.resources)]

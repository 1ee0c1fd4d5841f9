"""Local state file tracking the remote objects under management."""

import hashlib
import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .._compat import secure_file

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceState(BaseModel):
    """State of a single managed resource."""

    type: str
    name: str
    id: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    config_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    last_refresh: datetime = Field(default_factory=_now)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


class ProviderState(BaseModel):
    """Overall state across all managed resources, keyed by address."""

    version: str = "1.0"
    created: datetime = Field(default_factory=_now)
    last_modified: datetime = Field(default_factory=_now)
    resources: dict[str, ResourceState] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "ProviderState":
        """
        Load state from a file with corruption detection and recovery.

        Args:
            path: Path to state file

        Returns:
            Loaded state, or a new empty state if the file doesn't exist or is corrupted
        """
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"State file corrupted: {e}")

            backup_path = path.with_suffix(".json.backup")
            if backup_path.exists():
                logger.info("Attempting recovery from backup...")
                try:
                    with open(backup_path) as f:
                        data = json.load(f)
                    state = cls.model_validate(data)
                    logger.info("Recovery from backup successful")
                    return state
                except (json.JSONDecodeError, ValidationError) as backup_err:
                    logger.error(f"Backup also corrupted: {backup_err}")

            logger.warning("Starting with fresh state")
            return cls()

    def save(self, path: Path) -> None:
        """
        Save state with an atomic write, keeping the previous file as a backup.

        Args:
            path: Path to state file
        """
        self.last_modified = _now()
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.exists():
            backup_path = path.with_suffix(".json.backup")
            try:
                shutil.copy2(path, backup_path)
                secure_file(backup_path)
            except OSError as e:
                logger.warning(f"Failed to create backup: {e}")

        temp_path = path.with_suffix(".json.tmp")
        with open(temp_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)
        secure_file(temp_path)
        # Path.replace overwrites atomically on every platform
        temp_path.replace(path)

    def get(self, address: str) -> ResourceState | None:
        return self.resources.get(address)

    def put(
        self,
        resource_type: str,
        name: str,
        resource_id: str,
        attributes: dict[str, Any],
        config: dict[str, Any] | None = None,
        config_hash: str | None = None,
        dependencies: list[str] | None = None,
    ) -> ResourceState:
        """Record a resource, keeping previous config details when not given."""
        address = f"{resource_type}.{name}"
        previous = self.resources.get(address)
        entry = ResourceState(
            type=resource_type,
            name=name,
            id=resource_id,
            attributes=attributes,
            config=config if config is not None else (previous.config if previous else {}),
            config_hash=(
                config_hash if config_hash is not None else (previous.config_hash if previous else "")
            ),
            dependencies=(
                dependencies
                if dependencies is not None
                else (previous.dependencies if previous else [])
            ),
        )
        self.resources[address] = entry
        return entry

    def remove(self, address: str) -> None:
        """Remove a resource from state."""
        self.resources.pop(address, None)


def compute_data_hash(data: dict[str, Any]) -> str:
    """
    Compute a hash of resolved configuration for change detection.

    Args:
        data: Configuration attributes

    Returns:
        Hash string
    """
    content = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()[:16]

"""Process-wide named locks for serialising writes to a shared parent object."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class NamedLockRegistry:
    """
    Map of string keys to mutexes.

    Entries are created lazily on first use and never removed, so the registry
    grows with the number of distinct parent objects touched by the process.
    Holders must not nest acquisitions.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def acquire(self, key: str) -> Iterator[None]:
        """Hold the mutex for *key* for the duration of the ``with`` block."""
        lock = self._lock_for(key)
        logger.debug(f"Locking {key!r}")
        with lock:
            try:
                yield
            finally:
                logger.debug(f"Unlocking {key!r}")

    def is_locked(self, key: str) -> bool:
        """Return True if *key* is currently held."""
        with self._guard:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_registry = NamedLockRegistry()


def default_registry() -> NamedLockRegistry:
    """Return the process-wide registry."""
    return _registry


def lock_key(resource_type: str, name: str) -> str:
    return f"{resource_type}:{name}"


@contextmanager
def lock_by_name(
    resource_type: str, name: str, registry: NamedLockRegistry | None = None
) -> Iterator[None]:
    """Serialise writes to the object *name* of *resource_type*."""
    target = registry if registry is not None else _registry
    with target.acquire(lock_key(resource_type, name)):
        yield

"""Desired-document loading, state tracking and the apply engine."""

from .document import (
    DesiredDocument,
    ResourceSpec,
    dependency_waves,
    find_references,
    resolve_references,
)
from .engine import ApplyEngine, ApplyResult
from .state import ProviderState, ResourceState, compute_data_hash

__all__ = [
    "ApplyEngine",
    "ApplyResult",
    "DesiredDocument",
    "ProviderState",
    "ResourceSpec",
    "ResourceState",
    "compute_data_hash",
    "dependency_waves",
    "find_references",
    "resolve_references",
]

"""Set-difference reconciliation for multi-valued relationships (owners, members)."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .errors import GraphError, ResourceError

logger = logging.getLogger(__name__)


@dataclass
class MembershipDiff:
    """Additions and removals that turn the current set into the desired set."""

    additions: list[str] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.additions or self.removals)


def difference(source: Iterable[str], exclude: Iterable[str]) -> list[str]:
    """Return the unique items of *source* absent from *exclude*, in first-seen order."""
    excluded = set(exclude)
    seen: set[str] = set()
    result = []
    for item in source:
        if item in excluded or item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def plan_membership(current: Iterable[str], desired: Iterable[str]) -> MembershipDiff:
    """
    Compute the minimal changes between two memberships.

    Both inputs are treated as sets (duplicates collapse); ordering of the
    result carries no meaning.
    """
    current = list(current)
    desired = list(desired)
    return MembershipDiff(
        additions=difference(desired, current),
        removals=difference(current, desired),
    )


def reconcile_membership(
    relationship: str,
    object_id: str,
    desired: Iterable[str],
    list_fn: Callable[[str], list[str]],
    add_fn: Callable[[str, list[str]], None],
    remove_fn: Callable[[str, list[str]], None],
    add_first: bool = False,
) -> MembershipDiff:
    """
    Bring the *relationship* of *object_id* in line with *desired*.

    Bulk add and bulk remove are issued independently; if the second call
    fails after the first succeeded the relationship is left partially
    applied and the error is raised. A later pass converges.

    Args:
        relationship: Name used in messages, e.g. ``"members"``
        object_id: Object owning the relationship
        desired: Full desired membership
        list_fn: Returns current member IDs
        add_fn: Adds the given member IDs
        remove_fn: Removes the given member IDs
        add_first: Issue additions before removals (owners must never drop to zero)

    Returns:
        The applied diff
    """
    try:
        current = list_fn(object_id)
    except GraphError as e:
        raise ResourceError(
            f"Could not retrieve {relationship} for object with ID {object_id!r}",
            attribute=relationship,
        ) from e

    diff = plan_membership(current, desired)
    if not diff.has_changes:
        return diff

    logger.info(
        f"Reconciling {relationship} for {object_id}: "
        f"+{len(diff.additions)} / -{len(diff.removals)}"
    )

    def _add() -> None:
        if not diff.additions:
            return
        try:
            add_fn(object_id, diff.additions)
        except GraphError as e:
            raise ResourceError(
                f"Could not add {relationship} to object with ID {object_id!r}",
                attribute=relationship,
            ) from e

    def _remove() -> None:
        if not diff.removals:
            return
        try:
            remove_fn(object_id, diff.removals)
        except GraphError as e:
            raise ResourceError(
                f"Could not remove {relationship} from object with ID {object_id!r}",
                attribute=relationship,
            ) from e

    if add_first:
        _add()
        _remove()
    else:
        _remove()
        _add()

    return diff

"""Polling helper masking replication lag after object creation."""

import logging
import random
import time
from collections.abc import Callable
from typing import TypeVar

from .errors import GraphError, NotFoundError, ReplicationTimeoutError, ResourceError

T = TypeVar("T")

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 20
INITIAL_DELAY = 1.0
MAX_DELAY = 16.0


def backoff_delay(attempt: int, initial: float, maximum: float) -> float:
    """Exponential backoff for *attempt* (0-based), capped, with 0-1s jitter."""
    if initial <= 0:
        return 0.0
    return min(initial * 2**attempt, maximum) + random.uniform(0, 1)


def wait_for_creation_replication(
    probe: Callable[[], T],
    object_id: str,
    max_attempts: int = MAX_ATTEMPTS,
    initial_delay: float = INITIAL_DELAY,
    max_delay: float = MAX_DELAY,
    consecutive_successes: int = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Poll *probe* until the object it reads is visible.

    The probe is a zero-argument callable that either returns the object or
    raises ``GraphError``. ``NotFoundError`` is treated as "not replicated yet"
    and retried with exponential backoff; any other error is fatal.

    Args:
        probe: Reads the newly created object
        object_id: ID of the object, used in error messages
        max_attempts: Total number of probe calls allowed
        initial_delay: First backoff delay in seconds
        max_delay: Backoff cap in seconds
        consecutive_successes: Successful reads needed in a row before returning
        sleep: Sleep function (injectable for tests)

    Returns:
        The result of the last successful probe

    Raises:
        ReplicationTimeoutError: If the budget is exhausted
        ResourceError: If the probe fails with anything other than not found
    """
    successes = 0
    misses = 0
    for attempt in range(max_attempts):
        try:
            result = probe()
        except NotFoundError:
            successes = 0
            misses += 1
            logger.debug(
                f"Object {object_id!r} not yet replicated, attempt {attempt + 1}/{max_attempts}"
            )
        except GraphError as e:
            raise ResourceError(
                f"Waiting for object with ID {object_id!r} to replicate, received "
                f"response with status {e.status_code}"
            ) from e
        else:
            successes += 1
            if successes >= consecutive_successes:
                if misses:
                    logger.info(f"Object {object_id!r} visible after {attempt + 1} reads")
                return result

        if attempt < max_attempts - 1:
            # Back off only while the object is missing; confirmations poll quickly
            delay = backoff_delay(misses - 1, initial_delay, max_delay) if successes == 0 else 0.0
            if delay:
                sleep(delay)

    raise ReplicationTimeoutError(object_id, max_attempts)

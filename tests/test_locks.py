"""Tests for the named lock registry."""

import threading
import time

from directory_resources.locks import NamedLockRegistry, lock_by_name, lock_key


def test_lock_key_combines_type_and_name():
    assert lock_key("application", "abc") == "application:abc"


def test_same_name_is_serialised(registry):
    active = 0
    peak = 0
    guard = threading.Lock()

    def worker():
        nonlocal active, peak
        with lock_by_name("application", "obj-1", registry):
            with guard:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with guard:
                active -= 1

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert peak == 1


def test_different_names_do_not_block_each_other(registry):
    entered = threading.Event()
    release = threading.Event()

    def holder():
        with lock_by_name("application", "obj-1", registry):
            entered.set()
            release.wait(timeout=5)

    t = threading.Thread(target=holder)
    t.start()
    assert entered.wait(timeout=5)

    # A different key is free while obj-1 is held
    with lock_by_name("application", "obj-2", registry):
        assert registry.is_locked(lock_key("application", "obj-1"))

    release.set()
    t.join()
    assert not registry.is_locked(lock_key("application", "obj-1"))


def test_lock_released_on_exception(registry):
    try:
        with lock_by_name("group", "g", registry):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert not registry.is_locked(lock_key("group", "g"))


def test_registry_creates_entries_lazily():
    registry = NamedLockRegistry()
    assert len(registry) == 0
    with registry.acquire("a"):
        pass
    with registry.acquire("a"):
        pass
    with registry.acquire("b"):
        pass
    assert len(registry) == 2


def test_empty_registry_is_used_rather_than_default():
    registry = NamedLockRegistry()
    with lock_by_name("application", "obj", registry):
        assert registry.is_locked("application:obj")

"""Tests for the local state file."""

import json
import stat
import sys

import pytest

from directory_resources.apply import ProviderState
from directory_resources.apply.state import compute_data_hash


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


def test_missing_file_gives_empty_state(state_path):
    assert ProviderState.load(state_path).resources == {}


def test_save_and_load(state_path):
    state = ProviderState()
    state.put("group", "g", "id-1", {"display_name": "g"}, config={"display_name": "g"}, config_hash="h")
    state.save(state_path)

    loaded = ProviderState.load(state_path)
    entry = loaded.get("group.g")
    assert entry.id == "id-1"
    assert entry.address == "group.g"
    assert entry.config_hash == "h"


def test_save_keeps_backup(state_path):
    state = ProviderState()
    state.put("group", "g", "id-1", {})
    state.save(state_path)
    state.put("group", "h", "id-2", {})
    state.save(state_path)

    backup = json.loads(state_path.with_suffix(".json.backup").read_text())
    assert list(backup["resources"]) == ["group.g"]
    assert not state_path.with_suffix(".json.tmp").exists()


def test_recovers_from_backup(state_path):
    state = ProviderState()
    state.put("group", "g", "id-1", {})
    state.save(state_path)
    state.save(state_path)
    state_path.write_text("{not json")

    assert ProviderState.load(state_path).get("group.g").id == "id-1"


def test_fresh_state_when_backup_also_corrupt(state_path):
    state_path.write_text("{not json")
    state_path.with_suffix(".json.backup").write_text("[]")

    assert ProviderState.load(state_path).resources == {}


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_state_file_is_private(state_path):
    ProviderState().save(state_path)
    assert stat.S_IMODE(state_path.stat().st_mode) == 0o600


def test_put_keeps_previous_config_when_omitted():
    state = ProviderState()
    state.put("group", "g", "id-1", {}, config={"a": 1}, config_hash="h", dependencies=["user.u"])
    entry = state.put("group", "g", "id-1", {"refreshed": True})

    assert entry.config == {"a": 1}
    assert entry.config_hash == "h"
    assert entry.dependencies == ["user.u"]


def test_remove_is_idempotent():
    state = ProviderState()
    state.put("group", "g", "id-1", {})
    state.remove("group.g")
    state.remove("group.g")
    assert state.resources == {}


def test_hash_ignores_key_order():
    assert compute_data_hash({"a": 1, "b": [1, 2]}) == compute_data_hash({"b": [1, 2], "a": 1})
    assert compute_data_hash({"a": 1}) != compute_data_hash({"a": 2})
    assert len(compute_data_hash({})) == 16

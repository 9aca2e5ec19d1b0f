from __future__ import annotations

import json
from pathlib import Path

import pytest

from ragchat.config import StorageConfig
from ragchat.store import JsonFileStore, MemoryStore, StoreTiers


def test_memory_store_round_trip_and_remove() -> None:
    store = MemoryStore()
    assert store.get("missing") is None
    assert store.set("chat_open", True)
    assert store.set("log", [{"id": "a"}])
    assert store.get("chat_open") is True
    assert store.get("log") == [{"id": "a"}]
    store.remove("log")
    store.remove("log")
    assert store.get("log") is None


def test_malformed_value_reads_as_absent() -> None:
    store = MemoryStore()
    store.put_raw("log", "{not json")
    assert store.get("log") is None


def test_quota_failure_is_absorbed() -> None:
    store = MemoryStore(capacity_bytes=16)
    assert store.set("small", "ok")
    assert not store.set("big", "x" * 64)
    assert store.get("big") is None
    assert store.get("small") == "ok"


def test_unserializable_value_is_rejected_without_raising() -> None:
    store = MemoryStore()
    assert not store.set("bad", object())


def test_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "durable.json"
    JsonFileStore(path).set("chat_auto_opened", True)

    reopened = JsonFileStore(path)
    assert reopened.get("chat_auto_opened") is True
    reopened.remove("chat_auto_opened")
    assert JsonFileStore(path).get("chat_auto_opened") is None


def test_file_store_survives_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "durable.json"
    path.write_text("[[[", encoding="utf-8")
    store = JsonFileStore(path)
    assert store.get("anything") is None
    assert store.set("key", 1)
    assert json.loads(path.read_text(encoding="utf-8")) == {"key": "1"}


def test_file_store_write_failure_is_absorbed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _raise(*_args, **_kwargs):
        raise PermissionError("read-only volume")

    monkeypatch.setattr("ragchat.store.atomic_write_text", _raise)
    store = JsonFileStore(tmp_path / "durable.json")
    assert not store.set("key", "value")
    assert store.get("key") is None


def test_tiers_from_config(tmp_path: Path) -> None:
    config = StorageConfig(data_dir=tmp_path)

    anonymous = StoreTiers.from_config(config)
    named = StoreTiers.from_config(config, "work/laptop")

    assert isinstance(anonymous.session, MemoryStore)
    assert isinstance(named.session, JsonFileStore)
    assert named.session.path == tmp_path / "sessions" / "work_laptop.json"
    assert named.durable.path == tmp_path / "durable.json"

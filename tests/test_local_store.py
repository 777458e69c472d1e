"""
Tests for the JSON key-value stores.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from minbar.infrastructure.storage.local_store import JsonFileStore, MemoryStore


def test_file_store_roundtrip_across_instances(tmp_path: Path) -> None:
    """A second store on the same path sees the first one's writes."""
    path = tmp_path / "nested" / "store.json"
    a = JsonFileStore(path)
    a.set("sebha_total", 33)
    a.set("events", {"2024-03-15": [{"id": "x", "title": "Lesson"}]})

    b = JsonFileStore(path)
    assert b.get("sebha_total") == 33
    assert b.get_dict("events")["2024-03-15"][0]["title"] == "Lesson"
    assert b.get("missing", "fallback") == "fallback"


def test_file_store_delete(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "s.json")
    store.set("k", [1])
    store.delete("k")
    store.delete("never-there")
    assert store.get("k") is None


def test_corrupt_file_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "s.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)
    assert store.get("anything") is None
    store.set("k", "v")
    assert store.get("k") == "v"


def test_unencodable_value_is_rejected_without_touching_file(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "s.json")
    store.set("k", 1)
    with pytest.raises(TypeError):
        store.set("bad", object())
    assert store.get("k") == 1


def test_memory_store_copies_values() -> None:
    store = MemoryStore()
    value = {"a": [1, 2]}
    store.set("k", value)
    value["a"].append(3)
    assert store.get("k") == {"a": [1, 2]}
    assert store.get_dict("nope") == {}


def test_invalid_utf8_file_reads_as_empty(tmp_path: Path) -> None:
    """Bytes that are not UTF-8 are treated like any other corrupt file."""
    path = tmp_path / "s.json"
    path.write_bytes(b'{"k": "\xff\xfe"}')
    store = JsonFileStore(path)
    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"

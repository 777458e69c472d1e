"""
Tests for ScheduleStore: persistence, deletion, khotba merge, demo seeding.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path

from minbar.domains.schedule.events import (
    DEFAULT_COLORS,
    KHOTBA_COLOR,
    KHOTBAS_KEY,
    STORAGE_KEY,
    EventItem,
    ScheduleStore,
    new_event_id,
)
from minbar.infrastructure.storage.local_store import JsonFileStore, MemoryStore


def test_new_event_id_format() -> None:
    assert re.fullmatch(r"[0-9a-z]+-[0-9a-z]{4}", new_event_id())


def test_add_then_reload_roundtrip(tmp_path: Path) -> None:
    """Events survive a reload from the same file."""
    path = tmp_path / "store.json"
    s = ScheduleStore(JsonFileStore(path))
    s.load()
    item = s.add_event("2024-03-15", "  Tafsir circle ", time="19:30")
    assert item is not None
    assert item.title == "Tafsir circle"
    assert item.color == DEFAULT_COLORS[0]

    reloaded = ScheduleStore(JsonFileStore(path))
    reloaded.load()
    (again,) = reloaded.events_for("2024-03-15")
    assert again == item


def test_blank_title_is_ignored() -> None:
    store = MemoryStore()
    s = ScheduleStore(store)
    s.load()
    assert s.add_event("2024-03-15", "   ") is None
    assert store.get(STORAGE_KEY) is None


def test_deleting_last_event_removes_date_key() -> None:
    store = MemoryStore()
    s = ScheduleStore(store)
    s.load()
    a = s.add_event("2024-03-15", "Lesson A")
    b = s.add_event("2024-03-15", "Lesson B")
    assert a is not None and b is not None

    assert s.delete_event("2024-03-15", a.id) is True
    assert [e["id"] for e in store.get(STORAGE_KEY)["2024-03-15"]] == [b.id]
    assert s.delete_event("2024-03-15", b.id) is True
    assert "2024-03-15" not in store.get(STORAGE_KEY)
    assert "2024-03-15" not in s.events
    assert s.delete_event("2024-03-15", b.id) is False


def test_khotbas_are_merged_but_not_persisted() -> None:
    store = MemoryStore()
    store.set(KHOTBAS_KEY, {"2024-03-15": [{"id": "k1", "title": "Friday khotba", "isKhotba": True}]})
    s = ScheduleStore(store)
    s.load()
    (k,) = s.events_for("2024-03-15")
    assert k.is_khotba and k.color == KHOTBA_COLOR

    s.add_event("2024-03-15", "After-prayer lesson")
    saved = store.get(STORAGE_KEY)["2024-03-15"]
    assert [e["title"] for e in saved] == ["After-prayer lesson"]
    assert len(s.events_for("2024-03-15")) == 2


def test_khotba_with_existing_id_is_not_duplicated() -> None:
    store = MemoryStore()
    store.set(STORAGE_KEY, {"2024-03-15": [{"id": "k1", "title": "Friday khotba"}]})
    store.set(KHOTBAS_KEY, {"2024-03-15": [{"id": "k1", "title": "Friday khotba", "isKhotba": True}]})
    s = ScheduleStore(store)
    s.load()
    assert len(s.events_for("2024-03-15")) == 1


def test_seed_defaults_only_when_empty() -> None:
    today = date(2024, 3, 13)
    s = ScheduleStore(MemoryStore(), seed_defaults=True, today=today)
    events = s.load()
    assert [e.id for e in events["2024-03-13"]] == ["e1"]
    assert [e.id for e in events["2024-03-14"]] == ["e2"]

    store = MemoryStore()
    store.set(STORAGE_KEY, {"2024-01-01": [{"id": "x", "title": "Kept"}]})
    s = ScheduleStore(store, seed_defaults=True, today=today)
    assert list(s.load()) == ["2024-01-01"]


def test_demo_events_return_after_deleting_everything() -> None:
    today = date(2024, 3, 13)
    store = MemoryStore()
    s = ScheduleStore(store, seed_defaults=True, today=today)
    s.load()
    assert s.delete_event("2024-03-13", "e1")
    assert s.delete_event("2024-03-14", "e2")

    again = ScheduleStore(store, seed_defaults=True, today=today)
    assert [e.id for e in again.load()["2024-03-13"]] == ["e1"]


def test_garbage_in_storage_is_skipped() -> None:
    store = MemoryStore()
    store.set(STORAGE_KEY, {"2024-03-15": "nope", "2024-03-16": [{"title": "Ok"}, 3]})
    s = ScheduleStore(store)
    s.load()
    assert s.events_for("2024-03-15") == []
    (item,) = s.events_for("2024-03-16")
    assert item.title == "Ok" and item.id


def test_event_item_dict_shape() -> None:
    item = EventItem(id="a", title="T", is_khotba=True)
    assert item.to_dict() == {"id": "a", "title": "T", "isKhotba": True}
    assert EventItem.from_dict({"id": "a", "title": "T", "isKhotba": True}) == item

"""
Schedule events keyed by ISO date, persisted as a flat JSON map in the local store.

Khotbas scheduled from the khotba preparation flow live under their own key;
they are merged into the view on load and never written back as regular events.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from minbar.domains.schedule.calendar import to_iso
from minbar.infrastructure.storage.local_store import KeyValueStore
from minbar.utils.logger import get_logger

logger = get_logger()

STORAGE_KEY = "quran_schedule_events_v2"
KHOTBAS_KEY = "scheduled_khotbas"
DEFAULT_COLORS = ["bg-gray-400", "bg-orange-400", "bg-red-500", "bg-green-500", "bg-blue-500"]
KHOTBA_COLOR = "bg-green-500"

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def new_event_id() -> str:
    """<base36 epoch millis>-<4 random base36 chars>."""
    suffix = "".join(random.choice(_BASE36) for _ in range(4))
    return f"{_base36(int(time.time() * 1000))}-{suffix}"


@dataclass
class EventItem:
    id: str
    title: str
    time: str | None = None
    color: str | None = None
    is_khotba: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventItem":
        return cls(
            id=str(data.get("id") or new_event_id()),
            title=str(data.get("title") or ""),
            time=data.get("time") or None,
            color=data.get("color") or None,
            is_khotba=bool(data.get("isKhotba", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.time:
            out["time"] = self.time
        if self.color:
            out["color"] = self.color
        if self.is_khotba:
            out["isKhotba"] = True
        return out


def _parse_map(raw: Any) -> dict[str, list[EventItem]]:
    out: dict[str, list[EventItem]] = {}
    if not isinstance(raw, dict):
        return out
    for iso, items in raw.items():
        if not isinstance(items, list):
            continue
        parsed = [EventItem.from_dict(i) for i in items if isinstance(i, dict)]
        if parsed:
            out[str(iso)] = parsed
    return out


class ScheduleStore:
    """
    Events per ISO date. Every mutation is persisted immediately.

    Args:
        store: Backing key-value store.
        seed_defaults: When storage holds nothing at all, start with two demo
            lessons (today and tomorrow) like the web client's first run.
        today: Anchor date for the demo events.
    """

    def __init__(self, store: KeyValueStore, *, seed_defaults: bool = False, today: date | None = None) -> None:
        self._store = store
        self._seed_defaults = seed_defaults
        self._today = today
        self._events: dict[str, list[EventItem]] = {}
        self._khotba_ids: set[str] = set()

    def load(self) -> dict[str, list[EventItem]]:
        """Read regular events, merge scheduled khotbas, optionally seed demo events."""
        try:
            events = _parse_map(self._store.get(STORAGE_KEY))
            khotbas = _parse_map(self._store.get(KHOTBAS_KEY))
        except Exception as e:
            logger.warning("Schedule load failed, starting empty: %s", e)
            events, khotbas = {}, {}

        self._khotba_ids = {k.id for items in khotbas.values() for k in items}
        for iso, items in khotbas.items():
            day = events.setdefault(iso, [])
            existing = {e.id for e in day}
            for k in items:
                if k.id in existing:
                    continue
                k.color = k.color or KHOTBA_COLOR
                day.append(k)

        if not events and self._seed_defaults:
            t = self._today or date.today()
            events = {
                to_iso(t): [EventItem(id="e1", title="Lesson on the pillars of prayer")],
                to_iso(t + timedelta(days=1)): [EventItem(id="e2", title="Lesson on the pillars of prayer")],
            }
        self._events = events
        logger.info("Loaded schedule: %d dates, %d khotbas", len(events), len(self._khotba_ids))
        return self.events

    @property
    def events(self) -> dict[str, list[EventItem]]:
        return {iso: list(items) for iso, items in self._events.items()}

    def events_for(self, iso: str) -> list[EventItem]:
        return list(self._events.get(iso, []))

    def add_event(self, iso: str, title: str, time: str | None = None, color: str | None = None) -> EventItem | None:
        """Append an event to a date. Blank titles are ignored (returns None)."""
        title = (title or "").strip()
        if not iso or not title:
            return None
        item = EventItem(id=new_event_id(), title=title, time=time or None, color=color or DEFAULT_COLORS[0])
        self._events.setdefault(iso, []).append(item)
        self._persist()
        return item

    def delete_event(self, iso: str, event_id: str) -> bool:
        """Remove an event; the date key disappears with its last event."""
        items = self._events.get(iso)
        if not items:
            return False
        remaining = [e for e in items if e.id != event_id]
        if len(remaining) == len(items):
            return False
        if remaining:
            self._events[iso] = remaining
        else:
            del self._events[iso]
        self._persist()
        return True

    def _persist(self) -> None:
        regular: dict[str, list[dict[str, Any]]] = {}
        for iso, items in self._events.items():
            kept = [e.to_dict() for e in items if e.id not in self._khotba_ids]
            if kept:
                regular[iso] = kept
        try:
            self._store.set(STORAGE_KEY, regular)
        except Exception as e:
            logger.error("Schedule persist failed: %s", e)

"""
Tests for the sebha (prayer-bead) counter.
"""

from __future__ import annotations

import pytest

from minbar.domains.sebha.counter import DHIKRS, TOTAL_KEY, SebhaCounter
from minbar.infrastructure.storage.local_store import MemoryStore


def test_catalog() -> None:
    assert list(DHIKRS) == ["subhanallah", "alhamdulillah", "allahu_akbar", "la_ilaha", "astaghfirullah"]
    assert DHIKRS["allahu_akbar"].meaning == "Allah is the Greatest"


def test_increment_and_bead_index_wraps_at_99() -> None:
    c = SebhaCounter()
    for _ in range(98):
        c.increment()
    assert c.bead_index == 98
    c.increment()
    assert c.count == 99
    assert c.bead_index == 0
    assert c.total == 99


def test_reset_keeps_total_reset_all_clears_it() -> None:
    c = SebhaCounter()
    c.increment()
    c.increment()
    c.reset()
    assert (c.count, c.total) == (0, 2)
    c.increment()
    c.reset_all()
    assert (c.count, c.total) == (0, 0)


def test_select_switches_and_zeroes_session_count() -> None:
    c = SebhaCounter()
    c.increment()
    d = c.select("astaghfirullah")
    assert d.transliteration == "Astaghfirullah"
    assert c.count == 0 and c.total == 1
    with pytest.raises(KeyError):
        c.select("unknown")
    assert c.selected == "astaghfirullah"


def test_total_is_persisted() -> None:
    store = MemoryStore()
    c = SebhaCounter(store)
    for _ in range(3):
        c.increment()
    assert store.get(TOTAL_KEY) == 3

    again = SebhaCounter(store)
    assert (again.count, again.total) == (0, 3)
    again.reset_all()
    assert store.get(TOTAL_KEY) == 0


def test_bad_stored_total_reads_as_zero() -> None:
    store = MemoryStore()
    store.set(TOTAL_KEY, "lots")
    assert SebhaCounter(store).total == 0

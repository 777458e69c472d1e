from __future__ import annotations

from dataclasses import dataclass

from minbar.infrastructure.storage.local_store import KeyValueStore
from minbar.utils.logger import get_logger

logger = get_logger()

TOTAL_KEY = "sebha_total"
BEADS = 99


@dataclass(frozen=True)
class Dhikr:
    key: str
    arabic: str
    transliteration: str
    meaning: str


DHIKRS: dict[str, Dhikr] = {
    d.key: d
    for d in (
        Dhikr("subhanallah", "سُبْحَانَ اللَّهِ", "Subhan Allah", "Glory be to Allah"),
        Dhikr("alhamdulillah", "الْحَمْدُ لِلَّهِ", "Alhamdulillah", "All praise is due to Allah"),
        Dhikr("allahu_akbar", "اللَّهُ أَكْبَرُ", "Allahu Akbar", "Allah is the Greatest"),
        Dhikr("la_ilaha", "لَا إِلَٰهَ إِلَّا اللَّهُ", "La ilaha illa Allah", "There is no god but Allah"),
        Dhikr("astaghfirullah", "أَسْتَغْفِرُ اللَّهَ", "Astaghfirullah", "I seek forgiveness from Allah"),
    )
}


class SebhaCounter:
    """Prayer-bead counter. The lifetime total survives restarts when a store is given."""

    def __init__(self, store: KeyValueStore | None = None, dhikr: str = "subhanallah") -> None:
        if dhikr not in DHIKRS:
            raise KeyError(dhikr)
        self._store = store
        self.selected = dhikr
        self.count = 0
        self.total = self._load_total()

    def _load_total(self) -> int:
        if self._store is None:
            return 0
        try:
            return max(0, int(self._store.get(TOTAL_KEY, 0) or 0))
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring bad sebha total: %s", e)
            return 0

    def _save_total(self) -> None:
        if self._store is None:
            return
        try:
            self._store.set(TOTAL_KEY, self.total)
        except Exception as e:
            logger.error("Sebha total not saved: %s", e)

    @property
    def dhikr(self) -> Dhikr:
        return DHIKRS[self.selected]

    @property
    def bead_index(self) -> int:
        return self.count % BEADS

    def increment(self) -> int:
        self.count += 1
        self.total += 1
        self._save_total()
        return self.count

    def reset(self) -> None:
        self.count = 0

    def reset_all(self) -> None:
        self.count = 0
        self.total = 0
        self._save_total()

    def select(self, key: str) -> Dhikr:
        if key not in DHIKRS:
            raise KeyError(key)
        self.selected = key
        self.count = 0
        return self.dhikr

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .errors import InvalidModeTable, UnknownMode

NEG_INF = -math.inf
POS_INF = math.inf


@dataclass(frozen=True)
class ModeTableEntry:
    min_c: float
    max_c: float
    name: str
    perf_pct: int
    surface_label: str

    def contains(self, cpu_c: float) -> bool:
        return self.min_c <= cpu_c < self.max_c


AUTO_BANDS: Tuple[ModeTableEntry, ...] = (
    ModeTableEntry(NEG_INF, 40.0, "COOL", 85, "cool"),
    ModeTableEntry(40.0, 45.0, "COMFORT", 70, "comfortable"),
    ModeTableEntry(45.0, 50.0, "OPTIMAL", 60, "optimal"),
    ModeTableEntry(50.0, 55.0, "WARM", 50, "warm"),
    ModeTableEntry(55.0, 60.0, "HOT", 40, "hot"),
    ModeTableEntry(60.0, 70.0, "COOLING", 35, "cooling down"),
    ModeTableEntry(70.0, POS_INF, "CRITICAL", 25, "critical"),
)

MANUAL_MODES: Dict[str, int] = {
    "PERFORMANCE": 100,
    "BALANCED": 75,
    "COMFORT": 70,
    "QUIET": 40,
}


def normalize_mode_name(name: str) -> str:
    return (name or "").strip().upper()


def resolve_manual(name: str) -> int:
    key = normalize_mode_name(name)
    if key not in MANUAL_MODES:
        raise UnknownMode(name)
    return MANUAL_MODES[key]


def validate_table(entries: Iterable[ModeTableEntry]) -> Tuple[ModeTableEntry, ...]:
    """
    Check that bands are ascending and partition (-inf, +inf) with no gaps or
    overlaps. Returns the entries as a tuple; raises InvalidModeTable.
    """
    table = tuple(entries)
    if not table:
        raise InvalidModeTable("mode table is empty")
    if table[0].min_c != NEG_INF:
        raise InvalidModeTable(f"lowest band {table[0].name} must start at -inf")
    if table[-1].max_c != POS_INF:
        raise InvalidModeTable(f"highest band {table[-1].name} must end at +inf")

    seen = set()
    for idx, entry in enumerate(table):
        if entry.name in seen:
            raise InvalidModeTable(f"duplicate mode name {entry.name}")
        seen.add(entry.name)
        if not 0 <= entry.perf_pct <= 100:
            raise InvalidModeTable(f"{entry.name}: perf_pct {entry.perf_pct} outside 0-100")
        if not entry.min_c < entry.max_c:
            raise InvalidModeTable(
                f"{entry.name}: empty band [{entry.min_c}, {entry.max_c})"
            )
        if idx == 0:
            continue
        prev = table[idx - 1]
        if entry.min_c > prev.max_c:
            raise InvalidModeTable(
                f"gap between {prev.name} and {entry.name}: {prev.max_c} -> {entry.min_c}"
            )
        if entry.min_c < prev.max_c:
            raise InvalidModeTable(
                f"overlap between {prev.name} and {entry.name}: {entry.min_c} < {prev.max_c}"
            )
    return table


class ModeTable:
    def __init__(self, entries: Iterable[ModeTableEntry] = AUTO_BANDS):
        self.entries = validate_table(entries)
        self._by_name = {entry.name: entry for entry in self.entries}

    def get(self, name: str) -> Optional[ModeTableEntry]:
        return self._by_name.get(name)

    def resolve_auto(self, cpu_c: float) -> ModeTableEntry:
        if math.isnan(cpu_c):
            raise ValueError("cpu temperature is NaN")
        for entry in self.entries:
            if entry.contains(cpu_c):
                return entry
        # +inf is outside every half-open band
        if cpu_c < self.entries[0].min_c:
            return self.entries[0]
        return self.entries[-1]

    def resolve_with_hysteresis(
        self,
        cpu_c: float,
        previous: Optional[ModeTableEntry],
        margin_c: float,
    ) -> ModeTableEntry:
        """
        Like resolve_auto, but a move to a cooler band is held until the
        temperature is at least margin_c below the previous band's lower edge.
        Moves to hotter bands are taken immediately.
        """
        entry = self.resolve_auto(cpu_c)
        if previous is None or margin_c <= 0 or entry == previous:
            return entry
        if entry.min_c < previous.min_c and cpu_c > previous.min_c - margin_c:
            return previous
        return entry


def resolve_auto(cpu_c: float) -> ModeTableEntry:
    return _DEFAULT_TABLE.resolve_auto(cpu_c)


_DEFAULT_TABLE = ModeTable()

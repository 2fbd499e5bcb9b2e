import math

import pytest

from thermctl.core.errors import InvalidModeTable, UnknownMode
from thermctl.core.modes import (
    AUTO_BANDS,
    MANUAL_MODES,
    NEG_INF,
    POS_INF,
    ModeTable,
    ModeTableEntry,
    resolve_auto,
    resolve_manual,
    validate_table,
)


@pytest.mark.parametrize(
    "temp,mode,perf",
    [
        (-20.0, "COOL", 85),
        (38.0, "COOL", 85),
        (39.99, "COOL", 85),
        (40.0, "COMFORT", 70),
        (44.9, "COMFORT", 70),
        (45.0, "OPTIMAL", 60),
        (52.0, "WARM", 50),
        (55.0, "HOT", 40),
        (60.0, "COOLING", 35),
        (69.9, "COOLING", 35),
        (70.0, "CRITICAL", 25),
        (120.0, "CRITICAL", 25),
    ],
)
def test_resolve_auto_bands(temp, mode, perf):
    entry = resolve_auto(temp)
    assert entry.name == mode
    assert entry.perf_pct == perf


def test_every_temperature_hits_exactly_one_band():
    temps = [t / 4.0 for t in range(-200, 600)] + [NEG_INF, POS_INF, -1e9, 1e9]
    for temp in temps:
        hits = [e for e in AUTO_BANDS if e.contains(temp)]
        if math.isinf(temp) and temp > 0:
            # +inf is outside every half-open band and clamps to the top
            assert hits == []
            assert resolve_auto(temp).name == "CRITICAL"
        else:
            assert len(hits) == 1, temp


def test_perf_is_non_increasing_with_temperature():
    temps = [t / 2.0 for t in range(0, 200)]
    perfs = [resolve_auto(t).perf_pct for t in temps]
    assert all(a >= b for a, b in zip(perfs, perfs[1:]))


def test_default_table_validates():
    assert validate_table(AUTO_BANDS) == AUTO_BANDS


def test_gap_is_rejected():
    entries = [
        ModeTableEntry(NEG_INF, 40.0, "A", 80, "a"),
        ModeTableEntry(41.0, POS_INF, "B", 50, "b"),
    ]
    with pytest.raises(InvalidModeTable, match="gap"):
        ModeTable(entries)


def test_overlap_is_rejected():
    entries = [
        ModeTableEntry(NEG_INF, 45.0, "A", 80, "a"),
        ModeTableEntry(40.0, POS_INF, "B", 50, "b"),
    ]
    with pytest.raises(InvalidModeTable, match="overlap"):
        ModeTable(entries)


@pytest.mark.parametrize(
    "entries",
    [
        [],
        [ModeTableEntry(0.0, POS_INF, "A", 80, "a")],
        [ModeTableEntry(NEG_INF, 90.0, "A", 80, "a")],
        [ModeTableEntry(NEG_INF, POS_INF, "A", 120, "a")],
        [
            ModeTableEntry(NEG_INF, 40.0, "A", 80, "a"),
            ModeTableEntry(40.0, POS_INF, "A", 50, "b"),
        ],
    ],
)
def test_bad_tables_fail_fast(entries):
    with pytest.raises(InvalidModeTable):
        validate_table(entries)


def test_resolve_manual_table():
    assert resolve_manual("PERFORMANCE") == 100
    assert resolve_manual("balanced") == 75
    assert resolve_manual(" Comfort ") == 70
    assert resolve_manual("QUIET") == 40
    assert set(MANUAL_MODES) == {"PERFORMANCE", "BALANCED", "COMFORT", "QUIET"}


def test_resolve_manual_unknown():
    with pytest.raises(UnknownMode):
        resolve_manual("TURBO")
    with pytest.raises(UnknownMode):
        resolve_manual("AUTO")


def test_hysteresis_holds_cooler_band_until_margin():
    table = ModeTable()
    warm = table.get("WARM")
    assert table.resolve_with_hysteresis(49.5, warm, 1.0).name == "WARM"
    assert table.resolve_with_hysteresis(49.1, warm, 1.0).name == "WARM"
    assert table.resolve_with_hysteresis(49.0, warm, 1.0).name == "OPTIMAL"


def test_hysteresis_never_delays_heating():
    table = ModeTable()
    optimal = table.get("OPTIMAL")
    assert table.resolve_with_hysteresis(50.0, optimal, 5.0).name == "WARM"


def test_hysteresis_disabled_by_default_margin():
    table = ModeTable()
    warm = table.get("WARM")
    assert table.resolve_with_hysteresis(49.9, warm, 0.0).name == "OPTIMAL"

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import List, Optional

STATUS_APPLIED = "applied"
STATUS_UNCHANGED = "unchanged"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"

_UNKNOWN = "--"

_LINE_RE = re.compile(
    r"^(?P<ts>\S+) CPU:(?P<cpu>-?\d+|--)°C → Teclado:~(?P<surface>-?\d+|--)°C"
    r" mode=(?P<mode>\S+) perf=(?P<perf>\d+|--)%"
    r"(?: changed=(?P<changed>yes|no))?"
    r"(?: origin=(?P<origin>table|override))?"
    r"(?: status=(?P<status>skipped|failed))?\s*$"
)


@dataclass(frozen=True)
class TickRecord:
    ts: float
    cpu_c: Optional[float]
    surface_c: Optional[float]
    mode: Optional[str]
    perf_pct: Optional[int]
    changed: bool
    status: str
    origin: Optional[str] = None


def _fmt_temp(value: Optional[float]) -> str:
    if value is None:
        return _UNKNOWN
    # .5 always rounds up
    return str(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _fmt_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().isoformat(timespec="seconds")


def format_record(record: TickRecord) -> str:
    perf = _UNKNOWN if record.perf_pct is None else str(record.perf_pct)
    line = (
        f"{_fmt_ts(record.ts)} CPU:{_fmt_temp(record.cpu_c)}°C"
        f" → Teclado:~{_fmt_temp(record.surface_c)}°C"
        f" mode={record.mode or _UNKNOWN} perf={perf}%"
        f" changed={'yes' if record.changed else 'no'}"
    )
    if record.origin:
        line += f" origin={record.origin}"
    if record.status in (STATUS_SKIPPED, STATUS_FAILED):
        line += f" status={record.status}"
    return line


def parse_line(line: str) -> Optional[TickRecord]:
    m = _LINE_RE.match(line.strip())
    if not m:
        return None
    try:
        ts = datetime.fromisoformat(m.group("ts")).timestamp()
    except ValueError:
        return None

    def _num(value: str) -> Optional[float]:
        return None if value == _UNKNOWN else float(value)

    changed = m.group("changed") == "yes"
    status = m.group("status")
    if not status:
        status = STATUS_APPLIED if changed else STATUS_UNCHANGED
    mode = m.group("mode")
    perf = m.group("perf")
    return TickRecord(
        ts=ts,
        cpu_c=_num(m.group("cpu")),
        surface_c=_num(m.group("surface")),
        mode=None if mode == _UNKNOWN else mode,
        perf_pct=None if perf == _UNKNOWN else int(perf),
        changed=changed,
        status=status,
        origin=m.group("origin"),
    )


class TickLog:
    """Append-only tick log, one line per enforcement tick."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def append(self, record: TickRecord) -> str:
        line = format_record(record)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return line

    def tail(self, limit: int = 100) -> List[TickRecord]:
        if not self.path.exists():
            return []
        lines: deque = deque(maxlen=max(0, limit))
        with self.path.open("r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                if line.strip():
                    lines.append(line)
        records: List[TickRecord] = []
        for line in lines:
            record = parse_line(line)
            if record is not None:
                records.append(record)
        return records

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from thermctl.core.ticklog import STATUS_APPLIED, STATUS_FAILED, STATUS_SKIPPED, TickRecord

DEFAULT_TEMPLATES_DIR = str(Path(__file__).resolve().parent / "templates")


@dataclass
class TempStats:
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None

    @classmethod
    def of(cls, values: List[float]) -> "TempStats":
        if not values:
            return cls()
        return cls(min=min(values), max=max(values), mean=sum(values) / len(values))


@dataclass
class HistorySummary:
    ticks: int = 0
    first_ts: Optional[float] = None
    last_ts: Optional[float] = None
    cpu: TempStats = field(default_factory=TempStats)
    surface: TempStats = field(default_factory=TempStats)
    modes: Dict[str, int] = field(default_factory=dict)
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    last: Optional[TickRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "first_ts": self.first_ts,
            "last_ts": self.last_ts,
            "cpu": self.cpu.__dict__,
            "surface": self.surface.__dict__,
            "modes": self.modes,
            "applied": self.applied,
            "skipped": self.skipped,
            "failed": self.failed,
            "last": self.last.__dict__ if self.last else None,
        }


def summarize(records: List[TickRecord]) -> HistorySummary:
    if not records:
        return HistorySummary()
    counts = Counter(r.mode for r in records if r.mode and r.status != STATUS_SKIPPED)
    return HistorySummary(
        ticks=len(records),
        first_ts=records[0].ts,
        last_ts=records[-1].ts,
        cpu=TempStats.of([r.cpu_c for r in records if r.cpu_c is not None]),
        surface=TempStats.of([r.surface_c for r in records if r.surface_c is not None]),
        modes=dict(counts.most_common()),
        applied=sum(1 for r in records if r.status == STATUS_APPLIED),
        skipped=sum(1 for r in records if r.status == STATUS_SKIPPED),
        failed=sum(1 for r in records if r.status == STATUS_FAILED),
        last=records[-1],
    )


def _fmt_ts(ts: Optional[float]) -> str:
    if not ts:
        return "-"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(float(ts)))


def _fmt_temp(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}°C"


class HistoryRenderer:
    def __init__(self, templates_dir: str = DEFAULT_TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["ts"] = _fmt_ts
        self.env.filters["temp"] = _fmt_temp

    def render_text(self, summary: HistorySummary, *, log_path: str) -> str:
        tpl = self.env.get_template("history.txt")
        return tpl.render(summary=summary, log_path=log_path).rstrip() + "\n"

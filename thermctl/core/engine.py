from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from thermctl.device.actuator import PerformanceActuator
from thermctl.device.sensors import SensorReader, TemperatureReading

from .errors import ActuatorUnavailable, InvalidOverrideContent, SensorUnavailable
from .history import TemperatureHistory
from .modes import ModeTable, ModeTableEntry, resolve_manual
from .override import OverrideState, OverrideStore
from .surface import DEFAULT_AMBIENT_C, DEFAULT_TRANSFER_K, estimate
from .ticklog import (
    STATUS_APPLIED,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_UNCHANGED,
    TickLog,
    TickRecord,
)

ORIGIN_OVERRIDE = "override"
ORIGIN_TABLE = "table"


@dataclass(frozen=True)
class EffectiveMode:
    name: str
    perf_pct: int
    cpu_c: Optional[float]
    surface_c: Optional[float]
    origin: str


@dataclass(frozen=True)
class TickResult:
    effective: Optional[EffectiveMode]
    status: str
    changed: bool
    line: str = ""


class EnforcementEngine:
    """
    One tick: read the override store, resolve the effective mode (manual pin
    or table lookup on CPU temperature), write the cap when it differs from
    the last applied value, and append one line to the tick log.

    Nothing here sleeps. The last applied value lives in memory only, so a
    fresh engine always writes on its first successful tick.
    """

    def __init__(
        self,
        *,
        table: ModeTable,
        overrides: OverrideStore,
        sensor: SensorReader,
        actuator: PerformanceActuator,
        ticklog: TickLog,
        ambient_c: float = DEFAULT_AMBIENT_C,
        transfer_k: float = DEFAULT_TRANSFER_K,
        hysteresis_c: float = 0.0,
        smoothing_window: int = 1,
        history: Optional[TemperatureHistory] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.table = table
        self.overrides = overrides
        self.sensor = sensor
        self.actuator = actuator
        self.ticklog = ticklog
        self.ambient_c = ambient_c
        self.transfer_k = transfer_k
        self.hysteresis_c = hysteresis_c
        self.smoothing_window = smoothing_window
        self.history = history if history is not None else TemperatureHistory()
        self.clock = clock

        self.last_applied: Optional[int] = None
        self.last_effective: Optional[EffectiveMode] = None
        self._last_entry: Optional[ModeTableEntry] = None
        self.log = logging.getLogger("thermctl.core.engine")

    def carry_state(self, previous: EnforcementEngine) -> None:
        """
        Take over the applied cap, held mode and sample history of an engine
        built from an older config, so a reload does not rewrite an unchanged cap.
        """
        self.last_applied = previous.last_applied
        self.last_effective = previous.last_effective
        self._last_entry = previous._last_entry
        for cpu_c in previous.history.cpu_temps():
            self.history.push(cpu_c, self.surface(cpu_c))

    def read_override(self) -> OverrideState:
        """Override store content; anything unreadable or invalid counts as AUTO."""
        try:
            return self.overrides.read()
        except InvalidOverrideContent as exc:
            self.log.warning("%s; falling back to AUTO", exc)
        except OSError as exc:
            self.log.warning("override store unreadable (%s); falling back to AUTO", exc)
        return OverrideState()

    def surface(self, cpu_c: Optional[float]) -> Optional[float]:
        if cpu_c is None:
            return None
        return estimate(cpu_c, self.ambient_c, self.transfer_k)

    def _decision_temp(self, reading: TemperatureReading) -> float:
        if self.smoothing_window <= 1:
            return reading.package_c
        smoothed = self.history.smoothed_cpu(self.smoothing_window)
        return reading.package_c if smoothed is None else smoothed

    def resolve(
        self, override: OverrideState, reading: Optional[TemperatureReading]
    ) -> Optional[EffectiveMode]:
        """
        Effective mode for an override state and a reading, without side
        effects. Returns None when the table governs and there is no reading.
        """
        if override.mode is not None:
            cpu_c = reading.package_c if reading else None
            return EffectiveMode(
                name=override.mode,
                perf_pct=resolve_manual(override.mode),
                cpu_c=cpu_c,
                surface_c=self.surface(cpu_c),
                origin=ORIGIN_OVERRIDE,
            )
        if reading is None:
            return None
        entry = self.table.resolve_with_hysteresis(
            self._decision_temp(reading), self._last_entry, self.hysteresis_c
        )
        # the record carries the raw reading, even when smoothing picked the band
        return EffectiveMode(
            name=entry.name,
            perf_pct=entry.perf_pct,
            cpu_c=reading.package_c,
            surface_c=self.surface(reading.package_c),
            origin=ORIGIN_TABLE,
        )

    def _read_sensor(self, *, required: bool) -> Optional[TemperatureReading]:
        try:
            reading = self.sensor.read()
        except SensorUnavailable as exc:
            if required:
                self.log.warning("sensor unavailable, skipping tick: %s", exc)
            else:
                self.log.debug("sensor unavailable during override tick: %s", exc)
            return None
        self.history.push(reading.package_c, self.surface(reading.package_c))
        return reading

    def tick(self) -> TickResult:
        now = self.clock()
        override = self.read_override()
        reading = self._read_sensor(required=override.is_auto)

        if override.is_auto and reading is None:
            held = self.last_effective
            record = TickRecord(
                ts=now,
                cpu_c=None,
                surface_c=None,
                mode=held.name if held else None,
                perf_pct=self.last_applied,
                changed=False,
                status=STATUS_SKIPPED,
                origin=held.origin if held else None,
            )
            return TickResult(None, STATUS_SKIPPED, False, self._emit(record))

        effective = self.resolve(override, reading)
        self._last_entry = self.table.get(effective.name) if override.is_auto else None

        changed = effective.perf_pct != self.last_applied
        status = STATUS_UNCHANGED
        if changed:
            try:
                self.actuator.apply(effective.perf_pct)
            except ActuatorUnavailable as exc:
                self.log.error("could not apply %s%% (%s): %s", effective.perf_pct, effective.name, exc)
                status = STATUS_FAILED
            else:
                if self.last_applied is not None:
                    self.log.info(
                        "mode %s -> %s, perf %s%% -> %s%%",
                        self.last_effective.name if self.last_effective else "-",
                        effective.name,
                        self.last_applied,
                        effective.perf_pct,
                    )
                self.last_applied = effective.perf_pct
                status = STATUS_APPLIED
        self.last_effective = effective

        record = TickRecord(
            ts=now,
            cpu_c=effective.cpu_c,
            surface_c=effective.surface_c,
            mode=effective.name,
            perf_pct=effective.perf_pct,
            changed=changed,
            status=status,
            origin=effective.origin,
        )
        return TickResult(effective, status, changed, self._emit(record))

    def _emit(self, record: TickRecord) -> str:
        try:
            return self.ticklog.append(record)
        except OSError as exc:
            self.log.error("tick log write failed: %s", exc)
            return ""

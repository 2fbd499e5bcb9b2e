from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol, Tuple

from thermctl.core.errors import ActuatorUnavailable

log = logging.getLogger("thermctl.device.actuator")

PSTATE_MAX_PERF = "devices/system/cpu/intel_pstate/max_perf_pct"
CPUFREQ_ROOT = "devices/system/cpu/cpufreq"


class PerformanceActuator(Protocol):
    name: str

    def apply(self, perf_pct: int) -> None: ...


def _check_pct(perf_pct: int) -> int:
    value = int(perf_pct)
    if not 0 <= value <= 100:
        raise ValueError(f"performance percent {perf_pct} outside 0-100")
    return value


def _write(path: Path, value: int) -> None:
    try:
        with path.open("w", encoding="utf-8") as handle:
            handle.write(f"{value}\n")
    except OSError as exc:
        raise ActuatorUnavailable(f"write {value} to {path} failed: {exc}") from exc


def _read_int(path: Path) -> int:
    try:
        return int(path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError) as exc:
        raise ActuatorUnavailable(f"read {path} failed: {exc}") from exc


class PstatePercentActuator:
    """intel_pstate in active mode: the cap is a percentage knob."""

    name = "pstate"

    def __init__(self, sysfs_root: str | Path = "/sys"):
        self.path = Path(sysfs_root) / PSTATE_MAX_PERF

    def apply(self, perf_pct: int) -> None:
        value = _check_pct(perf_pct)
        _write(self.path, value)
        log.debug("max_perf_pct <- %s", value)


class FrequencyCeilingActuator:
    """
    Passive drivers (acpi-cpufreq, amd-pstate, intel_cpufreq): the cap is an
    absolute ceiling in kHz written to every policy's scaling_max_freq.
    """

    name = "freq"

    def __init__(self, sysfs_root: str | Path = "/sys"):
        self.root = Path(sysfs_root) / CPUFREQ_ROOT

    def policies(self) -> List[Path]:
        return sorted(p for p in self.root.glob("policy*") if p.is_dir())

    @staticmethod
    def ceiling_khz(min_khz: int, max_khz: int, perf_pct: int) -> int:
        return int(min_khz + (max_khz - min_khz) * perf_pct / 100)

    def _limits(self, policy: Path) -> Tuple[int, int]:
        return (
            _read_int(policy / "cpuinfo_min_freq"),
            _read_int(policy / "cpuinfo_max_freq"),
        )

    def apply(self, perf_pct: int) -> None:
        value = _check_pct(perf_pct)
        policies = self.policies()
        if not policies:
            raise ActuatorUnavailable(f"no cpufreq policies under {self.root}")
        for policy in policies:
            min_khz, max_khz = self._limits(policy)
            khz = self.ceiling_khz(min_khz, max_khz, value)
            _write(policy / "scaling_max_freq", khz)
            log.debug("%s scaling_max_freq <- %s kHz", policy.name, khz)


class DryRunActuator:
    name = "dry-run"

    def __init__(self) -> None:
        self.applied: List[int] = []

    def apply(self, perf_pct: int) -> None:
        value = _check_pct(perf_pct)
        self.applied.append(value)
        log.info("dry-run: would cap performance at %s%%", value)


def detect_actuator(sysfs_root: str | Path = "/sys", driver: str = "auto") -> PerformanceActuator:
    """
    Pick the actuator for the running frequency-scaling driver.

    driver is one of auto, pstate, freq, dry-run. auto prefers the pstate
    percentage knob when it exists.
    """
    driver = (driver or "auto").strip().lower()
    if driver == "dry-run":
        return DryRunActuator()
    if driver == "pstate":
        return PstatePercentActuator(sysfs_root)
    if driver == "freq":
        return FrequencyCeilingActuator(sysfs_root)
    if driver != "auto":
        raise ValueError(f"unknown actuator driver: {driver}")

    pstate = PstatePercentActuator(sysfs_root)
    if pstate.path.exists():
        return pstate
    freq = FrequencyCeilingActuator(sysfs_root)
    if freq.policies():
        return freq
    raise ActuatorUnavailable(f"no frequency-scaling control found under {sysfs_root}")


class AutoActuator:
    """
    Detects the driver lazily on first apply and again after a failed
    detection, so a missing control file is retried on later ticks.
    """

    def __init__(self, sysfs_root: str | Path = "/sys"):
        self.sysfs_root = sysfs_root
        self._inner: PerformanceActuator | None = None

    @property
    def name(self) -> str:
        return f"auto:{self._inner.name}" if self._inner else "auto"

    def apply(self, perf_pct: int) -> None:
        if self._inner is None:
            self._inner = detect_actuator(self.sysfs_root, "auto")
            log.info("using %s actuator", self._inner.name)
        self._inner.apply(perf_pct)

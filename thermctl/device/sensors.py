from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from thermctl.core.errors import SensorUnavailable

log = logging.getLogger("thermctl.device.sensors")

CPU_HWMON_NAMES = ("coretemp", "k10temp", "zenpower", "cpu_thermal")
PACKAGE_LABEL_PREFIXES = ("Package id", "Tctl", "Tdie")
CPU_ZONE_TYPES = ("x86_pkg_temp", "cpu-thermal", "cpu_thermal", "cpu", "acpitz")

MIN_PLAUSIBLE_C = -40.0
MAX_PLAUSIBLE_C = 150.0


@dataclass(frozen=True)
class TemperatureReading:
    package_c: float
    core_peaks_c: List[float] = field(default_factory=list)
    source: str = ""
    ts: float = 0.0

    @property
    def hottest_core_c(self) -> Optional[float]:
        return max(self.core_peaks_c) if self.core_peaks_c else None


def _read_temp_c(path: Path) -> Optional[float]:
    try:
        raw = path.read_text(encoding="utf-8").strip()
        temp = float(raw)
    except (OSError, ValueError):
        return None
    if temp > 1000:
        temp = temp / 1000.0
    if not math.isfinite(temp) or not MIN_PLAUSIBLE_C <= temp <= MAX_PLAUSIBLE_C:
        return None
    return temp


def _read_label(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""


class SensorReader:
    """
    Reads CPU temperature from sysfs.

    Prefers a CPU hwmon device (package label, else hottest input) and falls
    back to the first CPU-like thermal zone. Raises SensorUnavailable when
    nothing usable can be read.
    """

    def __init__(self, sysfs_root: str | Path = "/sys"):
        self.root = Path(sysfs_root)

    def read(self) -> TemperatureReading:
        reading = self._read_hwmon()
        if reading is None:
            reading = self._read_thermal_zone()
        if reading is None:
            raise SensorUnavailable(f"no readable CPU temperature under {self.root}")
        return reading

    def _read_hwmon(self) -> Optional[TemperatureReading]:
        for hwmon in sorted((self.root / "class" / "hwmon").glob("hwmon*")):
            name = _read_label(hwmon / "name")
            if name not in CPU_HWMON_NAMES:
                continue
            package: Optional[float] = None
            cores: Dict[str, float] = {}
            others: List[float] = []
            for inp in sorted(hwmon.glob("temp*_input")):
                temp = _read_temp_c(inp)
                if temp is None:
                    continue
                label = _read_label(inp.with_name(inp.name.replace("_input", "_label")))
                if label.startswith(PACKAGE_LABEL_PREFIXES):
                    if package is None:
                        package = temp
                elif label.startswith("Core"):
                    cores[label] = temp
                else:
                    others.append(temp)
            if package is None:
                candidates = list(cores.values()) or others
                if not candidates:
                    log.debug("hwmon %s (%s) has no readable inputs", hwmon, name)
                    continue
                package = max(candidates)
            return TemperatureReading(
                package_c=package,
                core_peaks_c=[cores[k] for k in sorted(cores, key=_core_sort_key)],
                source=f"hwmon:{name}",
                ts=time.time(),
            )
        return None

    def _read_thermal_zone(self) -> Optional[TemperatureReading]:
        found: Dict[str, Tuple[Path, float]] = {}
        for zone in sorted((self.root / "class" / "thermal").glob("thermal_zone*")):
            zone_type = _read_label(zone / "type")
            if zone_type not in CPU_ZONE_TYPES or zone_type in found:
                continue
            temp = _read_temp_c(zone / "temp")
            if temp is not None:
                found[zone_type] = (zone, temp)
        for zone_type in CPU_ZONE_TYPES:
            if zone_type in found:
                zone, temp = found[zone_type]
                return TemperatureReading(
                    package_c=temp,
                    source=f"thermal:{zone.name}:{zone_type}",
                    ts=time.time(),
                )
        return None


def _core_sort_key(label: str) -> Tuple[int, str]:
    tail = label.split()[-1]
    return (int(tail), label) if tail.isdigit() else (10**6, label)

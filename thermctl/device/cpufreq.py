from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CpuFreqInfo:
    driver: Optional[str]
    governor: Optional[str]
    current_khz: Optional[int]
    platform_profile: Optional[str]

    @property
    def current_ghz(self) -> Optional[float]:
        if self.current_khz is None:
            return None
        return self.current_khz / 1_000_000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "driver": self.driver,
            "governor": self.governor,
            "current_khz": self.current_khz,
            "platform_profile": self.platform_profile,
        }


def _read(path: Path) -> Optional[str]:
    try:
        value = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value or None


def read_cpufreq_info(sysfs_root: str | Path = "/sys") -> CpuFreqInfo:
    """Best-effort snapshot for status output; missing files read as None."""
    root = Path(sysfs_root)
    policies = sorted((root / "devices/system/cpu/cpufreq").glob("policy*"))
    freqs: List[int] = []
    for policy in policies:
        raw = _read(policy / "scaling_cur_freq")
        if raw and raw.isdigit():
            freqs.append(int(raw))
    first = policies[0] if policies else None
    return CpuFreqInfo(
        driver=_read(first / "scaling_driver") if first else None,
        governor=_read(first / "scaling_governor") if first else None,
        current_khz=int(sum(freqs) / len(freqs)) if freqs else None,
        platform_profile=_read(root / "firmware/acpi/platform_profile"),
    )

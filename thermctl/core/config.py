from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict

from .paths import (
    DEFAULT_LOG_PATH,
    DEFAULT_OVERRIDE_PATH,
    DEFAULT_SYSFS_ROOT,
    resolve_log_path,
    resolve_override_path,
    resolve_sysfs_root,
)

ACTUATOR_DRIVERS = ("auto", "pstate", "freq", "dry-run")


def _load_toml(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        import tomllib  # py>=3.11

        return tomllib.loads(p.read_text(encoding="utf-8"))
    except ModuleNotFoundError:
        import tomli  # type: ignore

        return tomli.loads(p.read_text(encoding="utf-8"))


@dataclass
class CoreCfg:
    tick_interval: float = 30.0
    log_path: str = DEFAULT_LOG_PATH
    override_path: str = DEFAULT_OVERRIDE_PATH
    log_level: str = "INFO"


@dataclass
class SurfaceCfg:
    ambient_c: float = 22.0
    transfer_k: float = 0.45


@dataclass
class GovernorCfg:
    hysteresis_c: float = 0.0
    smoothing_window: int = 1
    history_capacity: int = 60


@dataclass
class SensorCfg:
    sysfs_root: str = DEFAULT_SYSFS_ROOT


@dataclass
class ActuatorCfg:
    driver: str = "auto"
    sysfs_root: str = DEFAULT_SYSFS_ROOT


@dataclass
class AppConfig:
    core: CoreCfg = field(default_factory=CoreCfg)
    surface: SurfaceCfg = field(default_factory=SurfaceCfg)
    governor: GovernorCfg = field(default_factory=GovernorCfg)
    sensor: SensorCfg = field(default_factory=SensorCfg)
    actuator: ActuatorCfg = field(default_factory=ActuatorCfg)


def _section(d: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = d.get(name, {})
    return value if isinstance(value, dict) else {}


def _coerce(
    section: Dict[str, Any], name: str, key: str, default: Any, cast: Callable[[Any], Any]
) -> Any:
    value = section.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name}.{key} must be {cast.__name__}, got {value!r}") from None


class ConfigStore:
    """
    Loads config.toml into dataclass sections; cached, reloaded on demand or
    when the file mtime changes. Missing file means all defaults.

    Path-like settings can be overridden with THERMCTL_* environment variables.
    """

    def __init__(self, path: str):
        self.path = path
        self._mtime: float = 0.0
        self._cfg: AppConfig = self._from_dict({})

    def _from_dict(self, d: Dict[str, Any]) -> AppConfig:
        core = _section(d, "core")
        surface = _section(d, "surface")
        governor = _section(d, "governor")
        sensor = _section(d, "sensor")
        actuator = _section(d, "actuator")

        driver = str(actuator.get("driver", "auto")).strip().lower()
        if driver not in ACTUATOR_DRIVERS:
            raise ValueError(
                f"actuator.driver must be one of {', '.join(ACTUATOR_DRIVERS)}, got {driver!r}"
            )
        smoothing_window = _coerce(governor, "governor", "smoothing_window", 1, int)
        history_capacity = _coerce(governor, "governor", "history_capacity", 60, int)
        if smoothing_window < 1:
            raise ValueError("governor.smoothing_window must be >= 1")
        if history_capacity < smoothing_window:
            raise ValueError("governor.history_capacity must be >= smoothing_window")
        hysteresis_c = _coerce(governor, "governor", "hysteresis_c", 0.0, float)
        if hysteresis_c < 0:
            raise ValueError("governor.hysteresis_c must be >= 0")

        return AppConfig(
            core=CoreCfg(
                tick_interval=_coerce(core, "core", "tick_interval", 30.0, float),
                log_path=resolve_log_path(str(core.get("log_path", DEFAULT_LOG_PATH))),
                override_path=resolve_override_path(
                    str(core.get("override_path", DEFAULT_OVERRIDE_PATH))
                ),
                log_level=str(core.get("log_level", "INFO")),
            ),
            surface=SurfaceCfg(
                ambient_c=_coerce(surface, "surface", "ambient_c", 22.0, float),
                transfer_k=_coerce(surface, "surface", "transfer_k", 0.45, float),
            ),
            governor=GovernorCfg(
                hysteresis_c=hysteresis_c,
                smoothing_window=smoothing_window,
                history_capacity=history_capacity,
            ),
            sensor=SensorCfg(
                sysfs_root=resolve_sysfs_root(str(sensor.get("sysfs_root", DEFAULT_SYSFS_ROOT))),
            ),
            actuator=ActuatorCfg(
                driver=driver,
                sysfs_root=resolve_sysfs_root(
                    str(actuator.get("sysfs_root", DEFAULT_SYSFS_ROOT))
                ),
            ),
        )

    def load(self) -> AppConfig:
        """Raises ValueError for a malformed, invalid or unreadable file."""
        try:
            d = _load_toml(self.path)
        except OSError as exc:
            raise ValueError(f"cannot read {self.path}: {exc.strerror or exc}") from exc
        self._cfg = self._from_dict(d)
        try:
            self._mtime = Path(self.path).stat().st_mtime
        except OSError:
            self._mtime = time.time()
        return self._cfg

    def get(self) -> AppConfig:
        p = Path(self.path)
        if p.exists():
            try:
                m = p.stat().st_mtime
            except OSError as exc:
                raise ValueError(f"cannot read {self.path}: {exc.strerror or exc}") from exc
            if m > self._mtime:
                self.load()
        return self._cfg

    def reload(self) -> AppConfig:
        return self.load()

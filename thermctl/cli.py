import argparse
import json
import logging
import sys
import time

from thermctl.core.config import AppConfig, ConfigStore
from thermctl.core.engine import EnforcementEngine
from thermctl.core.errors import InvalidModeTable, SensorUnavailable, UnknownMode
from thermctl.core.history import TemperatureHistory
from thermctl.core.modes import MANUAL_MODES, ModeTable
from thermctl.core.override import OverrideStore
from thermctl.core.paths import resolve_config_path
from thermctl.core.ticklog import TickLog
from thermctl.device.actuator import AutoActuator, detect_actuator
from thermctl.device.cpufreq import read_cpufreq_info
from thermctl.device.sensors import SensorReader

EX_OK = 0
EX_CONFIG = 1
EX_USAGE = 2
EX_IO = 3

log = logging.getLogger("thermctl.cli")


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(msg: str) -> None:
    print(f"error: {msg}", file=sys.stderr)


def _fmt_temp(value) -> str:
    return "-" if value is None else f"{value:.1f}°C"


def _load_config(args) -> AppConfig:
    return ConfigStore(args.config).load()


def build_engine(cfg: AppConfig, *, dry_run: bool = False) -> EnforcementEngine:
    """Wire the engine from config. Raises InvalidModeTable on a bad table."""
    table = ModeTable()
    if dry_run or cfg.actuator.driver == "dry-run":
        actuator = detect_actuator(cfg.actuator.sysfs_root, "dry-run")
    elif cfg.actuator.driver == "auto":
        actuator = AutoActuator(cfg.actuator.sysfs_root)
    else:
        actuator = detect_actuator(cfg.actuator.sysfs_root, cfg.actuator.driver)
    return EnforcementEngine(
        table=table,
        overrides=OverrideStore(cfg.core.override_path),
        sensor=SensorReader(cfg.sensor.sysfs_root),
        actuator=actuator,
        ticklog=TickLog(cfg.core.log_path),
        ambient_c=cfg.surface.ambient_c,
        transfer_k=cfg.surface.transfer_k,
        hysteresis_c=cfg.governor.hysteresis_c,
        smoothing_window=cfg.governor.smoothing_window,
        history=TemperatureHistory(cfg.governor.history_capacity),
    )


def _rebuild_engine(
    engine: EnforcementEngine, old: AppConfig, cfg: AppConfig, *, dry_run: bool
) -> EnforcementEngine:
    fresh = build_engine(cfg, dry_run=dry_run)
    # a different control surface has never seen the cap, so it starts over
    if cfg.actuator == old.actuator:
        fresh.actuator = engine.actuator
        fresh.carry_state(engine)
    return fresh


def _startup(args):
    try:
        cfg = _load_config(args)
        return cfg, build_engine(cfg, dry_run=getattr(args, "dry_run", False))
    except (InvalidModeTable, ValueError) as exc:
        _error(f"invalid configuration: {exc}")
        return None, None


def cmd_tick(args) -> int:
    """Single enforcement tick, for the external timer."""
    _, engine = _startup(args)
    if engine is None:
        return EX_CONFIG
    result = engine.tick()
    if result.line:
        print(result.line)
    return EX_OK


def cmd_run(args) -> int:
    """
    Resident loop: ticks strictly one after another, sleeping in between.
    """
    store = ConfigStore(args.config)
    try:
        cfg = store.load()
        engine = build_engine(cfg, dry_run=args.dry_run)
    except (InvalidModeTable, ValueError) as exc:
        _error(f"invalid configuration: {exc}")
        return EX_CONFIG

    log.info("thermctl running (actuator=%s)", engine.actuator.name)
    try:
        while True:
            try:
                result = engine.tick()
                if result.line:
                    log.debug("%s", result.line)
            except Exception:
                log.exception("tick failed")
            try:
                fresh = store.get()
                if fresh is not cfg:
                    engine = _rebuild_engine(engine, cfg, fresh, dry_run=args.dry_run)
                    cfg = fresh
                    log.info("config reloaded from %s", store.path)
            except (InvalidModeTable, ValueError) as exc:
                log.warning("config reload failed, keeping previous: %s", exc)
            interval = args.interval if args.interval is not None else cfg.core.tick_interval
            time.sleep(max(0.1, float(interval)))
    except KeyboardInterrupt:
        log.info("thermctl stopped")
        return EX_OK


def cmd_status(args) -> int:
    cfg, engine = _startup(args)
    if engine is None:
        return EX_CONFIG

    override = engine.read_override()
    try:
        reading = engine.sensor.read()
    except SensorUnavailable as exc:
        log.warning("%s", exc)
        reading = None
    effective = engine.resolve(override, reading)
    zone = engine.table.resolve_auto(reading.package_c) if reading else None
    try:
        last = engine.ticklog.tail(limit=1)
    except OSError as exc:
        log.warning("tick log unreadable: %s", exc)
        last = []
    freq = read_cpufreq_info(cfg.sensor.sysfs_root)

    payload = {
        "override": override.label(),
        "mode": effective.name if effective else None,
        "origin": effective.origin if effective else None,
        "perf_pct": effective.perf_pct if effective else None,
        "cpu_c": reading.package_c if reading else None,
        "core_peaks_c": reading.core_peaks_c if reading else [],
        "surface_c": engine.surface(reading.package_c) if reading else None,
        "zone": zone.surface_label if zone else None,
        "sensor": reading.source if reading else None,
        "cpufreq": freq.to_dict(),
        "last_tick": last[0].__dict__ if last else None,
    }
    if args.format == "json":
        _print_json(payload)
        return EX_OK

    print(f"override:  {payload['override']}")
    if effective:
        print(f"mode:      {effective.name} ({effective.origin})")
        print(f"perf:      {effective.perf_pct}%")
    else:
        print("mode:      <unknown> (no temperature reading)")
    print(f"cpu:       {_fmt_temp(payload['cpu_c'])}")
    if reading and reading.core_peaks_c:
        print(f"cores max: {_fmt_temp(reading.hottest_core_c)}")
    print(f"keyboard:  ~{_fmt_temp(payload['surface_c'])}")
    if zone:
        print(f"zone:      {zone.surface_label}")
    if freq.current_ghz is not None:
        print(f"freq:      {freq.current_ghz:.1f} GHz")
    if freq.driver:
        print(f"driver:    {freq.driver} ({freq.governor or '-'})")
    if freq.platform_profile:
        print(f"profile:   {freq.platform_profile}")
    if last:
        applied = last[0].perf_pct
        print(f"applied:   {'-' if applied is None else applied}% ({last[0].status})")
    return EX_OK


def _set_override(args, name: str) -> int:
    try:
        cfg = _load_config(args)
    except ValueError as exc:
        _error(f"invalid configuration: {exc}")
        return EX_CONFIG
    store = OverrideStore(cfg.core.override_path)
    try:
        state = store.set_mode(name)
    except UnknownMode as exc:
        _error(f"{exc} (choose from AUTO, {', '.join(MANUAL_MODES)})")
        return EX_USAGE
    except PermissionError as exc:
        _error(f"permission denied writing {store.path} ({exc.strerror}); run with sudo")
        return EX_IO
    except OSError as exc:
        _error(f"could not write {store.path}: {exc}")
        return EX_IO
    if state.is_auto:
        print("mode: AUTO (temperature-driven)")
    else:
        print(f"mode: {state.mode} ({MANUAL_MODES[state.mode]}%)")
    return EX_OK


def cmd_set(args) -> int:
    return _set_override(args, args.mode)


def cmd_history(args) -> int:
    from thermctl.reports.history import HistoryRenderer, summarize

    try:
        cfg = _load_config(args)
    except ValueError as exc:
        _error(f"invalid configuration: {exc}")
        return EX_CONFIG
    ticklog = TickLog(cfg.core.log_path)
    try:
        records = ticklog.tail(limit=args.last)
    except OSError as exc:
        _error(f"could not read {ticklog.path}: {exc}")
        return EX_IO
    summary = summarize(records)
    if args.format == "json":
        _print_json(summary.to_dict())
    else:
        print(HistoryRenderer().render_text(summary, log_path=str(ticklog.path)), end="")
    return EX_OK


def build_parser() -> argparse.ArgumentParser:
    default_config = resolve_config_path()
    p = argparse.ArgumentParser(
        prog="thermctl",
        description="Laptop thermal governor – keeps the keyboard comfortable",
    )
    p.add_argument(
        "--config",
        default=default_config,
        help=f"Path to config.toml (default: {default_config})",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: from config, INFO)",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("tick", help="Run one enforcement tick (for the timer)")
    s.add_argument("--dry-run", action="store_true", default=False)
    s.set_defaults(fn=cmd_tick)

    s = sub.add_parser("run", help="Run the enforcement loop in the foreground")
    s.add_argument("--interval", type=float, default=None)
    s.add_argument("--dry-run", action="store_true", default=False)
    s.set_defaults(fn=cmd_run)

    s = sub.add_parser("status", help="Show effective mode, temperatures and perf cap")
    s.add_argument("--format", choices=["text", "json"], default="text")
    s.set_defaults(fn=cmd_status)

    for name, pct in MANUAL_MODES.items():
        s = sub.add_parser(name.lower(), help=f"Pin {name} mode ({pct}%)")
        s.set_defaults(fn=cmd_set, mode=name)

    s = sub.add_parser("auto", help="Clear the manual pin, back to temperature-driven")
    s.set_defaults(fn=cmd_set, mode="AUTO")

    s = sub.add_parser("set", help="Pin a mode by name (or AUTO)")
    s.add_argument("mode")
    s.set_defaults(fn=cmd_set)

    s = sub.add_parser("history", help="Summarize the tick log")
    s.add_argument("--last", type=int, default=120, help="How many ticks to include")
    s.add_argument("--format", choices=["text", "json"], default="text")
    s.set_defaults(fn=cmd_history)

    return p


def _configure_logging(args) -> None:
    level = args.log_level
    if level is None:
        try:
            level = ConfigStore(args.config).load().core.log_level
        except ValueError:
            level = "INFO"
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args)
    return int(args.fn(args))


if __name__ == "__main__":
    raise SystemExit(main())

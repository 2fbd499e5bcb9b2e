from __future__ import annotations

import os


DEFAULT_CONFIG_PATH = "/etc/thermctl/config.toml"
DEFAULT_OVERRIDE_PATH = "/var/lib/thermctl/override"
DEFAULT_LOG_PATH = "/var/log/thermctl/ticks.log"
DEFAULT_SYSFS_ROOT = "/sys"


def resolve_config_path() -> str:
    return os.environ.get("THERMCTL_CONFIG", DEFAULT_CONFIG_PATH)


def resolve_override_path(default: str = DEFAULT_OVERRIDE_PATH) -> str:
    return os.environ.get("THERMCTL_OVERRIDE", default)


def resolve_log_path(default: str = DEFAULT_LOG_PATH) -> str:
    return os.environ.get("THERMCTL_LOG", default)


def resolve_sysfs_root(default: str = DEFAULT_SYSFS_ROOT) -> str:
    return os.environ.get("THERMCTL_SYSFS", default)

from __future__ import annotations


class ThermctlError(Exception):
    pass


class SensorUnavailable(ThermctlError):
    """
    No usable CPU temperature right now. Transient: the tick is skipped.
    """


class InvalidModeTable(ThermctlError):
    """
    Mode table has gaps, overlaps or bad entries. Fatal at startup.
    """


class UnknownMode(ThermctlError):
    def __init__(self, name: str):
        super().__init__(f"unknown mode: {name!r}")
        self.name = name


class ActuatorUnavailable(ThermctlError):
    """
    Performance cap could not be written. Retried on the next tick.
    """


class InvalidOverrideContent(ThermctlError):
    def __init__(self, raw: str):
        super().__init__(f"invalid override content: {raw!r}")
        self.raw = raw

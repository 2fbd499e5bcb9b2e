from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import InvalidOverrideContent, UnknownMode
from .modes import MANUAL_MODES, normalize_mode_name

AUTO = "AUTO"


@dataclass(frozen=True)
class OverrideState:
    mode: Optional[str] = None

    @property
    def is_auto(self) -> bool:
        return self.mode is None

    def label(self) -> str:
        return self.mode or AUTO


def parse_override(raw: str) -> OverrideState:
    key = normalize_mode_name(raw)
    if key == AUTO:
        return OverrideState()
    if key in MANUAL_MODES:
        return OverrideState(mode=key)
    raise InvalidOverrideContent(raw)


class OverrideStore:
    """
    Persisted manual pin shared by the control command and the engine.

    One word per file: AUTO or a manual mode name. A missing file reads as
    AUTO. Writes replace the whole file atomically.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> OverrideState:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return OverrideState()
        except UnicodeDecodeError as exc:
            raise InvalidOverrideContent(repr(exc.object[:32])) from exc
        return parse_override(raw)

    def set_mode(self, name: str) -> OverrideState:
        key = normalize_mode_name(name)
        if key == AUTO:
            return self.clear()
        if key not in MANUAL_MODES:
            raise UnknownMode(name)
        self._write(key)
        return OverrideState(mode=key)

    def clear(self) -> OverrideState:
        self._write(AUTO)
        return OverrideState()

    def _write(self, value: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value + "\n")
            os.chmod(tmp, 0o644)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

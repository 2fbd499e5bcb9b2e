from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Tuple

DEFAULT_CAPACITY = 60


class TemperatureHistory:
    """Bounded FIFO of (cpu_c, surface_c) samples."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._samples: Deque[Tuple[float, float]] = deque(maxlen=capacity)

    def push(self, cpu_c: float, surface_c: float) -> None:
        self._samples.append((cpu_c, surface_c))

    def __len__(self) -> int:
        return len(self._samples)

    def is_empty(self) -> bool:
        return not self._samples

    def cpu_temps(self) -> List[float]:
        return [cpu for cpu, _ in self._samples]

    def surface_temps(self) -> List[float]:
        return [surface for _, surface in self._samples]

    def smoothed_cpu(self, window: int) -> Optional[float]:
        if not self._samples:
            return None
        window = max(1, min(window, len(self._samples)))
        recent = list(self._samples)[-window:]
        return sum(cpu for cpu, _ in recent) / len(recent)

from __future__ import annotations

DEFAULT_AMBIENT_C = 22.0
DEFAULT_TRANSFER_K = 0.45


def estimate(
    cpu_c: float,
    ambient_c: float = DEFAULT_AMBIENT_C,
    k: float = DEFAULT_TRANSFER_K,
) -> float:
    """
    Estimated keyboard-surface temperature for a CPU temperature.

    Linear transfer towards a fixed ambient. Used for logging and status
    output only; mode selection always works on the CPU temperature.
    """
    return ambient_c + (cpu_c - ambient_c) * k

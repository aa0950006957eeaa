"""
Loop alignment for seamless clips.

A clip loops without a click only if every periodic component completes a
whole number of cycles inside it. For two frequencies that means the clip
length must be a multiple of 1 / gcd(f_a, f_b).
"""

import math
from dataclasses import dataclass

from flow.core.logging import get_logger

logger = get_logger(__name__)

# Frequencies are compared at 1/1000 Hz resolution
GCD_PRECISION = 1000


@dataclass(frozen=True)
class LoopAlignment:
    """Result of aligning a clip to two frequencies."""
    common_hz: float      # 0.0 when the fixed-point gcd vanished
    period: float         # seconds per common cycle
    loop_cycles: int
    duration: float       # seconds


def real_gcd(freq_a: float, freq_b: float, precision: int = GCD_PRECISION) -> float:
    """
    Greatest common divisor of two real frequencies.

    Both values are scaled by `precision`, rounded to integers, reduced with
    Euclid's algorithm and scaled back.

    Args:
        freq_a: First frequency in Hz
        freq_b: Second frequency in Hz
        precision: Fixed-point scale

    Returns:
        GCD in Hz (0.0 if both round to zero)
    """
    a = abs(int(round(freq_a * precision)))
    b = abs(int(round(freq_b * precision)))
    while b:
        a, b = b, a % b
    return a / precision


def compute_loop_alignment(
    freq_a: float,
    freq_b: float,
    target_duration: float
) -> LoopAlignment:
    """
    Find the phase-continuous duration closest to a target.

    Args:
        freq_a: First frequency in Hz
        freq_b: Second frequency in Hz
        target_duration: Desired clip length in seconds

    Returns:
        LoopAlignment with at least one cycle
    """
    common_hz = real_gcd(freq_a, freq_b)

    if common_hz <= 0.0:
        logger.warning(
            "loop_alignment_degenerate",
            freq_a=freq_a,
            freq_b=freq_b,
            target_duration=target_duration
        )
        return LoopAlignment(
            common_hz=0.0,
            period=target_duration,
            loop_cycles=1,
            duration=target_duration
        )

    period = 1.0 / common_hz
    loop_cycles = max(1, int(round(target_duration / period)))
    duration = loop_cycles * period

    logger.debug(
        "loop_aligned",
        common_hz=common_hz,
        loop_cycles=loop_cycles,
        duration=duration,
        cycles_a=cycles_in(freq_a, duration),
        cycles_b=cycles_in(freq_b, duration),
        phase_continuous=is_phase_continuous(freq_a, duration) and is_phase_continuous(freq_b, duration)
    )

    return LoopAlignment(
        common_hz=common_hz,
        period=period,
        loop_cycles=loop_cycles,
        duration=duration
    )


def align_loop_duration(freq_a: float, freq_b: float, target_duration: float) -> float:
    """Exact loop duration in seconds for two frequencies."""
    return compute_loop_alignment(freq_a, freq_b, target_duration).duration


def align_frequency_to_duration(frequency: float, duration: float) -> float:
    """
    Nudge a slow modulation frequency so it fits the clip.

    Args:
        frequency: Desired frequency in Hz
        duration: Clip length in seconds

    Returns:
        Frequency completing a whole number (>= 1) of cycles in `duration`
    """
    if duration <= 0.0:
        return frequency
    cycles = max(1, int(round(duration * frequency)))
    return cycles / duration


def cycles_in(frequency: float, duration: float) -> float:
    """Number of cycles of `frequency` in `duration` (not rounded)."""
    return frequency * duration


def is_phase_continuous(frequency: float, duration: float, tolerance: float = 1e-6) -> bool:
    """Check that a frequency completes whole cycles in `duration`."""
    cycles = cycles_in(frequency, duration)
    return math.isclose(cycles, round(cycles), abs_tol=tolerance)

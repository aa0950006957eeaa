"""
Deterministic noise source for brown-noise beds.

A 64-bit xorshift generator: the same seed always yields the same
sequence, so a layer's clip is reproducible bit for bit.
"""

import numpy as np
from numpy.typing import NDArray

MASK_64 = 0xFFFFFFFFFFFFFFFF

# xorshift never leaves the all-zero state
DEFAULT_SEED = 0x2545F4914F6CDD1D

_MODULUS = 1_000_000
_HALF_MODULUS = _MODULUS / 2


class NoiseSource:
    """
    Xorshift64 white-noise generator.

    Each draw shifts the register left 13, right 7, left 17 (xor-ing each
    time), reduces it modulo 1,000,000 and rescales to [-1, 1).
    """

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        """
        Initialize noise source.

        Args:
            seed: Initial register value; zero is replaced by DEFAULT_SEED
        """
        seed &= MASK_64
        self.state = seed if seed else DEFAULT_SEED

    def next_uint(self) -> int:
        """Advance the register and return it."""
        x = self.state
        x ^= (x << 13) & MASK_64
        x ^= x >> 7
        x ^= (x << 17) & MASK_64
        self.state = x
        return x

    def next(self) -> float:
        """Return the next value in [-1, 1)."""
        return (self.next_uint() % _MODULUS) / _HALF_MODULUS - 1.0

    def draw(self, n_samples: int) -> NDArray[np.float64]:
        """
        Draw a block of values.

        Args:
            n_samples: Number of values

        Returns:
            Array identical to n_samples successive next() calls

        The register update is sequential Python integer work, roughly a
        second for a 30 s stereo layer at 44.1 kHz. That is well above the
        tens of milliseconds the rest of clip generation takes, so callers
        run it once, off any latency-sensitive path.
        """
        x = self.state
        values = [0] * n_samples
        for i in range(n_samples):
            x ^= (x << 13) & MASK_64
            x ^= x >> 7
            x ^= (x << 17) & MASK_64
            values[i] = x % _MODULUS
        self.state = x

        return np.asarray(values, dtype=np.float64) / _HALF_MODULUS - 1.0

"""Random number helper utilities for NumPy and JAX."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import jax
import numpy as np

from ..typing import PRNGKey

#: Fixed 128-bit seed, given as four 32-bit words.
DEFAULT_SEED: Tuple[int, int, int, int] = (0x23EF614D, 0x8332E05C, 0x3C574111, 0x121AA2F4)

SeedLike = int | Sequence[int]


def seed_to_int(seed: SeedLike) -> int:
    """Collapse an integer or a sequence of 32-bit words into one integer.

    Words are read most significant first, so ``(a, b, c, d)`` becomes
    ``a << 96 | b << 64 | c << 32 | d``.
    """

    if isinstance(seed, (bool, np.bool_)):
        raise ValueError("Seed must be an integer or a sequence of 32-bit words, not a bool.")
    if isinstance(seed, (int, np.integer)):
        value = int(seed)
        if not 0 <= value < 2**128:
            raise ValueError(f"Seed must lie in [0, 2**128), got {value}.")
        return value
    words = [int(w) for w in seed]
    if not words or len(words) > 4:
        raise ValueError("A word seed must contain between one and four 32-bit words.")
    value = 0
    for word in words:
        if not 0 <= word < 2**32:
            raise ValueError(f"Seed word {word:#x} does not fit in 32 bits.")
        value = (value << 32) | word
    return value


def numpy_generator(seed: SeedLike) -> np.random.Generator:
    """Return a PCG64 generator driven by the full 128-bit seed."""

    return np.random.default_rng(np.random.SeedSequence(seed_to_int(seed)))


@dataclass
class RNGManager:
    """Jointly manage NumPy and JAX RNG states for reproducibility.

    The NumPy generator draws shock buffers; the JAX key drives the sampler.
    JAX keys only take 64 bits, so the 128-bit seed is folded down for them.
    """

    seed: SeedLike = DEFAULT_SEED
    numpy_rng: np.random.Generator = field(init=False, repr=False)
    key: PRNGKey = field(init=False, repr=False)

    def __post_init__(self) -> None:
        value = seed_to_int(self.seed)
        self.numpy_rng = numpy_generator(value)
        folded = (value ^ (value >> 64)) & (2**63 - 1)
        self.key = jax.random.PRNGKey(folded)

    def split(self, count: int = 1) -> Tuple[PRNGKey, ...]:
        keys = jax.random.split(self.key, count + 1)
        self.key = keys[-1]
        return tuple(keys[:-1])


__all__ = ["DEFAULT_SEED", "RNGManager", "SeedLike", "numpy_generator", "seed_to_int"]

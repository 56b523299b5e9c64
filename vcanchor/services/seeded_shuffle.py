"""Reproducible question ordering from a hex seed.

The ordering must be bit-for-bit reproducible by anyone holding the seed and
the question list (an auditor, a second server, a browser), so the generator
is a plain 32-bit LCG rather than ``random.Random``:

    state = (1664525 * state + 1013904223) mod 2**32
    rand  = state / 2**32               (state advanced before each draw)

The seed integer is the first four bytes of the seed (first 8 hex digits
after ``0x``); 0 or an unparsable seed falls back to 1.

Reference: seed ``0x1`` over [q0, q1, q2, q3, q4] yields [q0, q2, q3, q4, q1].
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

_MULTIPLIER = 1664525
_INCREMENT = 1013904223
_MODULUS = 2**32


def seed_to_int(seed: str) -> int:
    digits = seed[2:] if seed[:2].lower() == "0x" else seed
    try:
        value = int(digits[:8], 16)
    except ValueError:
        return 1
    return value or 1


class Lcg:
    def __init__(self, seed: int) -> None:
        self.state = seed % _MODULUS

    def next_float(self) -> float:
        self.state = (_MULTIPLIER * self.state + _INCREMENT) % _MODULUS
        return self.state / _MODULUS


def shuffle(items: Sequence[T], seed: str) -> list[T]:
    """Fisher-Yates over a copy of ``items``; the input is not modified."""
    out = list(items)
    rng = Lcg(seed_to_int(seed))
    for i in range(len(out) - 1, 0, -1):
        j = int(rng.next_float() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out

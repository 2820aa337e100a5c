"""
Injectable randomness.

Every stochastic step in the engine draws from a ``RandomSource`` passed in
by the caller.  ``random.Random`` satisfies the protocol, so tests pass
``random.Random(seed)`` and production code passes nothing and gets a fresh
unseeded generator.
"""

from __future__ import annotations

import random
from typing import Optional, Protocol


class RandomSource(Protocol):
    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...


def default_random_source(seed: Optional[int] = None) -> RandomSource:
    """Return a ``random.Random``; seeded when ``seed`` is given."""
    return random.Random(seed)

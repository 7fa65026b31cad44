from typing import Optional

import numpy as np


class DRNG:
    """Deterministic Random Number Generator wrapper."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.g = np.random.Generator(np.random.PCG64(seed))

    def integers(self, low: int, high: int) -> int:
        """Return a random int in [low, high], both ends inclusive."""
        return int(self.g.integers(low, high, endpoint=True))

    def sign(self) -> int:
        """Return -1 or +1 with equal probability."""
        return -1 if self.g.integers(0, 2) == 0 else 1

    def choice_index(self, n: int) -> int:
        """Return a random index in [0, n)."""
        return int(self.g.integers(0, n))

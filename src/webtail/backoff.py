"""Jittered polling backoff for idle tails."""

import random


class Backoff:
    """Poll interval that creeps up while a file stays idle.

    Each empty read adds a uniform jitter in ``[0, base)`` to the interval
    instead of doubling it, so many tails polling the same file drift apart
    rather than waking in lock-step. Any data resets it to ``base``.
    """

    def __init__(
        self,
        base: float = 1.0,
        ceiling: float | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            base: Baseline interval in seconds
            ceiling: Upper bound for the interval (None = unbounded)
            rng: Random source; pass a seeded one for reproducible waits
        """
        if base <= 0:
            raise ValueError("backoff base must be positive")
        if ceiling is not None and ceiling < base:
            raise ValueError("backoff ceiling must not be below base")
        self.base = base
        self.ceiling = ceiling
        self._rng = rng or random.Random()
        self.interval = base

    def next(self) -> float:
        """Grow the interval after an empty read and return the wait."""
        self.interval += self._rng.random() * self.base
        if self.ceiling is not None and self.interval > self.ceiling:
            self.interval = self.ceiling
        return self.interval

    def reset(self) -> None:
        self.interval = self.base

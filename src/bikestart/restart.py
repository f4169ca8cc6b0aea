"""
Restart policies applied after an unexpected disconnect.

A peripheral that stays out of range would otherwise be rescanned in a tight
loop, so the default policy backs off exponentially.
"""

from abc import ABC, abstractmethod


class RestartPolicy(ABC):
    """Decides how long to wait before restarting the discovery cycle."""

    @abstractmethod
    def next_delay(self) -> float:
        """Delay in seconds before the next restart attempt."""

    @abstractmethod
    def reset(self) -> None:
        """Forget previous failures (called once a session is usable)."""


class ImmediateRestart(RestartPolicy):
    """Restart right away, every time."""

    def next_delay(self) -> float:
        return 0.0

    def reset(self) -> None:
        pass


class ExponentialBackoff(RestartPolicy):
    """First restart is immediate, then base * 2**(n-1) seconds, capped."""

    def __init__(self, base: float = 1.0, cap: float = 30.0) -> None:
        self.base = base
        self.cap = cap
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def next_delay(self) -> float:
        attempts = self._attempts
        self._attempts += 1
        if attempts == 0:
            return 0.0
        return min(self.base * (2 ** (attempts - 1)), self.cap)

    def reset(self) -> None:
        self._attempts = 0

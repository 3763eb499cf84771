"""Backoff policies mapping a failed attempt index to a wait in seconds."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Callable


class Backoff(ABC):
    """Strategy deciding how long to wait after a failed attempt"""

    @abstractmethod
    def next_interval(self, attempt: int) -> float:
        """
        Get the wait before the next attempt

        Args:
            attempt: Zero-based index of the attempt that just failed

        Returns:
            Wait duration in seconds
        """
        pass


def _check_non_negative(**values: float) -> None:
    for name, value in values.items():
        if value is not None and value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")


class _JitterMixin:
    max_jitter: float
    _rng: random.Random

    def _jitter(self) -> float:
        if self.max_jitter <= 0:
            return 0.0
        return self._rng.uniform(0, self.max_jitter)


class NoBackoff(Backoff):
    """Retry immediately"""

    def next_interval(self, attempt: int) -> float:
        return 0.0

    def __repr__(self) -> str:
        return "NoBackoff()"


class ConstantBackoff(_JitterMixin, Backoff):
    """Same wait after every failed attempt, plus optional random jitter"""

    def __init__(self, interval: float, max_jitter: float = 0.0, rng: random.Random | None = None):
        _check_non_negative(interval=interval, max_jitter=max_jitter)
        self.interval = interval
        self.max_jitter = max_jitter
        self._rng = rng or random.Random()

    def next_interval(self, attempt: int) -> float:
        return self.interval + self._jitter()

    def __repr__(self) -> str:
        return f"ConstantBackoff(interval={self.interval}, max_jitter={self.max_jitter})"


class LinearBackoff(_JitterMixin, Backoff):
    """Wait grows by a fixed increment per attempt, optionally capped"""

    def __init__(
        self,
        initial: float,
        increment: float,
        maximum: float | None = None,
        max_jitter: float = 0.0,
        rng: random.Random | None = None,
    ):
        _check_non_negative(initial=initial, increment=increment, maximum=maximum, max_jitter=max_jitter)
        self.initial = initial
        self.increment = increment
        self.maximum = maximum
        self.max_jitter = max_jitter
        self._rng = rng or random.Random()

    def next_interval(self, attempt: int) -> float:
        interval = self.initial + attempt * self.increment
        if self.maximum is not None:
            interval = min(interval, self.maximum)
        return interval + self._jitter()

    def __repr__(self) -> str:
        return f"LinearBackoff(initial={self.initial}, increment={self.increment}, maximum={self.maximum})"


class ExponentialBackoff(_JitterMixin, Backoff):
    """Wait multiplied by ``factor`` per attempt and capped at ``maximum``, plus optional jitter"""

    def __init__(
        self,
        initial: float,
        maximum: float,
        factor: float = 2.0,
        max_jitter: float = 0.0,
        rng: random.Random | None = None,
    ):
        _check_non_negative(initial=initial, maximum=maximum, max_jitter=max_jitter)
        if factor < 1:
            raise ValueError(f"factor must be >= 1, got {factor}")
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.max_jitter = max_jitter
        self._rng = rng or random.Random()

    def next_interval(self, attempt: int) -> float:
        try:
            interval = self.initial * (self.factor**attempt)
        except OverflowError:
            interval = self.maximum
        return min(interval, self.maximum) + self._jitter()

    def __repr__(self) -> str:
        return f"ExponentialBackoff(initial={self.initial}, maximum={self.maximum}, factor={self.factor})"


class CallableBackoff(Backoff):
    """Adapt a plain ``func(attempt) -> seconds`` into a backoff policy"""

    def __init__(self, func: Callable[[int], float]):
        self.func = func

    def next_interval(self, attempt: int) -> float:
        return float(self.func(attempt))


def backoff_from_settings(settings) -> Backoff:
    """Build the backoff policy described by the client settings"""
    strategy = settings.backoff_strategy
    if strategy == "none":
        return NoBackoff()
    if strategy == "constant":
        return ConstantBackoff(settings.backoff_initial, max_jitter=settings.backoff_max_jitter)
    if strategy == "linear":
        return LinearBackoff(
            settings.backoff_initial,
            settings.backoff_increment,
            maximum=settings.backoff_max,
            max_jitter=settings.backoff_max_jitter,
        )
    if strategy == "exponential":
        return ExponentialBackoff(
            settings.backoff_initial,
            settings.backoff_max,
            factor=settings.backoff_factor,
            max_jitter=settings.backoff_max_jitter,
        )
    raise ValueError(f"Unknown backoff strategy: {strategy}")

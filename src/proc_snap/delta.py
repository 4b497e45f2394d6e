"""Arithmetic shared by the usage calculations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from .errors import CounterRegression, EntitySetChanged

E = TypeVar("E")

NANOS_PER_SECOND = 1_000_000_000


def counter_delta(field: str, prior: int, current: int) -> int:
    """Difference of a monotonically increasing counter.

    A negative difference means the counter was reset or mis-parsed; it is
    rejected instead of being clamped to zero.
    """
    if current < prior:
        raise CounterRegression(field, prior, current)
    return current - prior


def ratio(part: int, total: int, scale: float = 1.0) -> float:
    """``part / total * scale``; a zero total means nothing happened."""
    if total == 0:
        return 0.0
    return part / total * scale


def per_second(delta: int, time_delta: int) -> float | None:
    """Rate of *delta* over *time_delta* nanoseconds, None when no time passed."""
    if time_delta <= 0:
        return None
    return delta * NANOS_PER_SECOND / time_delta


def match_entities(
    prior: Sequence[E],
    current: Sequence[E],
    key: str,
) -> tuple[list[tuple[E, E]], EntitySetChanged | None]:
    """Pair entities by position.

    Only indices present in both sequences are paired, and a pair is dropped
    when the two entities' *key* attributes differ (a device was swapped at
    that index). Either case sets the returned condition.
    """
    pairs = [
        (before, after)
        for before, after in zip(prior, current)
        if getattr(before, key) == getattr(after, key)
    ]
    changed = len(prior) != len(current) or len(pairs) != min(len(prior), len(current))
    condition = EntitySetChanged(len(prior), len(current)) if changed else None
    return pairs, condition

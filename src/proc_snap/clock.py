"""Kernel clock-tick rate, resolved once and shared."""

from __future__ import annotations

import logging
import os
import threading
from typing import ClassVar

from .errors import ProcSnapError

logger = logging.getLogger(__name__)


class ClockTicks:
    """Resolves ``CLK_TCK`` (ticks per second) lazily and caches it.

    :meth:`shared` returns the process-wide instance that collectors fall
    back to; pass an explicit one to pin or isolate the rate. The first
    :meth:`resolve` queries the system under a lock; later calls return the
    cached value without locking. Passing *value* pins the rate, which tests
    use to stay host independent.
    """

    _shared: ClassVar[ClockTicks | None] = None
    _shared_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, value: int | None = None) -> None:
        if value is not None and value <= 0:
            raise ValueError(f"clock ticks must be positive, got {value}")
        self._value = value
        self._lock = threading.Lock()

    @classmethod
    def shared(cls) -> ClockTicks:
        """The process-wide instance, created on first use."""
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = cls()
            return cls._shared

    def resolve(self) -> int:
        value = self._value
        if value is not None:
            return value
        with self._lock:
            if self._value is None:
                self._value = _query_clk_tck()
                logger.debug("Resolved CLK_TCK=%d", self._value)
            return self._value

    @property
    def resolved(self) -> bool:
        return self._value is not None


def _query_clk_tck() -> int:
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError) as exc:
        raise ProcSnapError(f"cannot determine CLK_TCK: {exc}") from exc
    if ticks <= 0:
        raise ProcSnapError(f"cannot determine CLK_TCK: sysconf returned {ticks}")
    return ticks

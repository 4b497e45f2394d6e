"""Periodic sampling of a collector on a background thread."""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Any

from .channel import Channel
from .collector import Collector, Result, create_collector
from .errors import ChannelClosed, ProcSnapError

logger = logging.getLogger(__name__)


class SamplerState(enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    CLOSED = "closed"


class Sampler:
    """Runs ``collector.collect()`` every *interval* seconds.

    Results are published on :attr:`data` in acquisition order. A tick whose
    result carries read or parse failures publishes nothing; each failure goes
    to :attr:`errors` instead, as does any exception raised by the collector
    (a counter regression, a read error). Usage records flagged with delta
    conditions are still published.

    Ticks follow a fixed-rate schedule: a tick that overruns the interval
    causes the missed ticks to be dropped, not bunched up.

    The sampler owns *collector* and closes it in :meth:`close`.
    """

    def __init__(self, collector: Collector, interval: float, *, error_capacity: int = 16) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.collector = collector
        self.interval = interval
        self.data: Channel[Result] = Channel(1)
        self.errors: Channel[Exception] = Channel(error_capacity)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = SamplerState.CREATED
        self._lock = threading.Lock()

    @classmethod
    def for_kind(cls, kind: str, interval: float, *, error_capacity: int = 16, **kwargs: Any) -> Sampler:
        """Sampler over a collector from the registry; *kwargs* go to ``create_collector``."""
        return cls(create_collector(kind, **kwargs), interval, error_capacity=error_capacity)

    @property
    def state(self) -> SamplerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SamplerState.RUNNING

    def start(self) -> None:
        with self._lock:
            if self._state is not SamplerState.CREATED:
                raise ProcSnapError(f"cannot start a sampler that is {self._state.value}")
            self._thread = threading.Thread(
                target=self._run, name=f"sampler-{self.collector.name}", daemon=True,
            )
            self._state = SamplerState.RUNNING
            self._thread.start()
        logger.info("Sampler %s started (interval=%.3fs)", self.collector.name, self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for it."""
        with self._lock:
            if self._state is not SamplerState.RUNNING:
                return
            self._stop_event.set()
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Sampler %s did not stop within %.1fs", self.collector.name, timeout)
                return
        with self._lock:
            self._thread = None
            self._state = SamplerState.STOPPED
        logger.info("Sampler %s stopped", self.collector.name)

    def close(self) -> None:
        """Stop if running, then close both channels and the collector."""
        if self._state is SamplerState.CLOSED:
            return
        self.stop()
        with self._lock:
            if self._thread is not None:
                raise ProcSnapError(f"sampler {self.collector.name} is still running; not closing")
            self.data.close()
            self.errors.close()
            self.collector.close()
            self._state = SamplerState.CLOSED

    def __enter__(self) -> Sampler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _run(self) -> None:
        next_tick = time.monotonic() + self.interval
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self._tick()
            next_tick += self.interval
            now = time.monotonic()
            if next_tick < now:
                missed = int((now - next_tick) // self.interval) + 1
                next_tick += missed * self.interval
                logger.debug("Sampler %s overran; dropped %d tick(s)", self.collector.name, missed)

    def _tick(self) -> None:
        try:
            result = self.collector.collect()
        except ProcSnapError as exc:
            self._report(exc)
            return
        except Exception as exc:
            logger.exception("Collector %s raised unexpectedly", self.collector.name)
            self._report(exc)
            return
        if result.failures:
            logger.debug("Sampler %s skipped tick: %d failure(s)", self.collector.name, len(result.failures))
            for failure in result.failures:
                if not self._report(failure):
                    return
            return
        try:
            self.data.send(result, cancel=self._stop_event)
        except ChannelClosed:
            self._stop_event.set()

    def _report(self, exc: Exception) -> bool:
        try:
            return self.errors.send(exc, cancel=self._stop_event)
        except ChannelClosed:
            self._stop_event.set()
            return False

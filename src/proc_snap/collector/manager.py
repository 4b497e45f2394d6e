"""Collector manager that orchestrates sampling of several counter files."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ..clock import ClockTicks
from ..config import SamplerConfig
from ..errors import ProcSnapError
from ..sampler import Sampler
from . import Collector, Result, create_collector

logger = logging.getLogger(__name__)

Sink = Callable[[str, Result], None]


class CollectorManager:
    """Manages the configured collectors and runs them on an interval.

    This class is designed to be reusable: instantiate it with a
    :class:`SamplerConfig`, register one or more sinks via :meth:`add_sink`,
    then call :meth:`start` / :meth:`stop`. Each collector gets its own
    :class:`~proc_snap.sampler.Sampler`; published results are handed to the
    sinks as ``sink(kind, result)`` and sampler errors are logged. Every
    collector it builds shares *clock_ticks* (the process-wide instance by
    default).
    """

    def __init__(self, config: SamplerConfig, clock_ticks: ClockTicks | None = None) -> None:
        self._config = config
        self._clock_ticks = clock_ticks or ClockTicks.shared()
        self._sinks: list[Sink] = []
        self._collectors: dict[str, Collector] = {}
        self._samplers: dict[str, Sampler] = {}
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def kinds(self) -> list[str]:
        return list(self._config.collectors)

    def add_sink(self, sink: Sink) -> None:
        """Register a callback to receive published results."""
        self._sinks.append(sink)

    def _build(self, kind: str) -> Collector | None:
        try:
            return create_collector(
                kind,
                proc_root=self._config.proc_root,
                etc_root=self._config.etc_root,
                sys_root=self._config.sys_root,
                clock_ticks=self._clock_ticks,
            )
        except (KeyError, ProcSnapError):
            logger.exception("Cannot create collector %s", kind)
            return None

    def collect_once(self) -> dict[str, Result]:
        """Run every collector once and return its result by kind.

        Collectors are built on first use and kept, so delta kinds report the
        usage since the previous call.
        """
        results: dict[str, Result] = {}
        for kind in self._config.collectors:
            collector = self._collectors.get(kind)
            if collector is None:
                collector = self._build(kind)
                if collector is None:
                    continue
                self._collectors[kind] = collector
            try:
                results[kind] = collector.collect()
            except ProcSnapError as exc:
                logger.exception("Collector %s failed", kind)
                results[kind] = Result(None, (exc,))
        return results

    def _dispatch(self, kind: str, result: Result) -> None:
        for sink in self._sinks:
            try:
                sink(kind, result)
            except Exception:
                logger.exception("Sink failed for %s", kind)

    def _forward_data(self, kind: str, sampler: Sampler) -> None:
        for result in sampler.data:
            self._dispatch(kind, result)

    def _forward_errors(self, kind: str, sampler: Sampler) -> None:
        for exc in sampler.errors:
            logger.warning("Sampler %s: %s", kind, exc)

    def start(self) -> None:
        """Start sampling in the background."""
        if not self._config.enabled:
            return
        with self._lock:
            if self._samplers:
                return
            for kind in self._config.collectors:
                collector = self._build(kind)
                if collector is None:
                    continue
                sampler = Sampler(collector, self._config.interval_seconds)
                self._samplers[kind] = sampler
                for target in (self._forward_data, self._forward_errors):
                    thread = threading.Thread(
                        target=target, args=(kind, sampler), name=f"forward-{kind}", daemon=True,
                    )
                    thread.start()
                    self._threads.append(thread)
                sampler.start()
        logger.info(
            "CollectorManager started (interval=%.1fs, collectors=%s)",
            self._config.interval_seconds,
            ",".join(self._samplers),
        )

    @property
    def running(self) -> bool:
        return bool(self._samplers)

    def stop(self) -> None:
        """Stop background sampling."""
        with self._lock:
            samplers = list(self._samplers.values())
            self._samplers.clear()
            threads, self._threads = self._threads, []
        for sampler in samplers:
            try:
                sampler.close()
            except ProcSnapError:
                logger.exception("Sampler %s did not shut down cleanly", sampler.collector.name)
        for thread in threads:
            thread.join(timeout=5)
        logger.info("CollectorManager stopped")

    def close(self) -> None:
        """Stop sampling and release the collectors used by :meth:`collect_once`."""
        self.stop()
        for collector in self._collectors.values():
            collector.close()
        self._collectors.clear()

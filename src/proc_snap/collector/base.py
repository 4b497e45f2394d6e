"""Base interfaces for counter-file collectors."""

from __future__ import annotations

import abc
import dataclasses
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from ..errors import DeltaCondition, SampleFailure
from ..scanner import Buffer
from ..source import Source

logger = logging.getLogger(__name__)

S = TypeVar("S")
U = TypeVar("U")
T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one collect or delta call.

    *value* may be set even when *errors* is not empty: a snapshot with one
    unparseable field is still returned, with that field left at zero.
    """

    value: T | None
    errors: tuple[Exception, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def failures(self) -> tuple[Exception, ...]:
        """Read and parse failures; a sampler skips results that have any."""
        return tuple(e for e in self.errors if isinstance(e, SampleFailure))

    @property
    def conditions(self) -> tuple[Exception, ...]:
        return tuple(e for e in self.errors if isinstance(e, DeltaCondition))

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0]


@dataclass
class MetricSample:
    """A single metric data point."""

    name: str
    value: float
    unit: str
    timestamp: float
    labels: dict[str, str] = field(default_factory=dict)
    description: str = ""


class Collector(abc.ABC, Generic[T]):
    """Anything that can produce a :class:`Result` on demand."""

    kind: ClassVar[str]

    _last_timestamp: int = 0

    @property
    def name(self) -> str:
        return self.kind

    def _stamp(self) -> int:
        """Wall-clock nanoseconds, never earlier than the previous stamp."""
        now = time.time_ns()
        if now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    @abc.abstractmethod
    def collect(self) -> Result[T]:
        """Take one reading."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the underlying counter file."""

    def __enter__(self) -> Collector[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class BaseCollector(Collector[S]):
    """Reads one counter file and parses it into a snapshot.

    Subclasses name their file in ``PROC_FILE`` and implement :meth:`parse`.
    The snapshot timestamp is taken before the read starts and never goes
    backwards across calls on the same collector.
    """

    PROC_FILE: ClassVar[str]

    def __init__(self, path: str | Path | None = None) -> None:
        self._source = Source.open(path or self.PROC_FILE)

    @property
    def path(self) -> str:
        return self._source.path

    def collect(self) -> Result[S]:
        timestamp = self._stamp()
        self._source.reset()
        buf = self._source.read_all()
        return self.parse(buf, timestamp)

    @abc.abstractmethod
    def parse(self, buf: Buffer, timestamp: int) -> Result[S]:
        """Turn the raw file contents into a snapshot."""

    def close(self) -> None:
        self._source.close()


class DeltaCollector(Collector[U], Generic[S, U]):
    """Derives usage records from consecutive snapshots of a BaseCollector.

    Construction takes a warm-up snapshot so the first :meth:`collect` has a
    prior to compare against. The stored prior only advances on snapshots
    that parsed cleanly.
    """

    def __init__(self, stats: BaseCollector[S]) -> None:
        self.stats = stats
        try:
            warm_up = stats.collect()
            if warm_up.failures:
                raise warm_up.failures[0]
        except Exception:
            stats.close()
            raise
        self._prior: S = warm_up.value

    @property
    def prior(self) -> S:
        return self._prior

    @abc.abstractmethod
    def calculate(self, prior: S, current: S) -> Result[U]:
        """Compute the usage between two snapshots."""

    def delta(self, prior: S) -> Result[U]:
        """Usage between *prior* and a fresh snapshot; the stored prior is untouched."""
        current = self.stats.collect()
        if current.failures:
            return Result(None, current.errors)
        return self.calculate(prior, current.value)

    def collect(self) -> Result[U]:
        current = self.stats.collect()
        if current.failures:
            return Result(None, current.errors)
        try:
            return self.calculate(self._prior, current.value)
        finally:
            # a regression means the counters restarted; compare from here on
            self._prior = current.value

    def close(self) -> None:
        self.stats.close()


def _entity_label(entity: Any) -> str:
    for attr in ("id", "name", "processor", "physical_id"):
        value = getattr(entity, attr, None)
        if isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
    return ""


def flatten(kind: str, record: Any) -> list[MetricSample]:
    """Turn a snapshot or usage record into metric samples.

    Numeric scalar fields become one sample each; lists of entities become one
    sample per entity and field, labelled with the entity id or name. Fields
    that are None (unavailable ratios), strings and flags are skipped.
    """
    timestamp = getattr(record, "timestamp", 0) / 1e9
    samples: list[MetricSample] = []

    def _emit(prefix: str, obj: Any, labels: dict[str, str]) -> None:
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if f.name == "timestamp" or value is None or isinstance(value, (str, bool)):
                continue
            if isinstance(value, list):
                for entity in value:
                    if dataclasses.is_dataclass(entity):
                        _emit(f"{prefix}.{f.name}", entity, {"entity": _entity_label(entity)})
                continue
            if isinstance(value, (int, float)):
                samples.append(MetricSample(
                    name=f"{prefix}.{f.name}",
                    value=float(value),
                    unit=_unit_for(f.name),
                    timestamp=timestamp,
                    labels=labels,
                ))

    _emit(kind, record, {})
    return samples


def _unit_for(name: str) -> str:
    if name.endswith("_per_sec"):
        return "bytes/s"
    if name == "time_delta":
        return "ns"
    return "1"

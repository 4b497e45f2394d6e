"""Kernel activity collector (``/proc/stat``) and CPU utilization.

The first ``cpu`` line aggregates all the ``cpuN`` lines that follow it; the
snapshot keeps them in file order, aggregate first. Tick counters are
cumulative since boot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from ..clock import ClockTicks
from ..delta import counter_delta, match_entities, ratio
from ..errors import Indeterminate, MalformedNumber, ParseError
from ..scanner import Buffer, KeyTrie, LineScanner
from .base import BaseCollector, DeltaCollector, Result

PROC_FILE = "/proc/stat"

# Column order of a cpu line after the key.
CPU_COLUMNS = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
    "guest",
    "guest_nice",
)
# Kernels older than 2.6 only report the first four.
_MIN_CPU_COLUMNS = 4

_KEYS: KeyTrie[str] = KeyTrie(
    {
        b"ctxt": "ctxt",
        b"btime": "btime",
        b"processes": "processes",
        b"procs_running": "procs_running",
        b"procs_blocked": "procs_blocked",
    },
    prefixes={b"cpu": "cpu"},
)


@dataclass
class CPU:
    """Tick counters of one ``cpu`` line."""

    id: str = ""
    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0


@dataclass
class CPUStats:
    """Parsed ``/proc/stat``.

    ``procs_running`` and ``procs_blocked`` are gauges; everything else is a
    counter since boot (``btime`` is the boot time in epoch seconds).
    """

    KIND: ClassVar[str] = "cpu_stats"

    timestamp: int = 0
    clk_tck: int = 0
    ctxt: int = 0
    btime: int = 0
    processes: int = 0
    procs_running: int = 0
    procs_blocked: int = 0
    cpus: list[CPU] = field(default_factory=list)


def parse_stat(buf: Buffer, timestamp: int, clk_tck: int = 0) -> Result[CPUStats]:
    """Parse the contents of ``/proc/stat``.

    Lines other than the cpu lines and the five modeled keys (``intr``,
    ``softirq``...) are skipped. A value that fails to decode is reported and
    left at zero; the rest of the file is still parsed.
    """
    stats = CPUStats(timestamp=timestamp, clk_tck=clk_tck)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        tokens = scanner.fields(line)
        key = next(tokens, None)
        if key is None:
            continue
        name = _KEYS.match(scanner, key)
        if name is None:
            continue
        if name == "cpu":
            cpu = CPU(id=scanner.text(key))
            seen = 0
            for column, tok in zip(CPU_COLUMNS, tokens):
                seen += 1
                try:
                    setattr(cpu, column, scanner.uint(tok))
                except MalformedNumber as exc:
                    errors.append(ParseError(f"{cpu.id}.{column}", exc))
            if seen < _MIN_CPU_COLUMNS:
                errors.append(ParseError(
                    cpu.id, f"line {scanner.line_no}: expected {_MIN_CPU_COLUMNS} values, got {seen}",
                ))
            stats.cpus.append(cpu)
            continue
        value = next(tokens, None)
        if value is None:
            errors.append(ParseError(name, f"line {scanner.line_no}: missing value"))
            continue
        try:
            setattr(stats, name, scanner.uint(value))
        except MalformedNumber as exc:
            errors.append(ParseError(name, exc))
    return Result(stats, tuple(errors))


class CpuStatsCollector(BaseCollector[CPUStats]):
    """Collects kernel activity counters from ``/proc/stat``."""

    kind = "cpu"
    PROC_FILE = PROC_FILE

    def __init__(self, path: str | Path | None = None, clock_ticks: ClockTicks | None = None) -> None:
        self._clock_ticks = clock_ticks or ClockTicks.shared()
        self._clk_tck = self._clock_ticks.resolve()
        super().__init__(path)

    @property
    def clock_ticks(self) -> ClockTicks:
        return self._clock_ticks

    def parse(self, buf: Buffer, timestamp: int) -> Result[CPUStats]:
        return parse_stat(buf, timestamp, self._clk_tck)


@dataclass
class Utilization:
    """Share of ticks spent in each state during the window, scaled.

    Each value is ``Δstate / Δ(user + nice + system + idle) * CLK_TCK``. All
    of them are None when no time elapsed between the snapshots.
    """

    id: str = ""
    usage: float | None = None
    user: float | None = None
    nice: float | None = None
    system: float | None = None
    idle: float | None = None
    iowait: float | None = None


@dataclass
class CPUUtilization:
    """CPU utilization between two ``/proc/stat`` snapshots.

    ``time_delta`` is the window in nanoseconds, ``btime_delta`` the seconds
    since boot at the current snapshot.
    """

    KIND: ClassVar[str] = "cpu_utilization"

    timestamp: int = 0
    time_delta: int = 0
    btime_delta: int = 0
    ctxt_delta: int = 0
    processes_delta: int = 0
    procs_running: int = 0
    procs_blocked: int = 0
    entity_set_changed: bool = False
    cpus: list[Utilization] = field(default_factory=list)


def calculate_utilization(prior: CPUStats, current: CPUStats, scale: float) -> Result[CPUUtilization]:
    """Utilization between *prior* and *current*.

    usage = (Δuser + Δnice + Δsystem) / (Δuser + Δnice + Δsystem + Δidle) * scale

    Raises :class:`~proc_snap.errors.CounterRegression` if any tick counter
    went backwards.
    """
    errors: list[Exception] = []
    time_delta = counter_delta("timestamp", prior.timestamp, current.timestamp)
    util = CPUUtilization(
        timestamp=current.timestamp,
        time_delta=time_delta,
        btime_delta=current.timestamp // 1_000_000_000 - current.btime if current.btime else 0,
        ctxt_delta=counter_delta("ctxt", prior.ctxt, current.ctxt),
        processes_delta=counter_delta("processes", prior.processes, current.processes),
        procs_running=current.procs_running,
        procs_blocked=current.procs_blocked,
    )
    pairs, changed = match_entities(prior.cpus, current.cpus, key="id")
    if changed is not None:
        util.entity_set_changed = True
        errors.append(changed)
    indeterminate = time_delta == 0
    if indeterminate:
        errors.append(Indeterminate(time_delta))

    for before, after in pairs:
        user = counter_delta(f"{after.id}.user", before.user, after.user)
        nice = counter_delta(f"{after.id}.nice", before.nice, after.nice)
        system = counter_delta(f"{after.id}.system", before.system, after.system)
        idle = counter_delta(f"{after.id}.idle", before.idle, after.idle)
        iowait = counter_delta(f"{after.id}.iowait", before.iowait, after.iowait)
        u = Utilization(id=after.id)
        if not indeterminate:
            total = user + nice + system + idle
            u.usage = ratio(user + nice + system, total, scale)
            u.user = ratio(user, total, scale)
            u.nice = ratio(nice, total, scale)
            u.system = ratio(system, total, scale)
            u.idle = ratio(idle, total, scale)
            u.iowait = ratio(iowait, total, scale)
        util.cpus.append(u)
    return Result(util, tuple(errors))


class CpuUtilCollector(DeltaCollector[CPUStats, CPUUtilization]):
    """CPU utilization since the previous collect."""

    kind = "cpu_util"

    def __init__(self, stats: CpuStatsCollector | None = None) -> None:
        super().__init__(stats or CpuStatsCollector())
        self._scale = float(self.stats.clock_ticks.resolve())

    def calculate(self, prior: CPUStats, current: CPUStats) -> Result[CPUUtilization]:
        return calculate_utilization(prior, current, self._scale)

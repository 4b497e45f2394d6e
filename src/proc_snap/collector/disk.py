"""Block device I/O collector (``/proc/diskstats``) and disk usage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from ..delta import counter_delta, match_entities, per_second
from ..errors import Indeterminate, MalformedNumber, ParseError
from ..scanner import Buffer, LineScanner
from .base import BaseCollector, DeltaCollector, Result

PROC_FILE = "/proc/diskstats"

SECTOR_SIZE = 512

# Numeric columns following ``major minor name``; newer kernels append
# discard and flush columns, which are ignored.
DISK_COLUMNS = (
    "reads_completed",
    "reads_merged",
    "read_sectors",
    "reading_time",
    "writes_completed",
    "writes_merged",
    "written_sectors",
    "writing_time",
    "io_in_progress",
    "io_time",
    "weighted_io_time",
)
# Gauges are reported as-is in usage records instead of being differenced.
GAUGES = frozenset({"io_in_progress"})


@dataclass
class Device:
    """One ``/proc/diskstats`` line. Times are in milliseconds."""

    major: int = 0
    minor: int = 0
    name: str = ""
    reads_completed: int = 0
    reads_merged: int = 0
    read_sectors: int = 0
    reading_time: int = 0
    writes_completed: int = 0
    writes_merged: int = 0
    written_sectors: int = 0
    writing_time: int = 0
    io_in_progress: int = 0
    io_time: int = 0
    weighted_io_time: int = 0


@dataclass
class DiskStats:
    KIND: ClassVar[str] = "disk_stats"

    timestamp: int = 0
    devices: list[Device] = field(default_factory=list)


def parse_diskstats(buf: Buffer, timestamp: int) -> Result[DiskStats]:
    """Parse ``/proc/diskstats``, one device per line, in file order.

    A line too short to carry all columns is reported; the device is kept
    with the columns it had so entity positions stay stable.
    """
    stats = DiskStats(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        tokens = scanner.split(line)
        if not tokens:
            continue
        if len(tokens) < 3:
            errors.append(ParseError(f"line {scanner.line_no}", "missing device identity"))
            continue
        dev = Device(name=scanner.text(tokens[2]))
        for attr, tok in (("major", tokens[0]), ("minor", tokens[1])):
            try:
                setattr(dev, attr, scanner.uint(tok))
            except MalformedNumber as exc:
                errors.append(ParseError(f"{dev.name}.{attr}", exc))
        for column, tok in zip(DISK_COLUMNS, tokens[3:]):
            try:
                setattr(dev, column, scanner.uint(tok))
            except MalformedNumber as exc:
                errors.append(ParseError(f"{dev.name}.{column}", exc))
        if len(tokens) - 3 < len(DISK_COLUMNS):
            errors.append(ParseError(
                dev.name,
                f"line {scanner.line_no}: expected {len(DISK_COLUMNS)} values, got {len(tokens) - 3}",
            ))
        stats.devices.append(dev)
    return Result(stats, tuple(errors))


class DiskStatsCollector(BaseCollector[DiskStats]):
    """Collects block device I/O counters from ``/proc/diskstats``."""

    kind = "disk"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[DiskStats]:
        return parse_diskstats(buf, timestamp)


@dataclass
class DeviceUsage(Device):
    """Counter deltas for one device over the window, plus throughput.

    ``io_in_progress`` holds the current gauge value, not a difference.
    """

    read_bytes_per_sec: float | None = None
    write_bytes_per_sec: float | None = None


@dataclass
class DiskUsage:
    KIND: ClassVar[str] = "disk_usage"

    timestamp: int = 0
    time_delta: int = 0
    entity_set_changed: bool = False
    devices: list[DeviceUsage] = field(default_factory=list)


def calculate_disk_usage(prior: DiskStats, current: DiskStats) -> Result[DiskUsage]:
    errors: list[Exception] = []
    time_delta = counter_delta("timestamp", prior.timestamp, current.timestamp)
    usage = DiskUsage(timestamp=current.timestamp, time_delta=time_delta)
    pairs, changed = match_entities(prior.devices, current.devices, key="name")
    if changed is not None:
        usage.entity_set_changed = True
        errors.append(changed)
    if time_delta == 0:
        errors.append(Indeterminate(time_delta))

    for before, after in pairs:
        dev = DeviceUsage(major=after.major, minor=after.minor, name=after.name)
        for column in DISK_COLUMNS:
            current_value = getattr(after, column)
            if column in GAUGES:
                setattr(dev, column, current_value)
                continue
            setattr(dev, column, counter_delta(f"{after.name}.{column}", getattr(before, column), current_value))
        dev.read_bytes_per_sec = per_second(dev.read_sectors * SECTOR_SIZE, time_delta)
        dev.write_bytes_per_sec = per_second(dev.written_sectors * SECTOR_SIZE, time_delta)
        usage.devices.append(dev)
    return Result(usage, tuple(errors))


class DiskUsageCollector(DeltaCollector[DiskStats, DiskUsage]):
    """Block device I/O since the previous collect."""

    kind = "disk_usage"

    def __init__(self, stats: DiskStatsCollector | None = None) -> None:
        super().__init__(stats or DiskStatsCollector())

    def calculate(self, prior: DiskStats, current: DiskStats) -> Result[DiskUsage]:
        return calculate_disk_usage(prior, current)

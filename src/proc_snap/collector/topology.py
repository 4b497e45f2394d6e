"""Processor and NUMA layout collectors.

``processors`` folds the logical processors of ``/proc/cpuinfo`` into one
entry per physical package and, where sysfs exposes cpufreq, adds each
package's frequency range. ``numa_nodes`` lists the nodes under
``/sys/devices/system/node`` with the CPUs they hold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ClassVar

from ..errors import MalformedNumber, OpenError, ParseError, ReadError
from ..scanner import Buffer, parse_uint
from .base import BaseCollector, Collector, Result
from .cpuinfo import PROC_FILE, CPUInfo, parse_cpuinfo

logger = logging.getLogger(__name__)

SYS_CPU_DIR = "/sys/devices/system/cpu"
SYS_NODE_DIR = "/sys/devices/system/node"

FreqRange = Callable[[int], tuple[float | None, float | None]]


@dataclass
class Chip:
    """One physical package, described by its first logical processor.

    ``mhz_min`` and ``mhz_max`` come from sysfs cpufreq and are None when the
    system does not expose it.
    """

    physical_id: int = 0
    vendor_id: str = ""
    cpu_family: str = ""
    model: str = ""
    model_name: str = ""
    stepping: str = ""
    microcode: str = ""
    cpu_mhz: float = 0.0
    mhz_min: float | None = None
    mhz_max: float | None = None
    cache_size: str = ""
    cpu_cores: int = 0
    threads_per_core: int = 0
    bogomips: float = 0.0
    flags: list[str] = field(default_factory=list)


@dataclass
class Processors:
    KIND: ClassVar[str] = "processors"

    timestamp: int = 0
    sockets: int = 0
    cores_per_socket: int = 0
    cpus: int = 0
    chips: list[Chip] = field(default_factory=list)


def summarize_processors(info: CPUInfo, freq_range: FreqRange | None = None) -> Processors:
    """Group *info* by physical id, keeping the first processor of each package.

    *freq_range*, when given, is called with that processor's number and
    returns its ``(min, max)`` MHz.
    """
    chips: dict[int, Chip] = {}
    for cpu in info.cpus:
        if cpu.physical_id in chips:
            continue
        chip = Chip(
            physical_id=cpu.physical_id,
            vendor_id=cpu.vendor_id,
            cpu_family=cpu.cpu_family,
            model=cpu.model,
            model_name=cpu.model_name,
            stepping=cpu.stepping,
            microcode=cpu.microcode,
            cpu_mhz=cpu.cpu_mhz,
            cache_size=cpu.cache_size,
            cpu_cores=cpu.cpu_cores,
            threads_per_core=cpu.siblings // cpu.cpu_cores if cpu.cpu_cores else 0,
            bogomips=cpu.bogomips,
            flags=list(cpu.flags),
        )
        if freq_range is not None:
            chip.mhz_min, chip.mhz_max = freq_range(cpu.processor)
        chips[cpu.physical_id] = chip
    sockets = len(chips)
    cores = sum(chip.cpu_cores for chip in chips.values())
    return Processors(
        timestamp=info.timestamp,
        sockets=sockets,
        cores_per_socket=cores // sockets if sockets else 0,
        cpus=len(info.cpus),
        chips=list(chips.values()),
    )


def _read_khz(path: Path) -> float | None:
    """A cpufreq ``*_freq`` file in kHz as MHz; None when the file is absent."""
    try:
        raw = path.read_bytes().strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ReadError(str(path), exc) from exc
    return parse_uint(raw, 0, len(raw)) / 1000.0


class ProcessorsCollector(BaseCollector[Processors]):
    """Physical packages from ``/proc/cpuinfo`` plus sysfs frequency limits."""

    kind = "processors"
    PROC_FILE = PROC_FILE

    def __init__(self, path: str | Path | None = None, cpu_dir: str | Path | None = SYS_CPU_DIR) -> None:
        super().__init__(path)
        self._cpu_dir = Path(cpu_dir) if cpu_dir is not None else None

    def parse(self, buf: Buffer, timestamp: int) -> Result[Processors]:
        info = parse_cpuinfo(buf, timestamp)
        errors = list(info.errors)

        def freq_range(processor: int) -> tuple[float | None, float | None]:
            limits: list[float | None] = []
            for name in ("cpuinfo_min_freq", "cpuinfo_max_freq"):
                path = self._cpu_dir / f"cpu{processor}" / "cpufreq" / name
                try:
                    limits.append(_read_khz(path))
                except MalformedNumber as exc:
                    errors.append(ParseError(f"cpu{processor}.{name}", exc))
                    limits.append(None)
            return limits[0], limits[1]

        procs = summarize_processors(info.value, freq_range if self._cpu_dir is not None else None)
        return Result(procs, tuple(errors))


@dataclass
class Node:
    id: int = 0
    cpu_list: str = ""
    cpus: list[int] = field(default_factory=list)


@dataclass
class NumaNodes:
    KIND: ClassVar[str] = "numa_nodes"

    timestamp: int = 0
    nodes: list[Node] = field(default_factory=list)


def parse_cpu_list(text: bytes) -> list[int]:
    """Expand a kernel cpu list such as ``0-3,8,10-11`` into CPU numbers."""
    cpus: list[int] = []
    for part in text.strip().split(b","):
        if not part:
            continue
        low, sep, high = part.partition(b"-")
        first = parse_uint(low, 0, len(low))
        last = parse_uint(high, 0, len(high)) if sep else first
        if last < first:
            raise MalformedNumber(part, "range end before start")
        cpus.extend(range(first, last + 1))
    return cpus


class NumaNodeCollector(Collector[NumaNodes]):
    """Lists ``nodeN`` directories in order until the first missing one."""

    kind = "numa_nodes"
    SYS_DIR = SYS_NODE_DIR

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path or self.SYS_DIR)
        if not self._path.is_dir():
            raise OpenError(str(self._path), FileNotFoundError("not a directory"))

    @property
    def path(self) -> str:
        return str(self._path)

    def collect(self) -> Result[NumaNodes]:
        nodes = NumaNodes(timestamp=self._stamp())
        errors: list[Exception] = []
        node_id = 0
        while True:
            cpulist = self._path / f"node{node_id}" / "cpulist"
            try:
                raw = cpulist.read_bytes()
            except FileNotFoundError:
                break
            except OSError as exc:
                raise ReadError(str(cpulist), exc) from exc
            node = Node(id=node_id, cpu_list=raw.strip().decode("ascii", "replace"))
            try:
                node.cpus = parse_cpu_list(raw)
            except MalformedNumber as exc:
                errors.append(ParseError(f"node{node_id}.cpu_list", exc))
            nodes.nodes.append(node)
            node_id += 1
        logger.debug("Found %d NUMA nodes under %s", len(nodes.nodes), self._path)
        return Result(nodes, tuple(errors))

    def close(self) -> None:
        pass

"""Counter-file collectors and the registry that builds them by name."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..clock import ClockTicks
from .base import BaseCollector, Collector, DeltaCollector, MetricSample, Result, flatten
from .cpu import CPUStats, CPUUtilization, CpuStatsCollector, CpuUtilCollector
from .cpuinfo import CPUFreq, CPUInfo, CpuFreqCollector, CpuInfoCollector
from .disk import DiskStats, DiskStatsCollector, DiskUsage, DiskUsageCollector
from .kernel import Kernel, KernelCollector
from .loadavg import LoadAvg, LoadAvgCollector
from .memory import MemInfo, MemInfoCollector
from .network import NetDev, NetDevCollector, NetUsage, NetUsageCollector
from .release import OsRelease, OsReleaseCollector
from .topology import SYS_CPU_DIR, NumaNodeCollector, NumaNodes, Processors, ProcessorsCollector
from .uptime import Uptime, UptimeCollector

DEFAULT_PROC_ROOT = "/proc"
DEFAULT_ETC_ROOT = "/etc"
DEFAULT_SYS_ROOT = "/sys"

# Snapshot and usage record types by their KIND tag.
RECORD_TYPES: dict[str, type] = {
    cls.KIND: cls
    for cls in (
        CPUStats,
        CPUUtilization,
        MemInfo,
        DiskStats,
        DiskUsage,
        NetDev,
        NetUsage,
        LoadAvg,
        Uptime,
        Kernel,
        OsRelease,
        CPUInfo,
        CPUFreq,
        Processors,
        NumaNodes,
    )
}

# Collectors whose results are differences between two snapshots.
DELTA_KINDS = frozenset({"cpu_util", "disk_usage", "network_usage"})


def _rooted(default: str, base: str, root: str) -> str:
    if root == base:
        return default
    return str(Path(root) / Path(default).relative_to(base))


def _builders(
    proc_root: str, etc_root: str, sys_root: str, clock_ticks: ClockTicks | None,
) -> dict[str, Callable[[], Collector]]:
    def proc(cls: type[BaseCollector]) -> str:
        return _rooted(cls.PROC_FILE, DEFAULT_PROC_ROOT, proc_root)

    def sysfs(path: str) -> str:
        return _rooted(path, DEFAULT_SYS_ROOT, sys_root)

    def cpu() -> CpuStatsCollector:
        return CpuStatsCollector(proc(CpuStatsCollector), clock_ticks=clock_ticks)

    return {
        "cpu": cpu,
        "cpu_util": lambda: CpuUtilCollector(cpu()),
        "cpuinfo": lambda: CpuInfoCollector(proc(CpuInfoCollector)),
        "cpufreq": lambda: CpuFreqCollector(proc(CpuFreqCollector)),
        "processors": lambda: ProcessorsCollector(proc(ProcessorsCollector), cpu_dir=sysfs(SYS_CPU_DIR)),
        "numa_nodes": lambda: NumaNodeCollector(sysfs(NumaNodeCollector.SYS_DIR)),
        "memory": lambda: MemInfoCollector(proc(MemInfoCollector)),
        "disk": lambda: DiskStatsCollector(proc(DiskStatsCollector)),
        "disk_usage": lambda: DiskUsageCollector(DiskStatsCollector(proc(DiskStatsCollector))),
        "network": lambda: NetDevCollector(proc(NetDevCollector)),
        "network_usage": lambda: NetUsageCollector(NetDevCollector(proc(NetDevCollector))),
        "loadavg": lambda: LoadAvgCollector(proc(LoadAvgCollector)),
        "uptime": lambda: UptimeCollector(proc(UptimeCollector)),
        "kernel": lambda: KernelCollector(proc(KernelCollector)),
        "os_release": lambda: OsReleaseCollector(
            _rooted(OsReleaseCollector.PROC_FILE, DEFAULT_ETC_ROOT, etc_root)
        ),
    }


COLLECTOR_KINDS: tuple[str, ...] = tuple(
    _builders(DEFAULT_PROC_ROOT, DEFAULT_ETC_ROOT, DEFAULT_SYS_ROOT, None)
)


def create_collector(
    kind: str,
    *,
    proc_root: str = DEFAULT_PROC_ROOT,
    etc_root: str = DEFAULT_ETC_ROOT,
    sys_root: str = DEFAULT_SYS_ROOT,
    clock_ticks: ClockTicks | None = None,
) -> Collector:
    """Build the collector registered under *kind*.

    Files are looked up below *proc_root* (*etc_root* for ``os_release``,
    *sys_root* for the sysfs parts of ``processors`` and ``numa_nodes``) so a
    directory of captured counter files can stand in for the live ones.
    Collectors that need the tick rate use *clock_ticks*, or
    :meth:`ClockTicks.shared` when it is None. Delta collectors take their
    warm-up snapshot here.

    Raises ``KeyError`` for an unknown kind and
    :class:`~proc_snap.errors.OpenError` when the file cannot be opened.
    """
    builders = _builders(proc_root, etc_root, sys_root, clock_ticks)
    try:
        build = builders[kind]
    except KeyError:
        raise KeyError(f"unknown collector kind {kind!r}; expected one of {', '.join(COLLECTOR_KINDS)}") from None
    return build()


__all__ = [
    "COLLECTOR_KINDS",
    "DELTA_KINDS",
    "RECORD_TYPES",
    "BaseCollector",
    "Collector",
    "DeltaCollector",
    "MetricSample",
    "Result",
    "create_collector",
    "flatten",
]

"""Memory collector: ``/proc/meminfo``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..errors import MalformedNumber, ParseError
from ..scanner import SPACE_COLON, Buffer, KeyTrie, LineScanner
from .base import BaseCollector, Result

PROC_FILE = "/proc/meminfo"

# File key -> MemInfo attribute.
MEMINFO_KEYS: dict[bytes, str] = {
    b"MemTotal": "mem_total",
    b"MemFree": "mem_free",
    b"MemAvailable": "mem_available",
    b"Buffers": "buffers",
    b"Cached": "cached",
    b"SwapCached": "swap_cached",
    b"Active": "active",
    b"Inactive": "inactive",
    b"Active(anon)": "active_anon",
    b"Inactive(anon)": "inactive_anon",
    b"Active(file)": "active_file",
    b"Inactive(file)": "inactive_file",
    b"Unevictable": "unevictable",
    b"Mlocked": "mlocked",
    b"SwapTotal": "swap_total",
    b"SwapFree": "swap_free",
    b"Dirty": "dirty",
    b"Writeback": "writeback",
    b"AnonPages": "anon_pages",
    b"Mapped": "mapped",
    b"Shmem": "shmem",
    b"Slab": "slab",
    b"SReclaimable": "s_reclaimable",
    b"SUnreclaim": "s_unreclaim",
    b"KernelStack": "kernel_stack",
    b"PageTables": "page_tables",
    b"NFS_Unstable": "nfs_unstable",
    b"Bounce": "bounce",
    b"WritebackTmp": "writeback_tmp",
    b"CommitLimit": "commit_limit",
    b"Committed_AS": "committed_as",
    b"VmallocTotal": "vmalloc_total",
    b"VmallocUsed": "vmalloc_used",
    b"VmallocChunk": "vmalloc_chunk",
    b"HardwareCorrupted": "hardware_corrupted",
    b"AnonHugePages": "anon_huge_pages",
    b"HugePages_Total": "huge_pages_total",
    b"HugePages_Free": "huge_pages_free",
    b"HugePages_Rsvd": "huge_pages_rsvd",
    b"HugePages_Surp": "huge_pages_surp",
    b"Hugepagesize": "huge_page_size",
    b"DirectMap4k": "direct_map_4k",
    b"DirectMap2M": "direct_map_2m",
    b"DirectMap1G": "direct_map_1g",
}

_KEYS: KeyTrie[str] = KeyTrie(MEMINFO_KEYS)


@dataclass
class MemInfo:
    """Parsed ``/proc/meminfo``; all values are gauges, sizes in kB.

    The HugePages_* values are page counts, as the kernel reports them.
    """

    KIND: ClassVar[str] = "meminfo"

    timestamp: int = 0
    mem_total: int = 0
    mem_free: int = 0
    mem_available: int = 0
    buffers: int = 0
    cached: int = 0
    swap_cached: int = 0
    active: int = 0
    inactive: int = 0
    active_anon: int = 0
    inactive_anon: int = 0
    active_file: int = 0
    inactive_file: int = 0
    unevictable: int = 0
    mlocked: int = 0
    swap_total: int = 0
    swap_free: int = 0
    dirty: int = 0
    writeback: int = 0
    anon_pages: int = 0
    mapped: int = 0
    shmem: int = 0
    slab: int = 0
    s_reclaimable: int = 0
    s_unreclaim: int = 0
    kernel_stack: int = 0
    page_tables: int = 0
    nfs_unstable: int = 0
    bounce: int = 0
    writeback_tmp: int = 0
    commit_limit: int = 0
    committed_as: int = 0
    vmalloc_total: int = 0
    vmalloc_used: int = 0
    vmalloc_chunk: int = 0
    hardware_corrupted: int = 0
    anon_huge_pages: int = 0
    huge_pages_total: int = 0
    huge_pages_free: int = 0
    huge_pages_rsvd: int = 0
    huge_pages_surp: int = 0
    huge_page_size: int = 0
    direct_map_4k: int = 0
    direct_map_2m: int = 0
    direct_map_1g: int = 0

    @property
    def used_percent(self) -> float:
        """Share of memory not available for new allocations, in percent."""
        if self.mem_total == 0:
            return 0.0
        return (self.mem_total - self.mem_available) / self.mem_total * 100.0


def parse_meminfo(buf: Buffer, timestamp: int) -> Result[MemInfo]:
    """Parse ``Key:   value [kB]`` lines; unknown keys are skipped."""
    info = MemInfo(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        tokens = scanner.fields(line, SPACE_COLON)
        key = next(tokens, None)
        if key is None:
            continue
        name = _KEYS.match(scanner, key)
        if name is None:
            continue
        value = next(tokens, None)
        if value is None:
            errors.append(ParseError(name, f"line {scanner.line_no}: missing value"))
            continue
        try:
            setattr(info, name, scanner.uint(value))
        except MalformedNumber as exc:
            errors.append(ParseError(name, exc))
    return Result(info, tuple(errors))


class MemInfoCollector(BaseCollector[MemInfo]):
    """Collects memory statistics from ``/proc/meminfo``."""

    kind = "memory"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[MemInfo]:
        return parse_meminfo(buf, timestamp)

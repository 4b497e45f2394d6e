"""Processor identity collectors: ``/proc/cpuinfo``.

The file is a sequence of ``key<TAB>: value`` blocks, one per logical
processor, each opened by a ``processor`` line. Keys contain spaces and share
long prefixes (``cpu family``, ``cpu MHz``, ``cpu cores``, ``cpuid level``), so
they are dispatched through a :class:`~proc_snap.scanner.KeyTrie` on the
trimmed key span.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar

from ..errors import MalformedNumber, ParseError
from ..scanner import Buffer, FieldToken, KeyTrie, LineScanner
from .base import BaseCollector, Result

PROC_FILE = "/proc/cpuinfo"

_COLON = 0x3A
_BLANK = frozenset(b" \t\r")

# value conversions
TEXT = "text"
UINT = "uint"
DECIMAL = "decimal"
WORDS = "words"
COMMA_LIST = "comma_list"

# File key -> (Processor attribute, conversion).
CPUINFO_KEYS: dict[bytes, tuple[str, str]] = {
    b"processor": ("processor", UINT),
    b"vendor_id": ("vendor_id", TEXT),
    b"cpu family": ("cpu_family", TEXT),
    b"model": ("model", TEXT),
    b"model name": ("model_name", TEXT),
    b"stepping": ("stepping", TEXT),
    b"microcode": ("microcode", TEXT),
    b"cpu MHz": ("cpu_mhz", DECIMAL),
    b"cache size": ("cache_size", TEXT),
    b"physical id": ("physical_id", UINT),
    b"siblings": ("siblings", UINT),
    b"core id": ("core_id", UINT),
    b"cpu cores": ("cpu_cores", UINT),
    b"apicid": ("apicid", UINT),
    b"initial apicid": ("initial_apicid", UINT),
    b"fpu": ("fpu", TEXT),
    b"fpu_exception": ("fpu_exception", TEXT),
    b"cpuid level": ("cpuid_level", TEXT),
    b"wp": ("wp", TEXT),
    b"flags": ("flags", WORDS),
    b"bugs": ("bugs", WORDS),
    b"bogomips": ("bogomips", DECIMAL),
    b"TLB size": ("tlb_size", TEXT),
    b"clflush size": ("clflush_size", UINT),
    b"cache_alignment": ("cache_alignment", UINT),
    b"address sizes": ("address_sizes", COMMA_LIST),
    b"power management": ("power_management", WORDS),
}

_FREQ_FIELDS = frozenset({"processor", "cpu_mhz", "physical_id", "core_id", "apicid"})

_KEYS: KeyTrie[tuple[str, str]] = KeyTrie(CPUINFO_KEYS)
_FREQ_KEYS: KeyTrie[tuple[str, str]] = KeyTrie(
    {key: spec for key, spec in CPUINFO_KEYS.items() if spec[0] in _FREQ_FIELDS}
)


@dataclass
class Processor:
    """One logical processor's block of ``/proc/cpuinfo``."""

    processor: int = 0
    vendor_id: str = ""
    cpu_family: str = ""
    model: str = ""
    model_name: str = ""
    stepping: str = ""
    microcode: str = ""
    cpu_mhz: float = 0.0
    cache_size: str = ""
    physical_id: int = 0
    siblings: int = 0
    core_id: int = 0
    cpu_cores: int = 0
    apicid: int = 0
    initial_apicid: int = 0
    fpu: str = ""
    fpu_exception: str = ""
    cpuid_level: str = ""
    wp: str = ""
    flags: list[str] = field(default_factory=list)
    bugs: list[str] = field(default_factory=list)
    bogomips: float = 0.0
    tlb_size: str = ""
    clflush_size: int = 0
    cache_alignment: int = 0
    address_sizes: list[str] = field(default_factory=list)
    power_management: list[str] = field(default_factory=list)


@dataclass
class CPUInfo:
    """Parsed ``/proc/cpuinfo``: one entry per logical processor.

    ``sockets`` counts the distinct ``physical id`` values seen; it is 0 on
    systems whose cpuinfo does not report one.
    """

    KIND: ClassVar[str] = "cpuinfo"

    timestamp: int = 0
    sockets: int = 0
    cpus: list[Processor] = field(default_factory=list)


@dataclass
class ProcessorFreq:
    processor: int = 0
    cpu_mhz: float = 0.0
    physical_id: int = 0
    core_id: int = 0
    apicid: int = 0


@dataclass
class CPUFreq:
    """Current clock speed of each logical processor, in MHz."""

    KIND: ClassVar[str] = "cpufreq"

    timestamp: int = 0
    cpus: list[ProcessorFreq] = field(default_factory=list)


def _strip(buf: Buffer, start: int, end: int) -> FieldToken:
    while start < end and buf[start] in _BLANK:
        start += 1
    while end > start and buf[end - 1] in _BLANK:
        end -= 1
    return FieldToken(start, end)


def key_values(scanner: LineScanner) -> Iterator[tuple[FieldToken, FieldToken]]:
    """Yield the trimmed ``(key, value)`` spans of every ``key : value`` line.

    Blank lines, lines without a colon and lines with an empty key are
    skipped. The value may be empty.
    """
    buf = scanner.buffer
    for line in scanner.lines():
        colon = -1
        for i in range(line.start, line.end):
            if buf[i] == _COLON:
                colon = i
                break
        if colon < 0:
            continue
        key = _strip(buf, line.start, colon)
        if key.width == 0:
            continue
        yield key, _strip(buf, colon + 1, line.end)


def _convert(scanner: LineScanner, tok: FieldToken, conversion: str) -> Any:
    if conversion == UINT:
        return scanner.uint(tok)
    if conversion == DECIMAL:
        return scanner.decimal(tok)
    text = scanner.text(tok)
    if conversion == WORDS:
        return text.split()
    if conversion == COMMA_LIST:
        return [part.strip() for part in text.split(",") if part.strip()]
    return text


def _parse_blocks(
    buf: Buffer, keys: KeyTrie[tuple[str, str]], new: Callable[[], Any],
) -> tuple[list[Any], list[int], list[Exception]]:
    """Split cpuinfo into per-processor entities built by *new*.

    Returns the entities, the distinct physical ids in order of appearance
    and the parse errors. Fields seen before the first ``processor`` line
    open an entity of their own.
    """
    entities: list[Any] = []
    physical_ids: list[int] = []
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    current = None
    for key, value in key_values(scanner):
        spec = keys.match(scanner, key)
        if spec is None:
            continue
        attr, conversion = spec
        if attr == "processor" or current is None:
            current = new()
            entities.append(current)
        try:
            setattr(current, attr, _convert(scanner, value, conversion))
        except MalformedNumber as exc:
            errors.append(ParseError(f"cpu{len(entities) - 1}.{attr}", exc))
            continue
        if attr == "physical_id" and current.physical_id not in physical_ids:
            physical_ids.append(current.physical_id)
    return entities, physical_ids, errors


def parse_cpuinfo(buf: Buffer, timestamp: int) -> Result[CPUInfo]:
    cpus, physical_ids, errors = _parse_blocks(buf, _KEYS, Processor)
    return Result(CPUInfo(timestamp=timestamp, sockets=len(physical_ids), cpus=cpus), tuple(errors))


def parse_cpufreq(buf: Buffer, timestamp: int) -> Result[CPUFreq]:
    """Only the ``processor``, ``cpu MHz`` and topology id keys are decoded."""
    cpus, _, errors = _parse_blocks(buf, _FREQ_KEYS, ProcessorFreq)
    return Result(CPUFreq(timestamp=timestamp, cpus=cpus), tuple(errors))


class CpuInfoCollector(BaseCollector[CPUInfo]):
    """Collects the per-processor identity block from ``/proc/cpuinfo``."""

    kind = "cpuinfo"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[CPUInfo]:
        return parse_cpuinfo(buf, timestamp)


class CpuFreqCollector(BaseCollector[CPUFreq]):
    kind = "cpufreq"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[CPUFreq]:
        return parse_cpufreq(buf, timestamp)

"""Network interface collector (``/proc/net/dev``) and network usage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from ..delta import counter_delta, match_entities, per_second
from ..errors import Indeterminate, MalformedNumber, ParseError
from ..scanner import SPACE_COLON, Buffer, LineScanner
from .base import BaseCollector, DeltaCollector, Result

PROC_FILE = "/proc/net/dev"

# Two table header lines precede the interfaces.
HEADER_LINES = 2

NET_COLUMNS = (
    "rx_bytes",
    "rx_packets",
    "rx_errs",
    "rx_drop",
    "rx_fifo",
    "rx_frame",
    "rx_compressed",
    "rx_multicast",
    "tx_bytes",
    "tx_packets",
    "tx_errs",
    "tx_drop",
    "tx_fifo",
    "tx_colls",
    "tx_carrier",
    "tx_compressed",
)


@dataclass
class Interface:
    name: str = ""
    rx_bytes: int = 0
    rx_packets: int = 0
    rx_errs: int = 0
    rx_drop: int = 0
    rx_fifo: int = 0
    rx_frame: int = 0
    rx_compressed: int = 0
    rx_multicast: int = 0
    tx_bytes: int = 0
    tx_packets: int = 0
    tx_errs: int = 0
    tx_drop: int = 0
    tx_fifo: int = 0
    tx_colls: int = 0
    tx_carrier: int = 0
    tx_compressed: int = 0


@dataclass
class NetDev:
    KIND: ClassVar[str] = "net_dev"

    timestamp: int = 0
    interfaces: list[Interface] = field(default_factory=list)


def parse_net_dev(buf: Buffer, timestamp: int) -> Result[NetDev]:
    dev = NetDev(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        if scanner.line_no <= HEADER_LINES:
            continue
        tokens = scanner.fields(line, SPACE_COLON)
        name = next(tokens, None)
        if name is None:
            continue
        iface = Interface(name=scanner.text(name))
        seen = 0
        for column, tok in zip(NET_COLUMNS, tokens):
            seen += 1
            try:
                setattr(iface, column, scanner.uint(tok))
            except MalformedNumber as exc:
                errors.append(ParseError(f"{iface.name}.{column}", exc))
        if seen < len(NET_COLUMNS):
            errors.append(ParseError(
                iface.name, f"line {scanner.line_no}: expected {len(NET_COLUMNS)} values, got {seen}",
            ))
        dev.interfaces.append(iface)
    return Result(dev, tuple(errors))


class NetDevCollector(BaseCollector[NetDev]):
    """Collects per-interface traffic counters from ``/proc/net/dev``."""

    kind = "network"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[NetDev]:
        return parse_net_dev(buf, timestamp)


@dataclass
class InterfaceUsage(Interface):
    """Counter deltas for one interface over the window, plus throughput."""

    rx_bytes_per_sec: float | None = None
    tx_bytes_per_sec: float | None = None


@dataclass
class NetUsage:
    KIND: ClassVar[str] = "net_usage"

    timestamp: int = 0
    time_delta: int = 0
    entity_set_changed: bool = False
    interfaces: list[InterfaceUsage] = field(default_factory=list)


def calculate_net_usage(prior: NetDev, current: NetDev) -> Result[NetUsage]:
    errors: list[Exception] = []
    time_delta = counter_delta("timestamp", prior.timestamp, current.timestamp)
    usage = NetUsage(timestamp=current.timestamp, time_delta=time_delta)
    pairs, changed = match_entities(prior.interfaces, current.interfaces, key="name")
    if changed is not None:
        usage.entity_set_changed = True
        errors.append(changed)
    if time_delta == 0:
        errors.append(Indeterminate(time_delta))

    for before, after in pairs:
        iface = InterfaceUsage(name=after.name)
        for column in NET_COLUMNS:
            setattr(iface, column, counter_delta(
                f"{after.name}.{column}", getattr(before, column), getattr(after, column),
            ))
        iface.rx_bytes_per_sec = per_second(iface.rx_bytes, time_delta)
        iface.tx_bytes_per_sec = per_second(iface.tx_bytes, time_delta)
        usage.interfaces.append(iface)
    return Result(usage, tuple(errors))


class NetUsageCollector(DeltaCollector[NetDev, NetUsage]):
    """Network traffic since the previous collect."""

    kind = "network_usage"

    def __init__(self, stats: NetDevCollector | None = None) -> None:
        super().__init__(stats or NetDevCollector())

    def calculate(self, prior: NetDev, current: NetDev) -> Result[NetUsage]:
        return calculate_net_usage(prior, current)

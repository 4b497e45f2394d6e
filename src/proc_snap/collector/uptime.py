"""Uptime collector: ``/proc/uptime``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..errors import MalformedNumber, ParseError
from ..scanner import Buffer, LineScanner
from .base import BaseCollector, Result

PROC_FILE = "/proc/uptime"


@dataclass
class Uptime:
    """Seconds since boot, and seconds all CPUs together spent idle."""

    KIND: ClassVar[str] = "uptime"

    timestamp: int = 0
    total: float = 0.0
    idle: float = 0.0


def parse_uptime(buf: Buffer, timestamp: int) -> Result[Uptime]:
    uptime = Uptime(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        tokens = scanner.split(line)
        if not tokens:
            continue
        for name, tok in zip(("total", "idle"), tokens):
            try:
                setattr(uptime, name, scanner.decimal(tok))
            except MalformedNumber as exc:
                errors.append(ParseError(name, exc))
        if len(tokens) < 2:
            errors.append(ParseError("idle", "missing value"))
        break
    else:
        errors.append(ParseError("total", "empty file"))
    return Result(uptime, tuple(errors))


class UptimeCollector(BaseCollector[Uptime]):
    kind = "uptime"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[Uptime]:
        return parse_uptime(buf, timestamp)

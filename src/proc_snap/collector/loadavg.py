"""Load average collector: ``/proc/loadavg``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..errors import MalformedNumber, ParseError
from ..scanner import SPACE_SLASH, Buffer, LineScanner
from .base import BaseCollector, Result

PROC_FILE = "/proc/loadavg"

# minute five fifteen running/total last_pid
_FIELDS = (
    ("minute", True),
    ("five", True),
    ("fifteen", True),
    ("running", False),
    ("total", False),
    ("last_pid", False),
)


@dataclass
class LoadAvg:
    """System load averages and scheduling entity counts (all gauges)."""

    KIND: ClassVar[str] = "loadavg"

    timestamp: int = 0
    minute: float = 0.0
    five: float = 0.0
    fifteen: float = 0.0
    running: int = 0
    total: int = 0
    last_pid: int = 0


def parse_loadavg(buf: Buffer, timestamp: int) -> Result[LoadAvg]:
    load = LoadAvg(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    for line in scanner.lines():
        tokens = scanner.split(line, SPACE_SLASH)
        if not tokens:
            continue
        for (name, is_decimal), tok in zip(_FIELDS, tokens):
            try:
                setattr(load, name, scanner.decimal(tok) if is_decimal else scanner.uint(tok))
            except MalformedNumber as exc:
                errors.append(ParseError(name, exc))
        if len(tokens) < len(_FIELDS):
            errors.append(ParseError(
                _FIELDS[len(tokens)][0], f"expected {len(_FIELDS)} values, got {len(tokens)}",
            ))
        break
    else:
        errors.append(ParseError("minute", "empty file"))
    return Result(load, tuple(errors))


class LoadAvgCollector(BaseCollector[LoadAvg]):
    kind = "loadavg"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[LoadAvg]:
        return parse_loadavg(buf, timestamp)

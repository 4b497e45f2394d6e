"""Kernel identity collector: ``/proc/version``.

The file is a single line such as::

    Linux version 6.5.0-14-generic (buildd@lcy02-amd64-110)
    (x86_64-linux-gnu-gcc-12 (Ubuntu 12.3.0-1ubuntu1~23.04) 12.3.0, GNU ld 2.40)
    #14-Ubuntu SMP PREEMPT_DYNAMIC Tue Nov 14 14:59:49 UTC 2023

The first parenthesised group is the build user, the second the toolchain
(with the distribution's compiler build nested inside it). What follows is the
build type up to the weekday that starts the compile date.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..errors import ParseError
from ..scanner import Buffer, FieldToken, KeyTrie, LineScanner
from .base import BaseCollector, Result

PROC_FILE = "/proc/version"

_OPEN = 0x28
_CLOSE = 0x29

_WEEKDAYS: KeyTrie[bool] = KeyTrie(
    {day: True for day in (b"Mon", b"Tue", b"Wed", b"Thu", b"Fri", b"Sat", b"Sun")}
)


@dataclass
class Kernel:
    KIND: ClassVar[str] = "kernel"

    timestamp: int = 0
    os: str = ""
    version: str = ""
    compile_user: str = ""
    gcc: str = ""
    os_gcc: str = ""
    type: str = ""
    compile_date: str = ""
    arch: str = ""


def _groups(buf: Buffer, start: int, end: int) -> list[FieldToken]:
    """Contents of the top-level parenthesised groups in ``buf[start:end]``."""
    groups = []
    depth = 0
    opened = start
    for i in range(start, end):
        b = buf[i]
        if b == _OPEN:
            if depth == 0:
                opened = i + 1
            depth += 1
        elif b == _CLOSE and depth:
            depth -= 1
            if depth == 0:
                groups.append(FieldToken(opened, i))
    return groups


def arch_of(version: str) -> str:
    """Suffix of a kernel release after its last ``-``, e.g. ``generic``."""
    _, sep, arch = version.rpartition("-")
    return arch if sep else ""


def _compiler(scanner: LineScanner, group: FieldToken) -> tuple[str, str]:
    buf = scanner.buffer
    nested = _groups(buf, group.start, group.end)
    os_gcc = scanner.text(nested[0]) if nested else ""
    # drop the nested groups (and their parens), keep the first toolchain entry
    parts = []
    pos = group.start
    for inner in nested:
        parts.append(scanner.text(FieldToken(pos, inner.start - 1)))
        pos = inner.end + 1
    parts.append(scanner.text(FieldToken(pos, group.end)))
    gcc = "".join(parts).split(",", 1)[0]
    return " ".join(gcc.split()), os_gcc


def parse_version(buf: Buffer, timestamp: int) -> Result[Kernel]:
    kernel = Kernel(timestamp=timestamp)
    errors: list[Exception] = []
    scanner = LineScanner(buf)
    line = next(scanner.lines(), None)
    if line is None:
        return Result(kernel, (ParseError("version", "empty file"),))

    groups = _groups(buf, line.start, line.end)
    head_end = groups[0].start - 1 if groups else line.end
    head = scanner.split(FieldToken(line.start, head_end))
    if head:
        kernel.os = scanner.text(head[0]).lower()
    if len(head) < 2:
        errors.append(ParseError("version", f"line {scanner.line_no}: missing kernel release"))
    else:
        kernel.version = scanner.text(head[-1])
        kernel.arch = arch_of(kernel.version)

    if not groups:
        errors.append(ParseError("compile_user", "missing build user"))
        return Result(kernel, tuple(errors))
    kernel.compile_user = scanner.text(groups[0])
    if len(groups) < 2:
        errors.append(ParseError("gcc", "missing compiler"))
        return Result(kernel, tuple(errors))
    kernel.gcc, kernel.os_gcc = _compiler(scanner, groups[1])

    rest = FieldToken(groups[1].end + 1, line.end)
    tail = scanner.split(rest)
    date_at = next((i for i, tok in enumerate(tail) if _WEEKDAYS.match(scanner, tok)), len(tail))
    if date_at < len(tail):
        if date_at:
            kernel.type = scanner.text(FieldToken(tail[0].start, tail[date_at - 1].end))
        kernel.compile_date = scanner.text(FieldToken(tail[date_at].start, tail[-1].end))
        return Result(kernel, tuple(errors))

    # Debian: "#1 SMP Debian 4.19.208-1 (2021-09-29)"
    dated = _groups(buf, rest.start, rest.end)
    if dated:
        kernel.compile_date = scanner.text(dated[-1])
        rest = FieldToken(rest.start, dated[-1].start - 1)
    else:
        errors.append(ParseError("compile_date", "missing compile date"))
    kernel.type = " ".join(scanner.text(tok) for tok in scanner.fields(rest))
    return Result(kernel, tuple(errors))


class KernelCollector(BaseCollector[Kernel]):
    """Reads the running kernel's identity from ``/proc/version``."""

    kind = "kernel"
    PROC_FILE = PROC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[Kernel]:
        return parse_version(buf, timestamp)

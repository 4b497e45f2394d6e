"""Operating system identity collector: ``/etc/os-release``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..scanner import Buffer, FieldToken, KeyTrie, LineScanner
from .base import BaseCollector, Result

ETC_FILE = "/etc/os-release"

_EQUALS = 0x3D
_HASH = 0x23
_QUOTES = frozenset(b"\"'")
_BLANK = frozenset(b" \t\r")

_KEYS: KeyTrie[str] = KeyTrie(
    {
        b"NAME": "name",
        b"ID": "id",
        b"ID_LIKE": "id_like",
        b"PRETTY_NAME": "pretty_name",
        b"VERSION": "version",
        b"VERSION_ID": "version_id",
        b"HOME_URL": "home_url",
        b"BUG_REPORT_URL": "bug_report_url",
    }
)


@dataclass
class OsRelease:
    KIND: ClassVar[str] = "os_release"

    timestamp: int = 0
    name: str = ""
    id: str = ""
    id_like: str = ""
    pretty_name: str = ""
    version: str = ""
    version_id: str = ""
    home_url: str = ""
    bug_report_url: str = ""


def _trim(buf: Buffer, start: int, end: int) -> FieldToken:
    while start < end and buf[start] in _BLANK:
        start += 1
    while end > start and buf[end - 1] in _BLANK:
        end -= 1
    if end - start >= 2 and buf[start] in _QUOTES and buf[end - 1] == buf[start]:
        start += 1
        end -= 1
    return FieldToken(start, end)


def parse_os_release(buf: Buffer, timestamp: int) -> Result[OsRelease]:
    """Parse ``KEY=value`` lines; quotes around values are removed.

    Comments, blank lines, lines without ``=`` and unknown keys are skipped.
    """
    release = OsRelease(timestamp=timestamp)
    scanner = LineScanner(buf)
    for line in scanner.lines():
        key = _trim(buf, line.start, line.end)
        if key.width == 0 or buf[key.start] == _HASH:
            continue
        eq = next((i for i in range(key.start, key.end) if buf[i] == _EQUALS), -1)
        if eq < 0:
            continue
        name = _KEYS.match(scanner, _trim(buf, key.start, eq))
        if name is None:
            continue
        setattr(release, name, scanner.text(_trim(buf, eq + 1, line.end)))
    return Result(release)


class OsReleaseCollector(BaseCollector[OsRelease]):
    """Reads the distribution identity from ``/etc/os-release``."""

    kind = "os_release"
    PROC_FILE = ETC_FILE

    def parse(self, buf: Buffer, timestamp: int) -> Result[OsRelease]:
        return parse_os_release(buf, timestamp)

"""Zero-copy tokenizing of counter-file buffers.

A :class:`LineScanner` walks a byte buffer and hands out :class:`FieldToken`
offset pairs instead of slices. Tokens point into the caller's buffer and are
only meaningful until that buffer is refilled; anything a parser wants to keep
(device names, CPU ids) must be copied out with :meth:`LineScanner.text`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Generic, NamedTuple, TypeVar, Union

from .errors import MalformedNumber

Buffer = Union[bytes, bytearray, memoryview]
T = TypeVar("T")

NEWLINE = 0x0A
_DOT = 0x2E
_ZERO = 0x30
UINT64_MAX = (1 << 64) - 1


def delimiters(chars: bytes) -> frozenset[int]:
    """Build a delimiter set from the given bytes."""
    return frozenset(chars)


SPACE = delimiters(b" \t\n")
SPACE_COLON = delimiters(b" \t\n:")
SPACE_SLASH = delimiters(b" \t\n/")


class FieldToken(NamedTuple):
    """Half-open ``[start, end)`` span of a buffer."""

    start: int
    end: int

    @property
    def width(self) -> int:
        return self.end - self.start


def parse_uint(buf: Buffer, start: int, end: int) -> int:
    """Decode an unsigned decimal integer from ``buf[start:end]``.

    Only ASCII digits are accepted: no sign, no whitespace, no exponent.
    Values that do not fit in 64 bits are rejected as well.
    """
    if start >= end:
        raise MalformedNumber(b"", "empty field")
    n = 0
    for i in range(start, end):
        d = buf[i] - _ZERO
        if d < 0 or d > 9:
            raise MalformedNumber(bytes(buf[start:end]))
        n = n * 10 + d
    if n > UINT64_MAX:
        raise MalformedNumber(bytes(buf[start:end]), "value out of range")
    return n


def parse_decimal(buf: Buffer, start: int, end: int) -> float:
    """Decode a fixed-point ``digits[.digits]`` value from ``buf[start:end]``."""
    whole = 0
    scale = 1
    digits = 0
    seen_dot = False
    for i in range(start, end):
        b = buf[i]
        if b == _DOT and not seen_dot:
            seen_dot = True
            continue
        d = b - _ZERO
        if d < 0 or d > 9:
            raise MalformedNumber(bytes(buf[start:end]))
        whole = whole * 10 + d
        digits += 1
        if seen_dot:
            scale *= 10
    if digits == 0:
        raise MalformedNumber(bytes(buf[start:end]), "no digits")
    # one correctly rounded division, same result as float() on the text
    return whole / scale


class LineScanner:
    """Cursor over the lines and fields of one buffer.

    :meth:`lines` can be restarted as often as needed; it always begins at
    offset 0. ``line_no`` is the 1-based number of the line last yielded.
    """

    def __init__(self, buf: Buffer) -> None:
        self._buf = buf
        self.line_no = 0

    @property
    def buffer(self) -> Buffer:
        return self._buf

    def lines(self) -> Iterator[FieldToken]:
        """Yield each line's span, newline excluded.

        A final line without a trailing newline is still yielded.
        """
        buf = self._buf
        n = len(buf)
        self.line_no = 0
        start = 0
        for i in range(n):
            if buf[i] == NEWLINE:
                self.line_no += 1
                yield FieldToken(start, i)
                start = i + 1
        if start < n:
            self.line_no += 1
            yield FieldToken(start, n)

    def fields(self, line: FieldToken, delims: frozenset[int] = SPACE) -> Iterator[FieldToken]:
        """Yield the non-empty fields of *line*; runs of delimiters collapse."""
        buf = self._buf
        start = -1
        for i in range(line.start, line.end):
            if buf[i] in delims:
                if start >= 0:
                    yield FieldToken(start, i)
                    start = -1
            elif start < 0:
                start = i
        if start >= 0:
            yield FieldToken(start, line.end)

    def split(self, line: FieldToken, delims: frozenset[int] = SPACE) -> list[FieldToken]:
        return list(self.fields(line, delims))

    def uint(self, tok: FieldToken) -> int:
        return parse_uint(self._buf, tok.start, tok.end)

    def decimal(self, tok: FieldToken) -> float:
        return parse_decimal(self._buf, tok.start, tok.end)

    def text(self, tok: FieldToken) -> str:
        """Copy the token out of the buffer as a string."""
        return str(self._buf[tok.start:tok.end], "utf-8", "replace")

    def byte_at(self, tok: FieldToken, offset: int) -> int:
        """Byte at *offset* within *tok*, or -1 when past its end."""
        i = tok.start + offset
        return self._buf[i] if i < tok.end else -1

    def startswith(self, tok: FieldToken, prefix: bytes) -> bool:
        if tok.width < len(prefix):
            return False
        buf = self._buf
        start = tok.start
        for i, b in enumerate(prefix):
            if buf[start + i] != b:
                return False
        return True


_LEAF = -1
_PREFIX = -2


class KeyTrie(Generic[T]):
    """Byte trie over a small, fixed key vocabulary.

    Lookups walk the key bytes in place, so dispatching a field never builds
    a key string. *exact* keys must match the whole token; *prefixes* match
    any token that starts with them (``cpu`` covers ``cpu0``, ``cpu17``...).
    An exact match wins over a prefix match.
    """

    def __init__(self, exact: Mapping[bytes, T], prefixes: Mapping[bytes, T] | None = None) -> None:
        self._root: dict[int, dict] = {}
        for key, value in exact.items():
            self._insert(key)[_LEAF] = value
        for key, value in (prefixes or {}).items():
            self._insert(key)[_PREFIX] = value

    def _insert(self, key: bytes) -> dict:
        node = self._root
        for b in key:
            node = node.setdefault(b, {})
        return node

    def lookup(self, buf: Buffer, start: int, end: int) -> T | None:
        node = self._root
        fallback = node.get(_PREFIX)
        for i in range(start, end):
            node = node.get(buf[i])
            if node is None:
                return fallback
            if _PREFIX in node:
                fallback = node[_PREFIX]
        return node.get(_LEAF, fallback)

    def match(self, scanner: LineScanner, tok: FieldToken) -> T | None:
        return self.lookup(scanner.buffer, tok.start, tok.end)

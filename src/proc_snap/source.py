"""Re-readable handle on a single counter file."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from .errors import OpenError, ReadError

logger = logging.getLogger(__name__)

# Most counter files fit in one page; diskstats and stat on large hosts don't.
_INITIAL_SIZE = 4096


class Source:
    """Holds an open, unbuffered file and a reusable read buffer.

    Pseudo-files report a size of zero, so the length is rediscovered on every
    read by reading until EOF. The view returned by :meth:`read_all` stays
    valid until the next call.
    """

    def __init__(self, path: str | Path, fh: io.RawIOBase) -> None:
        self._path = str(path)
        self._fh: io.RawIOBase | None = fh
        self._buf = bytearray(_INITIAL_SIZE)

    @classmethod
    def open(cls, path: str | Path) -> Source:
        """Open *path* for repeated reads. Raises :class:`OpenError`."""
        try:
            fh = open(path, "rb", buffering=0)  # noqa: SIM115
        except OSError as exc:
            raise OpenError(str(path), exc) from exc
        logger.debug("Opened counter file %s", path)
        return cls(path, fh)

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._fh is None

    def _handle(self) -> io.RawIOBase:
        if self._fh is None:
            raise ReadError(self._path, ValueError("source is closed"))
        return self._fh

    def reset(self) -> None:
        """Rewind to offset 0 without reopening the file."""
        fh = self._handle()
        try:
            fh.seek(0)
        except OSError as exc:
            raise ReadError(self._path, exc) from exc

    def read_all(self) -> memoryview:
        """Read from the current offset to EOF into the reusable buffer."""
        fh = self._handle()
        n = 0
        try:
            while True:
                if n == len(self._buf):
                    # a fresh array, so views handed out earlier stay valid
                    grown = bytearray(len(self._buf) * 2)
                    grown[:n] = self._buf
                    self._buf = grown
                got = fh.readinto(memoryview(self._buf)[n:])
                if not got:
                    break
                n += got
        except OSError as exc:
            raise ReadError(self._path, exc) from exc
        return memoryview(self._buf)[:n]

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> Source:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Source({self._path!r})"

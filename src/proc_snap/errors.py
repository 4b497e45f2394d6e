"""Exception hierarchy for proc_snap.

Failures fall in three groups:

* construction errors (:class:`OpenError`) are raised immediately,
* sample failures (:class:`ReadError`, :class:`ParseError`) make a sampler
  skip the tick but never stop it,
* delta conditions (:class:`EntitySetChanged`, :class:`Indeterminate`) flag a
  usage record that is still published.
"""

from __future__ import annotations


class ProcSnapError(Exception):
    """Base class for all proc_snap errors."""


class OpenError(ProcSnapError):
    """A counter file could not be opened."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"open {path}: {cause}")


class SampleFailure(ProcSnapError):
    """A single read or parse went wrong; the next one may succeed."""


class ReadError(SampleFailure):
    """An I/O error happened while reading a counter file."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"read {path}: {cause}")


class MalformedNumber(ValueError):
    """A numeric span contained something other than decimal digits."""

    def __init__(self, text: bytes, reason: str = "invalid syntax") -> None:
        self.text = text
        self.reason = reason
        super().__init__(f"malformed number {text!r}: {reason}")


class ParseError(SampleFailure):
    """A field of a counter file could not be decoded."""

    def __init__(self, field: str, cause: BaseException | str) -> None:
        self.field = field
        self.cause = cause
        super().__init__(f"parse {field}: {cause}")


class DeltaCondition(ProcSnapError):
    """A usage record was computed but is not fully trustworthy."""


class EntitySetChanged(DeltaCondition):
    """The number of entities differs between the two snapshots."""

    def __init__(self, prior_count: int, current_count: int) -> None:
        self.prior_count = prior_count
        self.current_count = current_count
        super().__init__(
            f"entity set changed: {prior_count} -> {current_count} entities; "
            "only entities present in both snapshots were compared"
        )


class Indeterminate(DeltaCondition):
    """No time elapsed between the snapshots, so rates are unavailable."""

    def __init__(self, time_delta: int = 0) -> None:
        self.time_delta = time_delta
        super().__init__(f"time delta is {time_delta}ns; ratios are unavailable")


class CounterRegression(ProcSnapError):
    """A monotonically increasing counter went backwards."""

    def __init__(self, field: str, prior: int, current: int) -> None:
        self.field = field
        self.prior = prior
        self.current = current
        super().__init__(f"counter {field} went backwards: {prior} -> {current}")


class ChannelClosed(ProcSnapError):
    """Send or receive on a closed channel."""

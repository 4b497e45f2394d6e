"""Bounded, closable channel between a sampler thread and its consumers."""

from __future__ import annotations

import queue
import threading
import time
from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

from .errors import ChannelClosed

T = TypeVar("T")


class Channel(Generic[T]):
    """FIFO with a fixed capacity that can be closed from either side.

    Items are delivered in the order they were sent. Once closed, sends fail
    with :class:`ChannelClosed`; receives drain what is buffered and then fail
    the same way. Iterating yields items until the channel is closed and empty.
    """

    def __init__(self, capacity: int = 1) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def send(self, item: T, cancel: threading.Event | None = None, poll: float = 0.05) -> bool:
        """Put *item*, waiting while the channel is full.

        Returns False, without sending, if *cancel* gets set while waiting.
        """
        with self._cond:
            while len(self._items) >= self.capacity:
                if self._closed:
                    raise ChannelClosed("send on closed channel")
                if cancel is not None and cancel.is_set():
                    return False
                self._cond.wait(poll if cancel is not None else None)
            if self._closed:
                raise ChannelClosed("send on closed channel")
            self._items.append(item)
            self._cond.notify_all()
            return True

    def receive(self, timeout: float | None = None) -> T:
        """Take the oldest item.

        Raises ``queue.Empty`` when *timeout* expires first and
        :class:`ChannelClosed` once the channel is closed and drained.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._items:
                if self._closed:
                    raise ChannelClosed("receive on closed channel")
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Empty
                self._cond.wait(remaining)
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.receive()
            except ChannelClosed:
                return

"""Base interface for snapshot codecs."""

from __future__ import annotations

import abc
from typing import Any


class Codec(abc.ABC):
    """Turns snapshot and usage records into bytes and back."""

    @abc.abstractmethod
    def serialize(self, record: Any) -> bytes:
        """Encode one record."""

    @abc.abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Decode bytes produced by :meth:`serialize`."""

"""Base interface for result exporters."""

from __future__ import annotations

import abc

from ..collector.base import Result


class BaseExporter(abc.ABC):
    """Abstract base for exporters that receive sampled results."""

    @abc.abstractmethod
    def export(self, kind: str, result: Result) -> None:
        """Export the result published by the collector named *kind*."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Flush and release resources."""

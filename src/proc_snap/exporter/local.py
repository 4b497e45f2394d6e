"""Local file exporter – writes snapshots to JSONL files."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ..codec import JSONCodec
from ..collector.base import Result
from ..config import LocalExporterConfig
from .base import BaseExporter

logger = logging.getLogger(__name__)


class LocalExporter(BaseExporter):
    """Writes tagged-JSON records to JSONL files on disk.

    One file per day is created inside the configured *output_dir*. Each line
    carries the collector name, the encoded record and the messages of any
    delta conditions attached to it::

        {"collector": "cpu_util", "kind": "cpu_utilization", "data": {...}, "errors": []}
    """

    def __init__(self, config: LocalExporterConfig, codec: JSONCodec | None = None) -> None:
        if config.format != "jsonl":
            raise ValueError(f"unsupported local exporter format {config.format!r}")
        self._config = config
        self._codec = codec or JSONCodec()
        self._output_dir = Path(config.output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._fh = None
        self._current_date: str | None = None
        logger.info("LocalExporter initialized → %s", self._output_dir)

    @property
    def current_file(self) -> Path | None:
        if self._current_date is None:
            return None
        return self._output_dir / f"snapshots-{self._current_date}.jsonl"

    def _ensure_file(self) -> None:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if self._current_date != today or self._fh is None:
            if self._fh is not None:
                self._fh.close()
            filepath = self._output_dir / f"snapshots-{today}.jsonl"
            self._fh = open(filepath, "a", encoding="utf-8")  # noqa: SIM115
            self._current_date = today

    def export(self, kind: str, result: Result) -> None:
        if result.value is None:
            return
        self._ensure_file()
        assert self._fh is not None
        record = {"collector": kind, **self._codec.encode(result.value)}
        record["errors"] = [str(e) for e in result.errors]
        self._fh.write(json.dumps(record) + "\n")
        self._fh.flush()

    def shutdown(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        logger.info("LocalExporter shut down")

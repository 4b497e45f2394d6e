"""Tests for the local JSONL and OpenTelemetry exporters."""

import json
import tempfile
from pathlib import Path

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from proc_snap.codec import JSONCodec
from proc_snap.collector.base import Result
from proc_snap.collector.disk import DeviceUsage, DiskUsage
from proc_snap.collector.loadavg import LoadAvg
from proc_snap.config import LocalExporterConfig, OtelExporterConfig
from proc_snap.errors import Indeterminate, ReadError
from proc_snap.exporter.local import LocalExporter
from proc_snap.exporter.otel import OtelExporter


class TestLocalExporter:
    def test_writes_tagged_lines(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            exporter = LocalExporter(LocalExporterConfig(output_dir=tmpdir))
            exporter.export("loadavg", Result(LoadAvg(timestamp=1, minute=0.5)))
            exporter.export("loadavg", Result(LoadAvg(timestamp=2), (Indeterminate(0),)))
            exporter.shutdown()

            files = list(Path(tmpdir).glob("snapshots-*.jsonl"))
            assert len(files) == 1
            lines = files[0].read_text().splitlines()
            assert len(lines) == 2
            first, second = (json.loads(line) for line in lines)
            assert first["collector"] == "loadavg"
            assert first["kind"] == "loadavg"
            assert first["data"]["minute"] == 0.5
            assert first["errors"] == []
            assert len(second["errors"]) == 1

    def test_lines_decode_back(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            exporter = LocalExporter(LocalExporterConfig(output_dir=tmpdir))
            record = LoadAvg(timestamp=3, five=1.25, last_pid=42)
            exporter.export("loadavg", Result(record))
            path = exporter.current_file
            exporter.shutdown()
            line = json.loads(path.read_text())
            assert JSONCodec().decode(line) == record

    def test_skips_empty_results(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            exporter = LocalExporter(LocalExporterConfig(output_dir=tmpdir))
            exporter.export("loadavg", Result(None, (ReadError("/proc/loadavg", OSError("gone")),)))
            exporter.shutdown()
            assert list(Path(tmpdir).glob("*.jsonl")) == []

    def test_rejects_unknown_format(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError):
                LocalExporter(LocalExporterConfig(output_dir=tmpdir, format="csv"))


class TestOtelExporter:
    def _metrics(self, reader):
        data = reader.get_metrics_data()
        points = {}
        for rm in data.resource_metrics:
            for sm in rm.scope_metrics:
                for metric in sm.metrics:
                    for point in metric.data.data_points:
                        points[(metric.name, tuple(sorted(point.attributes.items())))] = point.value
        return points

    def test_records_gauges(self):
        reader = InMemoryMetricReader()
        exporter = OtelExporter(OtelExporterConfig(), metric_readers=[reader])
        try:
            exporter.export("loadavg", Result(LoadAvg(timestamp=1, minute=0.75, total=80)))
            points = self._metrics(reader)
            assert points[("proc_snap.loadavg.minute", ())] == 0.75
            assert points[("proc_snap.loadavg.total", ())] == 80.0
        finally:
            exporter.shutdown()

    def test_entity_attributes(self):
        reader = InMemoryMetricReader()
        exporter = OtelExporter(OtelExporterConfig(), metric_readers=[reader])
        try:
            usage = DiskUsage(
                time_delta=1_000_000_000,
                devices=[DeviceUsage(name="sda", read_bytes_per_sec=512.0), DeviceUsage(name="sdb")],
            )
            exporter.export("disk_usage", Result(usage))
            points = self._metrics(reader)
            key = ("proc_snap.disk_usage.devices.read_bytes_per_sec", (("entity", "sda"),))
            assert points[key] == 512.0
            # unavailable rates are not reported
            assert ("proc_snap.disk_usage.devices.read_bytes_per_sec", (("entity", "sdb"),)) not in points
        finally:
            exporter.shutdown()

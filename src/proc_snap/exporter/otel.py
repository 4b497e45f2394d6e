"""OpenTelemetry exporter – pushes counter-file metrics via OTLP/HTTP."""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME

from ..collector.base import Result, flatten
from ..config import OtelExporterConfig
from .base import BaseExporter

logger = logging.getLogger(__name__)


class OtelExporter(BaseExporter):
    """Exports snapshot and usage records to an OpenTelemetry endpoint.

    Each call to :meth:`export` flattens the record into metric samples and
    records them as gauge observations; the SDK's
    ``PeriodicExportingMetricReader`` flushes them to the configured OTLP/HTTP
    endpoint. Passing *metric_readers* replaces the OTLP reader.
    """

    def __init__(self, config: OtelExporterConfig, metric_readers: list[MetricReader] | None = None) -> None:
        self._config = config
        resource = Resource.create({SERVICE_NAME: config.service_name})

        if metric_readers is None:
            exporter_kwargs: dict[str, Any] = {
                "endpoint": f"{config.endpoint.rstrip('/')}/v1/metrics",
            }
            if config.headers:
                exporter_kwargs["headers"] = config.headers
            metric_readers = [
                PeriodicExportingMetricReader(
                    OTLPMetricExporter(**exporter_kwargs),
                    export_interval_millis=config.export_interval_ms,
                )
            ]
        self._provider = MeterProvider(resource=resource, metric_readers=metric_readers)
        self._meter = self._provider.get_meter("proc_snap")
        self._gauges: dict[str, Any] = {}

        logger.info(
            "OtelExporter initialized → %s (service=%s)",
            config.endpoint,
            config.service_name,
        )

    def _get_gauge(self, name: str, unit: str, description: str) -> Any:
        if name not in self._gauges:
            self._gauges[name] = self._meter.create_gauge(
                name=name,
                unit=unit,
                description=description,
            )
        return self._gauges[name]

    def export(self, kind: str, result: Result) -> None:
        if result.value is None:
            return
        for s in flatten(f"proc_snap.{kind}", result.value):
            gauge = self._get_gauge(s.name, s.unit, s.description)
            gauge.set(s.value, attributes=s.labels)

    def shutdown(self) -> None:
        self._provider.shutdown()
        logger.info("OtelExporter shut down")

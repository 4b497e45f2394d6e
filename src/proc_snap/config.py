"""Configuration loading and validation for proc_snap."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class OtelExporterConfig:
    """OpenTelemetry exporter settings."""

    endpoint: str = "http://localhost:4318"
    service_name: str = "proc-snap"
    headers: dict[str, str] = field(default_factory=dict)
    export_interval_ms: int = 10000


@dataclass
class SamplerConfig:
    """Which counter files to sample, and how often."""

    enabled: bool = True
    interval_seconds: float = 2.0
    collectors: list[str] = field(
        default_factory=lambda: ["cpu_util", "memory", "disk_usage", "network_usage", "loadavg"]
    )
    proc_root: str = "/proc"
    etc_root: str = "/etc"
    sys_root: str = "/sys"


@dataclass
class LocalExporterConfig:
    """Local file exporter settings."""

    enabled: bool = True
    output_dir: str = "./snap_data"
    format: str = "jsonl"


@dataclass
class ProcSnapConfig:
    """Top-level proc_snap configuration."""

    mode: str = "local"
    log_level: str = "INFO"
    otel: OtelExporterConfig = field(default_factory=OtelExporterConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    local_exporter: LocalExporterConfig = field(default_factory=LocalExporterConfig)


def _merge_dict(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* into *target*."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_dict(target[key], value)
        else:
            target[key] = value
    return target


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using PROC_SNAP_ prefix."""
    env_map = {
        "PROC_SNAP_MODE": ("mode",),
        "PROC_SNAP_LOG_LEVEL": ("log_level",),
        "PROC_SNAP_OTEL_ENDPOINT": ("otel", "endpoint"),
        "PROC_SNAP_OTEL_SERVICE_NAME": ("otel", "service_name"),
        "PROC_SNAP_SAMPLER_INTERVAL": ("sampler", "interval_seconds"),
        "PROC_SNAP_SAMPLER_COLLECTORS": ("sampler", "collectors"),
        "PROC_SNAP_PROC_ROOT": ("sampler", "proc_root"),
        "PROC_SNAP_ETC_ROOT": ("sampler", "etc_root"),
        "PROC_SNAP_SYS_ROOT": ("sampler", "sys_root"),
        "PROC_SNAP_LOCAL_OUTPUT_DIR": ("local_exporter", "output_dir"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            final_key = path[-1]
            # coerce non-string values
            if final_key == "interval_seconds":
                obj[final_key] = float(value)
            elif final_key == "collectors":
                obj[final_key] = [kind.strip() for kind in value.split(",") if kind.strip()]
            else:
                obj[final_key] = value
    return data


def _dict_to_config(data: dict[str, Any]) -> ProcSnapConfig:
    """Convert a raw dictionary to a ProcSnapConfig dataclass."""
    otel_data = data.get("otel", {})
    sampler_data = data.get("sampler", {})
    local_data = data.get("local_exporter", {})

    return ProcSnapConfig(
        mode=data.get("mode", "local"),
        log_level=str(data.get("log_level", "INFO")).upper(),
        otel=OtelExporterConfig(**{
            k: v for k, v in otel_data.items()
            if k in OtelExporterConfig.__dataclass_fields__
        }),
        sampler=SamplerConfig(**{
            k: v for k, v in sampler_data.items()
            if k in SamplerConfig.__dataclass_fields__
        }),
        local_exporter=LocalExporterConfig(**{
            k: v for k, v in local_data.items()
            if k in LocalExporterConfig.__dataclass_fields__
        }),
    )


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> ProcSnapConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``proc_snap.yaml`` in the current directory if *path* is None.
    *overrides* (for instance from command-line flags) are merged last.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("proc_snap.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    if overrides:
        data = _merge_dict(data, overrides)
    return _dict_to_config(data)

"""Tests for the configuration module."""

import os
import tempfile

import yaml

from proc_snap.config import (
    ProcSnapConfig,
    load_config,
)


def test_load_config_defaults():
    """Loading from a non-existent file returns defaults."""
    cfg = load_config("/tmp/nonexistent_proc_snap.yaml")
    assert isinstance(cfg, ProcSnapConfig)
    assert cfg.mode == "local"
    assert cfg.log_level == "INFO"
    assert cfg.sampler.enabled is True
    assert cfg.sampler.interval_seconds == 2.0
    assert "cpu_util" in cfg.sampler.collectors
    assert cfg.sampler.proc_root == "/proc"
    assert cfg.sampler.etc_root == "/etc"
    assert cfg.sampler.sys_root == "/sys"
    assert cfg.otel.endpoint == "http://localhost:4318"
    assert cfg.local_exporter.format == "jsonl"


def test_load_config_from_yaml():
    """Loading from a YAML file populates values."""
    data = {
        "mode": "online",
        "log_level": "debug",
        "sampler": {
            "interval_seconds": 5.0,
            "collectors": ["memory", "loadavg"],
            "proc_root": "/host/proc",
            "unknown_key": 1,
        },
        "otel": {
            "endpoint": "http://otel:4318",
            "service_name": "my-service",
        },
    }
    with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as fh:
        yaml.dump(data, fh)
        path = fh.name

    try:
        cfg = load_config(path)
        assert cfg.mode == "online"
        assert cfg.log_level == "DEBUG"
        assert cfg.sampler.interval_seconds == 5.0
        assert cfg.sampler.collectors == ["memory", "loadavg"]
        assert cfg.sampler.proc_root == "/host/proc"
        assert cfg.otel.endpoint == "http://otel:4318"
        assert cfg.otel.service_name == "my-service"
    finally:
        os.unlink(path)


def test_env_override():
    """Environment variables override YAML values."""
    data = {"mode": "local", "sampler": {"interval_seconds": 1.0}}
    with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as fh:
        yaml.dump(data, fh)
        path = fh.name

    try:
        os.environ["PROC_SNAP_MODE"] = "online"
        os.environ["PROC_SNAP_OTEL_ENDPOINT"] = "http://env-otel:4318"
        os.environ["PROC_SNAP_SAMPLER_INTERVAL"] = "0.5"
        os.environ["PROC_SNAP_SAMPLER_COLLECTORS"] = "cpu, uptime,"
        cfg = load_config(path)
        assert cfg.mode == "online"
        assert cfg.otel.endpoint == "http://env-otel:4318"
        assert cfg.sampler.interval_seconds == 0.5
        assert cfg.sampler.collectors == ["cpu", "uptime"]
    finally:
        for key in (
            "PROC_SNAP_MODE",
            "PROC_SNAP_OTEL_ENDPOINT",
            "PROC_SNAP_SAMPLER_INTERVAL",
            "PROC_SNAP_SAMPLER_COLLECTORS",
        ):
            os.environ.pop(key, None)
        os.unlink(path)


def test_overrides_win():
    """Explicit overrides (command-line flags) are merged last."""
    cfg = load_config(
        "/tmp/nonexistent_proc_snap.yaml",
        overrides={"sampler": {"interval_seconds": 9.0}},
    )
    assert cfg.sampler.interval_seconds == 9.0
    assert cfg.sampler.enabled is True

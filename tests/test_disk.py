"""Tests for /proc/diskstats parsing and disk usage."""

import pytest

from proc_snap.collector.disk import (
    DiskStatsCollector,
    DiskUsageCollector,
    calculate_disk_usage,
    parse_diskstats,
)
from proc_snap.errors import CounterRegression, EntitySetChanged, Indeterminate

from conftest import DISKSTATS

SECOND = 1_000_000_000


def _disks(text, timestamp=0):
    result = parse_diskstats(text.encode(), timestamp)
    assert result.ok, result.errors
    return result.value


def test_parse_diskstats():
    stats = _disks(DISKSTATS)
    assert [d.name for d in stats.devices] == ["sda", "sda1"]
    sda = stats.devices[0]
    assert (sda.major, sda.minor) == (8, 0)
    assert sda.reads_completed == 3000
    assert sda.read_sectors == 24000
    assert sda.written_sectors == 16000
    assert sda.io_in_progress == 2
    assert sda.weighted_io_time == 2500
    # discard and flush columns of newer kernels are ignored
    assert stats.devices[1].weighted_io_time == 700


def test_short_line():
    result = parse_diskstats(b"8 0 sda 1 2 3\n", 0)
    assert len(result.errors) == 1
    assert result.errors[0].field == "sda"
    assert result.value.devices[0].read_sectors == 3
    assert result.value.devices[0].io_time == 0


def test_missing_identity():
    result = parse_diskstats(b"8 0\n8 1 sdb 1 1 1 1 1 1 1 1 1 1 1\n", 0)
    assert len(result.errors) == 1
    assert [d.name for d in result.value.devices] == ["sdb"]


def test_usage_throughput():
    prior = _disks("8 0 sda 100 0 1000 10 50 0 400 5 3 20 30\n", timestamp=0)
    current = _disks("8 0 sda 150 0 1200 20 60 0 600 9 1 40 60\n", timestamp=2 * SECOND)
    result = calculate_disk_usage(prior, current)
    assert result.ok
    dev = result.value.devices[0]
    assert dev.name == "sda"
    assert dev.reads_completed == 50
    assert dev.read_sectors == 200
    assert dev.written_sectors == 200
    assert dev.read_bytes_per_sec == pytest.approx(200 * 512 / 2)
    assert dev.write_bytes_per_sec == pytest.approx(200 * 512 / 2)
    # gauge: current value, not a difference, and may go down
    assert dev.io_in_progress == 1


def test_usage_zero_window():
    stats = _disks(DISKSTATS, timestamp=9)
    result = calculate_disk_usage(stats, stats)
    assert any(isinstance(e, Indeterminate) for e in result.errors)
    for dev in result.value.devices:
        assert dev.read_bytes_per_sec is None
        assert dev.write_bytes_per_sec is None
        assert dev.reads_completed == 0


def test_usage_regression():
    prior = _disks("8 0 sda 100 0 1000 10 50 0 400 5 3 20 30\n", timestamp=0)
    current = _disks("8 0 sda 10 0 1000 10 50 0 400 5 3 20 30\n", timestamp=SECOND)
    with pytest.raises(CounterRegression) as info:
        calculate_disk_usage(prior, current)
    assert info.value.field == "sda.reads_completed"


def test_usage_device_swapped():
    prior = _disks("8 0 sda 1 1 1 1 1 1 1 1 0 1 1\n8 16 sdb 1 1 1 1 1 1 1 1 0 1 1\n", timestamp=0)
    current = _disks("8 0 sda 2 2 2 2 2 2 2 2 0 2 2\n8 32 sdc 1 1 1 1 1 1 1 1 0 1 1\n", timestamp=SECOND)
    result = calculate_disk_usage(prior, current)
    assert result.value.entity_set_changed
    assert any(isinstance(e, EntitySetChanged) for e in result.errors)
    assert [d.name for d in result.value.devices] == ["sda"]


def test_collectors(proc_root):
    with DiskStatsCollector(proc_root / "diskstats") as collector:
        assert collector.name == "disk"
        assert len(collector.collect().value.devices) == 2

    with DiskUsageCollector(DiskStatsCollector(proc_root / "diskstats")) as usage:
        assert usage.name == "disk_usage"
        result = usage.collect()
        assert [d.name for d in result.value.devices] == ["sda", "sda1"]
        assert all(d.reads_completed == 0 for d in result.value.devices)

"""Tests for /proc/net/dev parsing and network usage."""

import pytest

from proc_snap.collector.network import (
    NetDevCollector,
    NetUsageCollector,
    calculate_net_usage,
    parse_net_dev,
)
from proc_snap.errors import ParseError

from conftest import NET_DEV

SECOND = 1_000_000_000

HEADER = "\n".join(NET_DEV.splitlines()[:2]) + "\n"


def _line(name, rx_bytes, tx_bytes):
    return f"{name}: {rx_bytes} 1 0 0 0 0 0 0 {tx_bytes} 1 0 0 0 0 0 0\n"


def test_parse_net_dev():
    result = parse_net_dev(NET_DEV.encode(), 3)
    assert result.ok
    dev = result.value
    assert dev.timestamp == 3
    assert [i.name for i in dev.interfaces] == ["lo", "eth0"]
    eth0 = dev.interfaces[1]
    # no space between the colon and the first counter
    assert eth0.rx_bytes == 12345678
    assert eth0.rx_packets == 9000
    assert eth0.rx_errs == 1
    assert eth0.rx_drop == 2
    assert eth0.rx_multicast == 30
    assert eth0.tx_bytes == 2345678
    assert eth0.tx_packets == 7000
    assert eth0.tx_compressed == 0


def test_header_only():
    result = parse_net_dev(HEADER.encode(), 0)
    assert result.ok
    assert result.value.interfaces == []


def test_short_and_malformed_lines():
    text = HEADER + "eth0: 1 2 3\n" + "eth1: 1 x 0 0 0 0 0 0 5 1 0 0 0 0 0 0\n"
    result = parse_net_dev(text.encode(), 0)
    assert all(isinstance(e, ParseError) for e in result.errors)
    assert [e.field for e in result.errors] == ["eth0", "eth1.rx_packets"]
    eth1 = result.value.interfaces[1]
    assert eth1.rx_bytes == 1
    assert eth1.rx_packets == 0
    assert eth1.tx_bytes == 5


def test_usage_rates():
    prior = parse_net_dev((HEADER + _line("eth0", 1000, 500)).encode(), 0).value
    current = parse_net_dev((HEADER + _line("eth0", 5000, 2500)).encode(), 2 * SECOND).value
    result = calculate_net_usage(prior, current)
    assert result.ok
    iface = result.value.interfaces[0]
    assert iface.rx_bytes == 4000
    assert iface.tx_bytes == 2000
    assert iface.rx_bytes_per_sec == pytest.approx(2000.0)
    assert iface.tx_bytes_per_sec == pytest.approx(1000.0)
    assert result.value.time_delta == 2 * SECOND


def test_usage_interface_added():
    prior = parse_net_dev((HEADER + _line("lo", 1, 1)).encode(), 0).value
    current = parse_net_dev((HEADER + _line("lo", 2, 2) + _line("wg0", 9, 9)).encode(), SECOND).value
    result = calculate_net_usage(prior, current)
    assert result.value.entity_set_changed
    assert [i.name for i in result.value.interfaces] == ["lo"]


def test_collectors(proc_root):
    with NetDevCollector(proc_root / "net" / "dev") as collector:
        assert collector.name == "network"
        assert len(collector.collect().value.interfaces) == 2

    path = proc_root / "net" / "dev"
    with NetUsageCollector(NetDevCollector(path)) as usage:
        path.write_text(
            HEADER
            + "lo: 2000 10 0 0 0 0 0 0 3000 10 0 0 0 0 0 0\n"
            + "eth0: 12345679 9000 1 2 0 0 0 30 2345678 7000 0 0 0 0 0 0\n"
        )
        result = usage.collect()
        lo, eth0 = result.value.interfaces
        assert lo.rx_bytes == 1000
        assert lo.tx_bytes == 2000
        assert eth0.rx_bytes == 1

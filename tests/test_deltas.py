"""Tests for hostpulse.deltas: counter deltas and the all-or-nothing interface gate."""

from __future__ import annotations

import pytest

from hostpulse.deltas import (
    IfaceCounters,
    NetTotals,
    iface_delta,
    iface_deltas,
    is_loopback,
    net_delta,
    safe_delta,
)


def _counters(base: int = 0, **overrides: int) -> IfaceCounters:
    values = {
        "bytes_in": base + 1000,
        "bytes_out": base + 2000,
        "packets_in": base + 10,
        "packets_out": base + 20,
        "errors_in": base + 1,
        "errors_out": base + 2,
    }
    values.update(overrides)
    return IfaceCounters(**values)


# ── safe_delta ──────────────────────────────────────────


class TestSafeDelta:
    @pytest.mark.parametrize(
        "prev, curr, expected",
        [
            (100, 200, (100, True)),
            (200, 100, (0, False)),
            (50, 50, (0, True)),
            (0, 0, (0, True)),
        ],
    )
    def test_examples(self, prev, curr, expected):
        assert safe_delta(prev, curr) == expected

    def test_large_unsigned_counters(self):
        prev = 2**64 - 10
        assert safe_delta(prev, 2**64 - 1) == (9, True)

    def test_wraparound_is_reset(self):
        """A 64-bit counter rolling over looks like a decrease."""
        assert safe_delta(2**64 - 1, 5) == (0, False)


# ── aggregate totals ────────────────────────────────────


class TestNetDelta:
    def test_normal(self):
        assert net_delta(NetTotals(100, 200), NetTotals(150, 260)) == (50, 60)

    def test_reset_in_either_direction_zeroes_both(self):
        assert net_delta(NetTotals(100, 200), NetTotals(50, 300)) == (0, 0)
        assert net_delta(NetTotals(100, 200), NetTotals(150, 100)) == (0, 0)

    def test_idle(self):
        assert net_delta(NetTotals(7, 9), NetTotals(7, 9)) == (0, 0)


# ── per-interface ───────────────────────────────────────


class TestIfaceDeltas:
    def test_all_valid(self):
        delta = iface_delta("eth0", _counters(0), _counters(100))
        assert delta is not None
        assert delta.to_dict() == {
            "iface": "eth0",
            "bytes_in": 100,
            "bytes_out": 100,
            "packets_in": 100,
            "packets_out": 100,
            "errors_in": 100,
            "errors_out": 100,
        }

    @pytest.mark.parametrize(
        "field",
        ["bytes_in", "bytes_out", "packets_in", "packets_out", "errors_in", "errors_out"],
    )
    def test_single_reset_drops_whole_interface(self, field):
        prev = _counters(100)
        curr = _counters(200, **{field: 0})
        assert iface_delta("eth0", prev, curr) is None

    def test_partial_validity_is_not_emitted(self):
        """Valid bytes with reset packets must not produce a partial entry."""
        prev = _counters(0, packets_in=500)
        curr = _counters(100, packets_in=10)
        assert iface_deltas({"eth0": prev}, {"eth0": curr}) == []

    def test_new_interface_has_no_delta(self):
        prev = {"eth0": _counters(0)}
        curr = {"eth0": _counters(10), "wlan0": _counters(10)}
        deltas = iface_deltas(prev, curr)
        assert [d.iface for d in deltas] == ["eth0"]

    def test_vanished_interface_is_ignored(self):
        prev = {"eth0": _counters(0), "eth1": _counters(0)}
        curr = {"eth0": _counters(10)}
        assert [d.iface for d in iface_deltas(prev, curr)] == ["eth0"]

    def test_mixed_interfaces_sorted(self):
        prev = {"wlan0": _counters(0), "eth0": _counters(0), "eth1": _counters(50)}
        curr = {"wlan0": _counters(5), "eth0": _counters(5), "eth1": _counters(10)}
        deltas = iface_deltas(prev, curr)
        assert [d.iface for d in deltas] == ["eth0", "wlan0"]

    def test_empty_previous(self):
        assert iface_deltas({}, {"eth0": _counters(0)}) == []


class TestIsLoopback:
    @pytest.mark.parametrize("name", ["lo", "lo0", "Loopback Pseudo-Interface 1", "LO"])
    def test_loopback(self, name):
        assert is_loopback(name) is True

    @pytest.mark.parametrize("name", ["eth0", "wlan0", "en0", "docker0"])
    def test_not_loopback(self, name):
        assert is_loopback(name) is False

"""
Counter Delta Calculator.

Turns pairs of monotonically increasing OS counters (bytes, packets,
errors) into per-interval deltas. A counter that went backwards is a
reset, never negative activity.
"""

from dataclasses import dataclass, asdict
from typing import Mapping, Optional


@dataclass(frozen=True)
class NetTotals:
    """Aggregate byte counters across all non-loopback interfaces."""
    bytes_in: int = 0
    bytes_out: int = 0


@dataclass(frozen=True)
class IfaceCounters:
    """Raw counters for one interface at one point in time."""
    bytes_in: int
    bytes_out: int
    packets_in: int
    packets_out: int
    errors_in: int
    errors_out: int


@dataclass
class IfaceDelta:
    """Per-interval activity for one interface."""
    iface: str
    bytes_in: int
    bytes_out: int
    packets_in: int
    packets_out: int
    errors_in: int
    errors_out: int

    def to_dict(self) -> dict:
        return asdict(self)


COUNTER_FIELDS = ("bytes_in", "bytes_out", "packets_in", "packets_out", "errors_in", "errors_out")


def safe_delta(prev: int, curr: int) -> tuple[int, bool]:
    """
    Difference between two samples of a monotonic counter.

    Returns ``(curr - prev, True)`` when the counter did not go
    backwards, otherwise ``(0, False)``. The zero of an invalid result
    is a placeholder and must not be reported as a measurement.
    """
    if curr < prev:
        return 0, False
    return curr - prev, True


def net_delta(prev: NetTotals, curr: NetTotals) -> tuple[int, int]:
    """Aggregate in/out deltas; a reset in either direction zeroes both."""
    bytes_in, ok_in = safe_delta(prev.bytes_in, curr.bytes_in)
    bytes_out, ok_out = safe_delta(prev.bytes_out, curr.bytes_out)
    if not (ok_in and ok_out):
        return 0, 0
    return bytes_in, bytes_out


def iface_delta(name: str, prev: IfaceCounters, curr: IfaceCounters) -> Optional[IfaceDelta]:
    """Delta for one interface, or None unless all six counters are valid."""
    values = {}
    for counter in COUNTER_FIELDS:
        value, valid = safe_delta(getattr(prev, counter), getattr(curr, counter))
        if not valid:
            return None
        values[counter] = value
    return IfaceDelta(iface=name, **values)


def iface_deltas(
    prev: Mapping[str, IfaceCounters],
    curr: Mapping[str, IfaceCounters],
) -> list[IfaceDelta]:
    """
    Deltas for every interface present in both snapshots.

    Interfaces seen for the first time have no delta yet and are
    skipped, as are interfaces with any reset counter. Output is
    sorted by interface name.
    """
    deltas = []
    for name in sorted(curr):
        old = prev.get(name)
        if old is None:
            continue
        delta = iface_delta(name, old, curr[name])
        if delta is not None:
            deltas.append(delta)
    return deltas


def is_loopback(name: str) -> bool:
    """Check if an interface name denotes loopback."""
    return name.lower().startswith("lo")

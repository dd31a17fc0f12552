"""
System Metrics Collector.

Collects CPU, memory and root disk usage plus network counters, and
turns the counters into per-interval deltas against the previous round.
"""

import asyncio
import logging
from dataclasses import dataclass, field, asdict
from typing import Callable, Optional
import psutil

from ..deltas import IfaceCounters, IfaceDelta, NetTotals, iface_deltas, is_loopback, net_delta
from ..timeutil import rfc3339_nano
from .base import ProviderError, query

logger = logging.getLogger(__name__)


@dataclass
class MetricPayload:
    """Metrics ingest payload."""
    timestamp: str
    cpu: float = 0.0
    mem: float = 0.0
    disk: float = 0.0
    net_in: int = 0
    net_out: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MetricsSample:
    """One metrics round before delivery."""
    payload: MetricPayload
    totals: NetTotals
    net_ok: bool
    warnings: list[str] = field(default_factory=list)


def read_cpu() -> float:
    """Aggregate CPU busy percent since the previous call."""
    return float(psutil.cpu_percent(interval=None))


def read_mem() -> float:
    """Virtual memory used percent."""
    return float(psutil.virtual_memory().percent)


def read_disk(path: str = "/") -> float:
    """Used percent of the filesystem holding ``path``."""
    return float(psutil.disk_usage(path).percent)


def read_net_counters() -> dict[str, IfaceCounters]:
    """Per-interface counters, loopback excluded."""
    counters = {}
    for interface, stats in psutil.net_io_counters(pernic=True).items():
        if is_loopback(interface):
            continue
        counters[interface] = IfaceCounters(
            bytes_in=stats.bytes_recv,
            bytes_out=stats.bytes_sent,
            packets_in=stats.packets_recv,
            packets_out=stats.packets_sent,
            errors_in=stats.errin,
            errors_out=stats.errout,
        )
    return counters


def sum_totals(counters: dict[str, IfaceCounters]) -> NetTotals:
    """Aggregate byte counters across interfaces."""
    return NetTotals(
        bytes_in=sum(c.bytes_in for c in counters.values()),
        bytes_out=sum(c.bytes_out for c in counters.values()),
    )


class SystemCollector:
    """
    Collects system-level metrics and owns the previous net snapshots.

    Providers default to psutil and can be replaced for testing. A
    failing provider degrades only the field it produces.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        cpu: Callable[[], float] = read_cpu,
        mem: Callable[[], float] = read_mem,
        disk: Callable[[], float] = read_disk,
        net: Callable[[], dict[str, IfaceCounters]] = read_net_counters,
    ):
        """Initialize the system collector."""
        self.timeout = timeout
        self._cpu = cpu
        self._mem = mem
        self._disk = disk
        self._net = net

        self.lock = asyncio.Lock()
        self._prev_totals: Optional[NetTotals] = None
        self._prev_ifaces: dict[str, IfaceCounters] = {}

        # First cpu_percent call only primes the counters
        if cpu is read_cpu:
            psutil.cpu_percent(interval=None)

    @property
    def previous_totals(self) -> Optional[NetTotals]:
        return self._prev_totals

    @property
    def previous_interfaces(self) -> dict[str, IfaceCounters]:
        return dict(self._prev_ifaces)

    async def sample(self) -> MetricsSample:
        """Read all metrics and compute the aggregate net delta."""
        warnings = []

        async def read(name, func, default):
            try:
                return await query(func, timeout=self.timeout, label=name)
            except ProviderError as e:
                warnings.append(str(e))
                return default

        cpu = await read("cpu", self._cpu, 0.0)
        mem = await read("mem", self._mem, 0.0)
        disk = await read("disk", self._disk, 0.0)
        counters = await read("net", self._net, None)

        net_ok = counters is not None
        totals = sum_totals(counters) if net_ok else NetTotals()

        net_in, net_out = 0, 0
        if net_ok and self._prev_totals is not None:
            net_in, net_out = net_delta(self._prev_totals, totals)

        payload = MetricPayload(
            timestamp=rfc3339_nano(),
            cpu=cpu,
            mem=mem,
            disk=disk,
            net_in=net_in,
            net_out=net_out,
        )
        return MetricsSample(payload=payload, totals=totals, net_ok=net_ok, warnings=warnings)

    def commit(self, sample: MetricsSample) -> None:
        """Keep the sample's totals as the baseline for the next round."""
        if sample.net_ok:
            self._prev_totals = sample.totals

    async def sample_interfaces(self) -> list[IfaceDelta]:
        """
        Per-interface deltas against the previous round.

        The stored snapshot is replaced whenever the read returned at
        least one interface. A failed read leaves it untouched.
        """
        try:
            counters = await query(self._net, timeout=self.timeout, label="net")
        except ProviderError as e:
            logger.warning(f"collect iface warning: {e}")
            return []

        deltas = iface_deltas(self._prev_ifaces, counters) if self._prev_ifaces else []
        if counters:
            self._prev_ifaces = dict(counters)
        return deltas

"""
Process Collector.

Collects a process inventory and keeps the top consumers by CPU.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Callable
import psutil

from ..timeutil import rfc3339
from .base import query

logger = logging.getLogger(__name__)

MAX_PROCESSES = 50


@dataclass
class ProcessInfo:
    """Information about a running process."""
    pid: int
    name: str
    cpu: float
    mem: float
    rss: int
    user: str
    status: str

    def to_dict(self) -> dict:
        return asdict(self)


def list_processes() -> list[ProcessInfo]:
    """Full process listing via psutil; nameless processes are skipped."""
    processes = []

    for proc in psutil.process_iter(['pid', 'name', 'cpu_percent', 'memory_percent', 'memory_info', 'username', 'status']):
        try:
            pinfo = proc.info
            name = pinfo['name'] or ""
            if not name:
                continue

            processes.append(ProcessInfo(
                pid=pinfo['pid'],
                name=name,
                cpu=pinfo['cpu_percent'] or 0.0,
                mem=pinfo['memory_percent'] or 0.0,
                rss=pinfo['memory_info'].rss if pinfo['memory_info'] else 0,
                user=pinfo['username'] or "",
                status=pinfo['status'] or "unknown",
            ))

        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue

    return processes


def top_processes(processes: list[ProcessInfo], limit: int = MAX_PROCESSES) -> list[ProcessInfo]:
    """Sort by CPU descending and keep the first ``limit``."""
    return sorted(processes, key=lambda p: p.cpu, reverse=True)[:limit]


class ProcessCollector:
    """Collects the process inventory."""

    def __init__(self, timeout: float = 5.0, lister: Callable[[], list[ProcessInfo]] = list_processes):
        self.timeout = timeout
        self._lister = lister

    async def collect(self) -> dict:
        """Build the processes payload. Raises ProviderError on listing failure."""
        processes = await query(self._lister, timeout=self.timeout, label="processes")
        return {
            'timestamp': rfc3339(),
            'processes': [p.to_dict() for p in top_processes(processes)],
        }

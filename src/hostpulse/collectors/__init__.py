"""
HostPulse Collectors.

Each collector gathers one kind of data from the host system.
"""

from .base import ProviderError, query
from .system import SystemCollector
from .processes import ProcessCollector
from .watchdog import WatchdogCollector, WatchdogTracker
from .logs import LogCollector
from .discovery import ServiceDiscoveryCollector

__all__ = [
    "ProviderError",
    "query",
    "SystemCollector",
    "ProcessCollector",
    "WatchdogCollector",
    "WatchdogTracker",
    "LogCollector",
    "ServiceDiscoveryCollector",
]

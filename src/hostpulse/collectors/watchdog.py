"""
Process Watchdog.

Detects crashed and restarted processes by diffing the current
process-name to PID-set snapshot against the previous round.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional
import psutil

from ..timeutil import rfc3339
from .base import query

logger = logging.getLogger(__name__)

MAX_ENTRIES = 100


class WatchdogStatus(str, Enum):
    RUNNING = "running"
    RESTARTED = "restarted"
    CRASHED = "crashed"


@dataclass
class WatchdogEntry:
    """Liveness of one tracked process name."""
    name: str
    status: WatchdogStatus
    restart_count: int
    last_seen_at: str
    pids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'status': self.status.value,
            'restart_count': self.restart_count,
            'last_seen_at': self.last_seen_at,
            'pids': list(self.pids),
        }


@dataclass
class WatchdogRound:
    """
    Output of one watchdog round.

    ``baseline`` is set when there was no previous snapshot to diff
    against; such a round only seeds state and must not be sent.
    """
    entries: list[WatchdogEntry]
    baseline: bool
    timestamp: str = ""

    @property
    def crashed(self) -> int:
        return sum(1 for e in self.entries if e.status is WatchdogStatus.CRASHED)

    @property
    def restarted(self) -> int:
        return sum(1 for e in self.entries if e.status is WatchdogStatus.RESTARTED)

    def to_payload(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'entries': [e.to_dict() for e in self.entries],
        }


@dataclass(frozen=True)
class _Seen:
    pids: frozenset
    last_seen_at: float


def same_pids(a: Optional[Iterable[int]], b: Optional[Iterable[int]]) -> bool:
    """Set equality of two PID collections; None counts as empty."""
    return set(a or ()) == set(b or ())


def list_process_names() -> list[tuple[str, int]]:
    """(name, pid) for every process with a readable name."""
    pairs = []
    for proc in psutil.process_iter(['pid', 'name']):
        try:
            name = proc.info['name'] or ""
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if name:
            pairs.append((name, proc.info['pid']))
    return pairs


def build_snapshot(pairs: Iterable[tuple[str, int]]) -> dict[str, list[int]]:
    """Group PIDs by process name, dropping nameless entries."""
    snapshot: dict[str, list[int]] = {}
    for name, pid in pairs:
        if not name:
            continue
        snapshot.setdefault(name, []).append(pid)
    return snapshot


class WatchdogTracker:
    """
    Owns the previous process snapshot and classifies each round.

    Every name in previous or current appears exactly once in a round:
    crashed when it vanished, restarted when its PID set changed,
    running otherwise. Diff and snapshot replacement happen in a single
    critical section.
    """

    def __init__(self, max_entries: int = MAX_ENTRIES, clock: Callable[[], float] = time.time):
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._previous: dict[str, _Seen] = {}

    @property
    def snapshot(self) -> dict[str, frozenset]:
        """Copy of the stored name -> PID set snapshot."""
        with self._lock:
            return {name: seen.pids for name, seen in self._previous.items()}

    def observe(self, current: Mapping[str, Iterable[int]]) -> WatchdogRound:
        """Diff ``current`` against the stored snapshot and replace it."""
        current_sets = {name: frozenset(pids) for name, pids in current.items() if name}

        with self._lock:
            now = self._clock()
            now_str = rfc3339(now)
            baseline = not self._previous
            entries = []

            for name, prev in self._previous.items():
                pids = current_sets.get(name)
                if pids is None:
                    entries.append(WatchdogEntry(
                        name=name,
                        status=WatchdogStatus.CRASHED,
                        restart_count=0,
                        last_seen_at=rfc3339(prev.last_seen_at),
                        pids=[],
                    ))
                elif same_pids(prev.pids, pids):
                    entries.append(WatchdogEntry(
                        name=name,
                        status=WatchdogStatus.RUNNING,
                        restart_count=0,
                        last_seen_at=now_str,
                        pids=sorted(pids),
                    ))
                else:
                    entries.append(WatchdogEntry(
                        name=name,
                        status=WatchdogStatus.RESTARTED,
                        restart_count=1,
                        last_seen_at=now_str,
                        pids=sorted(pids),
                    ))

            for name, pids in current_sets.items():
                if name not in self._previous:
                    entries.append(WatchdogEntry(
                        name=name,
                        status=WatchdogStatus.RUNNING,
                        restart_count=0,
                        last_seen_at=now_str,
                        pids=sorted(pids),
                    ))

            self._previous = {name: _Seen(pids=pids, last_seen_at=now) for name, pids in current_sets.items()}

        entries.sort(key=lambda e: e.name)
        return WatchdogRound(entries=entries[:self.max_entries], baseline=baseline, timestamp=now_str)

    def reset(self) -> None:
        with self._lock:
            self._previous = {}


class WatchdogCollector:
    """Lists processes and feeds them to a WatchdogTracker."""

    def __init__(
        self,
        timeout: float = 5.0,
        tracker: Optional[WatchdogTracker] = None,
        lister: Callable[[], list[tuple[str, int]]] = list_process_names,
    ):
        self.timeout = timeout
        self.tracker = tracker or WatchdogTracker()
        self._lister = lister

    async def collect(self) -> WatchdogRound:
        """
        Run one watchdog round.

        A failed listing raises ProviderError before the tracker is
        touched, so the previous snapshot survives for the next round.
        """
        pairs = await query(self._lister, timeout=self.timeout, label="watchdog")
        return self.tracker.observe(build_snapshot(pairs))

"""
Log Collector.

Collects recent system logs from journald, falling back to the classic
syslog files when journalctl is unavailable or returns nothing.
"""

import json
import logging
import os
import socket
import subprocess
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Optional

from ..timeutil import rfc3339, rfc3339_nano
from .base import ProviderError, query

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 200
SYSLOG_TAIL_LINES = 50
SYSLOG_FILES = ["/var/log/syslog", "/var/log/messages"]

# Our own log lines are skipped to avoid a feedback loop
AGENT_IDENTIFIERS = ("hostpulse-agent", "hostpulse")


@dataclass
class LogEntry:
    """A single log line for the backend."""
    timestamp: str
    level: str
    service: str
    host: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


def map_journal_priority(priority: str) -> str:
    """Map a journald PRIORITY (0-7) to a level name."""
    if priority in ("0", "1", "2", "3"):
        return "error"
    if priority == "4":
        return "warning"
    if priority == "7":
        return "debug"
    return "info"


def parse_journal_timestamp(usec: str) -> str:
    """Convert __REALTIME_TIMESTAMP (microseconds since epoch) to RFC3339."""
    try:
        return rfc3339_nano(int(usec) * 1000)
    except (TypeError, ValueError, OverflowError, OSError):
        return rfc3339_nano()


def parse_journal_line(line: str, hostname: str) -> Optional[LogEntry]:
    """Parse one line of ``journalctl --output json``."""
    line = line.strip()
    if not line:
        return None
    try:
        record = json.loads(line)
    except ValueError:
        return None
    if not isinstance(record, dict):
        return None

    message = record.get("MESSAGE")
    if not isinstance(message, str) or not message:
        return None

    service = record.get("SYSLOG_IDENTIFIER") or record.get("_COMM") or ""
    if service in AGENT_IDENTIFIERS:
        return None

    return LogEntry(
        timestamp=parse_journal_timestamp(record.get("__REALTIME_TIMESTAMP", "")),
        level=map_journal_priority(record.get("PRIORITY", "")),
        service=service,
        host=record.get("_HOSTNAME") or hostname,
        message=message,
    )


def parse_syslog_line(line: str) -> tuple[str, str]:
    """
    Split a syslog line into (service, message).

    Expected layout is ``Mon DD HH:MM:SS host service[pid]: message``;
    anything else is kept whole as the message.
    """
    service = ""
    prefix, sep, rest = line.partition(": ")
    if sep:
        message = rest
        fields = prefix.split()
        if len(fields) >= 5:
            service = fields[4]
            bracket = service.find("[")
            if bracket > 0:
                service = service[:bracket]
    else:
        message = line
    return service or "syslog", message


class LogCollector:
    """Collects recent log entries from journald or syslog files."""

    def __init__(
        self,
        timeout: float = 10.0,
        syslog_files: Optional[list[str]] = None,
        hostname: Optional[str] = None,
    ):
        """Initialize the log collector."""
        self.timeout = timeout
        self.syslog_files = syslog_files if syslog_files is not None else list(SYSLOG_FILES)
        self.hostname = hostname or socket.gethostname()

    async def collect(self) -> list[LogEntry]:
        """Collect recent entries. Raises ProviderError when no source works."""
        return await query(self._collect, timeout=self.timeout, label="logs")

    def _collect(self) -> list[LogEntry]:
        try:
            entries = self._collect_journal()
            if entries:
                return entries
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"journalctl unavailable: {e}")

        return self._collect_syslog()

    def _collect_journal(self) -> list[LogEntry]:
        """Read recent journald entries in JSON format."""
        result = subprocess.run(
            [
                "journalctl",
                "--since", "5 minutes ago",
                "--output", "json",
                "--no-pager",
                "-n", str(MAX_LOG_ENTRIES),
            ],
            capture_output=True,
            text=True,
            timeout=max(self.timeout - 1, 1),
        )
        if result.returncode != 0:
            raise subprocess.SubprocessError(f"journalctl exited {result.returncode}")

        entries = []
        for line in result.stdout.splitlines():
            entry = parse_journal_line(line, self.hostname)
            if entry is not None:
                entries.append(entry)

        return entries[-MAX_LOG_ENTRIES:]

    def _collect_syslog(self) -> list[LogEntry]:
        """Read the last lines of the first syslog file present."""
        target = next((path for path in self.syslog_files if os.path.exists(path)), None)
        if target is None:
            raise ProviderError("no syslog file found")

        with open(target, 'r', errors='ignore') as f:
            lines = deque(f, maxlen=SYSLOG_TAIL_LINES)

        now = rfc3339(time.time())
        entries = []
        for raw in lines:
            line = raw.strip()
            if not line or any(ident in line for ident in AGENT_IDENTIFIERS):
                continue

            service, message = parse_syslog_line(line)
            entries.append(LogEntry(
                timestamp=now,
                level="info",
                service=service,
                host=self.hostname,
                message=message,
            ))

        return entries

"""
HostPulse Agent - Lightweight host telemetry sampler.

Samples CPU, memory, disk, network counters, process inventory and
process liveness on a single machine and forwards compact JSON
snapshots to a remote ingestion endpoint.
"""

__version__ = "1.0.0"

from .agent import Agent
from .config import AgentConfig, CollectorConfig, ConfigError
from .scheduler import PollLoop, next_delay
from .sender import Channel, IngestSender, SendResult

__all__ = [
    "Agent",
    "AgentConfig",
    "CollectorConfig",
    "ConfigError",
    "PollLoop",
    "next_delay",
    "Channel",
    "IngestSender",
    "SendResult",
]

"""
Service Discovery Collector.

Finds listening sockets on the host and labels them with a
human-friendly service name.
"""

import logging
import socket
from dataclasses import dataclass, asdict
from typing import Callable, Optional
import psutil

from ..timeutil import rfc3339_nano
from .base import query

logger = logging.getLogger(__name__)


WELL_KNOWN_PORTS = {
    21: "FTP",
    22: "SSH",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    465: "SMTPS",
    587: "SMTP Submission",
    993: "IMAPS",
    995: "POP3S",
    1433: "MSSQL",
    1521: "Oracle DB",
    2049: "NFS",
    3000: "Dev Server",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    5672: "RabbitMQ",
    5900: "VNC",
    6379: "Redis",
    6443: "Kubernetes API",
    8080: "HTTP Alt",
    8443: "HTTPS Alt",
    8888: "HTTP Alt",
    9090: "Prometheus",
    9200: "Elasticsearch",
    9300: "Elasticsearch Transport",
    11211: "Memcached",
    15672: "RabbitMQ Management",
    27017: "MongoDB",
}

PROCESS_NAME_OVERRIDES = {
    "postgres": "PostgreSQL",
    "mysqld": "MySQL",
    "mariadbd": "MariaDB",
    "redis-server": "Redis",
    "mongod": "MongoDB",
    "nginx": "Nginx",
    "apache2": "Apache",
    "httpd": "Apache",
    "caddy": "Caddy",
    "haproxy": "HAProxy",
    "sshd": "SSH",
    "dockerd": "Docker",
    "containerd": "Containerd",
    "kubelet": "Kubelet",
    "etcd": "etcd",
    "java": "Java App",
    "node": "Node.js",
    "python3": "Python App",
    "python": "Python App",
    "php-fpm": "PHP-FPM",
    "dotnet": ".NET App",
    "rabbitmq-server": "RabbitMQ",
    "memcached": "Memcached",
    "prometheus": "Prometheus",
    "grafana-server": "Grafana",
    "minio": "MinIO",
}


@dataclass
class DiscoveredService:
    """A listening service found on the host."""
    port: int
    protocol: str
    process: str
    service: str
    bind_addr: str

    def to_dict(self) -> dict:
        return asdict(self)


def resolve_process_name(pid: Optional[int]) -> str:
    """Process name for ``pid``, or "" when it cannot be read."""
    if not pid or pid <= 0:
        return ""

    try:
        with open(f"/proc/{pid}/comm", 'r') as f:
            name = f.read().strip()
        if name:
            return name
    except OSError:
        pass

    try:
        return psutil.Process(pid).name()
    except (psutil.Error, OSError):
        return ""


def resolve_service_name(port: int, process_name: str) -> str:
    """Label from process override, then well-known port, then process name."""
    if process_name:
        label = PROCESS_NAME_OVERRIDES.get(process_name.lower())
        if label:
            return label

    label = WELL_KNOWN_PORTS.get(port)
    if label:
        return label

    if process_name:
        return process_name

    return f"Port {port}"


def discover_services(
    connections: Callable[[], list] = lambda: psutil.net_connections(kind="inet"),
    process_name: Callable[[Optional[int]], str] = resolve_process_name,
) -> list[DiscoveredService]:
    """One entry per unique listening port."""
    seen = set()
    services = []

    for conn in connections():
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        port = conn.laddr.port
        if port <= 0 or port > 65535 or port in seen:
            continue
        seen.add(port)

        protocol = "udp" if conn.type == socket.SOCK_DGRAM else "tcp"
        name = process_name(conn.pid)

        services.append(DiscoveredService(
            port=port,
            protocol=protocol,
            process=name,
            service=resolve_service_name(port, name),
            bind_addr=conn.laddr.ip or "0.0.0.0",
        ))

    return services


class ServiceDiscoveryCollector:
    """Collects listening services."""

    def __init__(self, timeout: float = 5.0, discover: Callable[[], list[DiscoveredService]] = discover_services):
        self.timeout = timeout
        self._discover = discover

    async def collect(self) -> dict:
        """Build the discovery payload. Raises ProviderError on failure."""
        services = await query(self._discover, timeout=self.timeout, label="discovery")
        return {
            'timestamp': rfc3339_nano(),
            'services': [s.to_dict() for s in services],
        }

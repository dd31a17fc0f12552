"""
Ingest Sender.

Delivers JSON payloads to the ingestion endpoint. Every failure is
reported as a SendResult; retry policy belongs to the scheduler.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
import aiohttp

from . import __version__

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 1024


class Channel(Enum):
    """Logical ingest channels and their endpoint paths."""
    METRICS = "/api/ingest/server-metrics"
    NETWORK = "/api/ingest/server-network"
    PROCESSES = "/api/ingest/server-processes"
    WATCHDOG = "/api/ingest/server-watchdog"
    LOGS = "/api/ingest/server-logs"
    DISCOVERY = "/api/ingest/server-services"

    @property
    def path(self) -> str:
        return self.value


@dataclass
class SendResult:
    """Result of a send operation."""
    success: bool
    status_code: int = 0
    error: Optional[str] = None


class IngestSender:
    """
    Sends payloads to the ingestion backend.

    One pooled aiohttp session is shared by every collector and created
    on first use. Each request is bounded by ``timeout`` seconds.
    """

    def __init__(self, base_url: str, token: str, timeout: float = 10.0):
        """Initialize the sender."""
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout

        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def _get_headers(self) -> dict:
        """Get request headers."""
        return {
            'Content-Type': 'application/json',
            'X-Agent-Token': self.token,
            'User-Agent': f'hostpulse-agent/{__version__}',
        }

    def url_for(self, channel: Channel) -> str:
        return f"{self.base_url}{channel.path}"

    async def send(self, channel: Channel, payload: Any) -> SendResult:
        """POST a JSON document to the endpoint for ``channel``."""
        try:
            body = payload if isinstance(payload, str) else json.dumps(payload)
        except (TypeError, ValueError) as e:
            return SendResult(success=False, error=f"marshal: {e}")

        try:
            session = await self._get_session()
            async with session.post(
                self.url_for(channel),
                data=body,
                headers=self._get_headers(),
            ) as response:
                if response.status < 300:
                    return SendResult(success=True, status_code=response.status)

                raw = (await response.read())[:MAX_ERROR_BODY]
                message = raw.decode('utf-8', errors='replace').strip()
                if not message:
                    message = response.reason or ""
                return SendResult(
                    success=False,
                    status_code=response.status,
                    error=f"status={response.status} body={message}",
                )

        except asyncio.TimeoutError:
            return SendResult(success=False, error="request timeout")
        except aiohttp.ClientError as e:
            return SendResult(success=False, error=str(e) or type(e).__name__)

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

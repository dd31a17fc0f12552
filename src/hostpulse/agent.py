"""
HostPulse Agent - Main Daemon.

Runs every collector on its own adaptive poll loop and forwards the
resulting snapshots to the ingestion endpoint.
"""

import asyncio
import logging
import signal
from typing import Optional

from . import __version__
from .config import AgentConfig
from .collectors import (
    ProviderError,
    SystemCollector,
    ProcessCollector,
    WatchdogCollector,
    LogCollector,
    ServiceDiscoveryCollector,
)
from .scheduler import PollLoop
from .sender import Channel, IngestSender

logger = logging.getLogger(__name__)


class Agent:
    """
    Main agent daemon.

    Each collector has an independent PollLoop with its own failure
    count, so delivery trouble on one channel does not slow another.
    """

    def __init__(self, config: AgentConfig, sender: Optional[IngestSender] = None):
        """Initialize the agent."""
        self.config = config

        timeout = config.provider_timeout
        self.system_collector = SystemCollector(timeout=timeout)
        self.process_collector = ProcessCollector(timeout=timeout)
        self.watchdog_collector = WatchdogCollector(timeout=timeout)
        self.log_collector = LogCollector(timeout=max(timeout, 10.0))
        self.discovery_collector = ServiceDiscoveryCollector(timeout=timeout)

        self.sender = sender or IngestSender(
            base_url=config.base_url,
            token=config.token,
            timeout=config.timeout,
        )

        self._stop = asyncio.Event()
        self.loops = self._build_loops()

    def _build_loops(self) -> list[PollLoop]:
        loops = [PollLoop("metrics", self.metrics_round, self.config.interval, self._stop)]

        collectors = [
            ("processes", self.config.processes, self.processes_round),
            ("watchdog", self.config.watchdog, self.watchdog_round),
            ("logs", self.config.logs, self.logs_round),
            ("discovery", self.config.discovery, self.discovery_round),
        ]
        for name, collector_config, round_fn in collectors:
            if collector_config.enabled:
                loops.append(PollLoop(name, round_fn, collector_config.interval, self._stop))
            else:
                logger.info(f"Collector [{name}] disabled")

        return loops

    async def start(self):
        """Start the agent and run until stopped."""
        logger.info(
            f"starting hostpulse-agent {__version__} "
            f"interval={self.config.interval}s url={self.config.base_url}"
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                pass

        tasks = [poll.start() for poll in self.loops]
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Agent tasks cancelled")
            self._stop.set()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            await self.sender.close()
            logger.info("stopping")

    def request_stop(self):
        """Ask every poll loop to exit after its in-flight round."""
        if not self._stop.is_set():
            logger.info("Stop requested")
            self._stop.set()

    async def stop(self):
        """Stop the agent and wait for all loops to finish."""
        self.request_stop()
        for poll in self.loops:
            await poll.stop()
        await self.sender.close()

    # ── rounds ───────────────────────────────────────────

    async def metrics_round(self) -> bool:
        """Send system metrics, then per-interface network deltas."""
        collector = self.system_collector

        async with collector.lock:
            sample = await collector.sample()
            if sample.warnings:
                logger.warning(f"collect warning: {'; '.join(sample.warnings)}")

            result = await self.sender.send(Channel.METRICS, sample.payload.to_dict())
            if result.success:
                collector.commit(sample)
            else:
                logger.warning(f"ingest failed: {result.error}")

            interfaces = await collector.sample_interfaces()
            if interfaces:
                net_result = await self.sender.send(Channel.NETWORK, {
                    'timestamp': sample.payload.timestamp,
                    'interfaces': [iface.to_dict() for iface in interfaces],
                })
                if not net_result.success:
                    logger.warning(f"network ingest failed: {net_result.error}")

        return result.success

    async def processes_round(self) -> Optional[bool]:
        try:
            payload = await self.process_collector.collect()
        except ProviderError as e:
            logger.warning(f"process collect error: {e}")
            return None

        result = await self.sender.send(Channel.PROCESSES, payload)
        if not result.success:
            logger.warning(f"processes ingest failed: {result.error}")
            return False
        logger.debug(f"processes sent: {len(payload['processes'])} entries")
        return True

    async def watchdog_round(self) -> Optional[bool]:
        try:
            wd_round = await self.watchdog_collector.collect()
        except ProviderError as e:
            logger.warning(f"watchdog collect error: {e}")
            return None

        if wd_round.baseline:
            logger.info(f"watchdog: baseline snapshot stored ({len(wd_round.entries)} processes)")
            return None

        result = await self.sender.send(Channel.WATCHDOG, wd_round.to_payload())
        if not result.success:
            logger.warning(f"watchdog ingest failed: {result.error}")
            return False
        logger.info(
            f"watchdog sent: {len(wd_round.entries)} entries "
            f"(crashed={wd_round.crashed} restarted={wd_round.restarted})"
        )
        return True

    async def logs_round(self) -> Optional[bool]:
        try:
            entries = await self.log_collector.collect()
        except ProviderError as e:
            logger.warning(f"log collect error: {e}")
            return None

        if not entries:
            return None

        result = await self.sender.send(Channel.LOGS, {'entries': [e.to_dict() for e in entries]})
        if not result.success:
            logger.warning(f"log ingest failed: {result.error}")
            return False
        logger.debug(f"logs sent: {len(entries)} entries")
        return True

    async def discovery_round(self) -> Optional[bool]:
        try:
            payload = await self.discovery_collector.collect()
        except ProviderError as e:
            logger.warning(f"service discovery error: {e}")
            return None

        result = await self.sender.send(Channel.DISCOVERY, payload)
        if not result.success:
            logger.warning(f"services ingest failed: {result.error}")
            return False
        logger.debug(f"services sent: {len(payload['services'])} entries")
        return True


def run_agent(config: AgentConfig):
    """Run the agent in the foreground."""
    async def main():
        await Agent(config).start()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

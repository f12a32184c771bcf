"""
The poll loop: log in, scrape, update metrics, sleep, repeat.

There is deliberately no retry in here. Any failure that escapes a cycle stops the loop and is
    re-raised; the expectation is that whatever runs the container restarts it.
"""

import asyncio
from enum import Enum

import structlog
from netgear.metrics import ModemMetrics
from netgear.parse import ChannelRecord
from netgear.scrape import authenticate, fetch_and_parse

log = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 60


class PollState(Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


class Poller:
    """Owns the metrics store and drives one scrape cycle after another."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        metrics: ModemMetrics,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.base_url = base_url
        self.username = username
        self.password = password
        self.metrics = metrics
        self.interval = interval
        self.state = PollState.RUNNING
        self.cycles = 0

    async def run_cycle(self) -> list[ChannelRecord]:
        """One full login -> scrape -> update pass. Errors are not caught here."""
        log.debug("Attempting to login.", base_url=self.base_url)
        async with authenticate(
            self.base_url, self.username, self.password, self.metrics
        ) as cs:
            records = await fetch_and_parse(cs, self.base_url, self.metrics)

        self.metrics.project(records)
        self.cycles += 1
        return records

    async def run_forever(self) -> None:
        """First cycle runs right away, then once per interval until something goes wrong."""
        while self.state is PollState.RUNNING:
            try:
                await self.run_cycle()
            except Exception as e:
                self.state = PollState.TERMINATED
                log.error("Poll cycle failed; giving up", error=e, cycles=self.cycles)
                raise

            log.info(f"Sleeping {self.interval} seconds before next poll")
            await asyncio.sleep(self.interval)

"""Polling block tracker.

Polls the provider engine for the latest block on an interval and keeps a
cached notion of the chain head. It goes through the same engine as every
other caller, so it sees the same retry and normalization behavior, and it
warms the block cache with the blocks it observes.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .errors import ProviderDestroyedError, ProviderError

logger = logging.getLogger(__name__)

LatestListener = Callable[[str], None]


def _block_height(block_number: str) -> int:
    return int(block_number, 16)


class PollingBlockTracker:
    """
    Background poller for the latest block of one provider engine.

    Tracks:
    - The latest block number seen (only ever moves forward)
    - When it last advanced
    - Listeners interested in new blocks
    """

    def __init__(self, engine, polling_interval: float = 20.0):
        """
        Initialize the tracker.

        Args:
            engine: ProviderEngine to poll through
            polling_interval: Seconds between polls
        """
        self.engine = engine
        self.polling_interval = polling_interval
        self.latest_block: Optional[str] = None
        self.last_updated: Optional[float] = None
        self.poll_count = 0
        self._listeners: List[LatestListener] = []
        self._task: Optional[asyncio.Task] = None
        self._first_block = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_latest(self, listener: LatestListener) -> None:
        """Register a callback invoked with each new latest block number."""
        self._listeners.append(listener)

    def remove_listener(self, listener: LatestListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self) -> asyncio.Task:
        """
        Start polling as a background task.

        Returns:
            asyncio.Task: The polling task
        """
        if not self.is_running:
            self._task = asyncio.create_task(self._poll_loop())
            logger.info(f"Block tracker started for {self.engine.name} (interval: {self.polling_interval}s)")
        return self._task

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Block tracker stopped for {self.engine.name}")

    async def get_latest_block(self, timeout: Optional[float] = None) -> str:
        """
        Return the latest block, waiting for the first poll if needed.

        Raises:
            asyncio.TimeoutError: If no block was observed within ``timeout``
        """
        if self.latest_block is None:
            await asyncio.wait_for(self._first_block.wait(), timeout=timeout)
        return self.latest_block

    async def check_for_latest_block(self) -> str:
        """Poll once: fetch the block number, then warm the block caches."""
        self.poll_count += 1
        block_number = await self.engine.request("eth_blockNumber")
        self._new_block(block_number)
        results = await asyncio.gather(
            self.engine.request("eth_getBlockByNumber", ["latest", False]),
            self.engine.request("eth_getBlockByNumber", [block_number, False]),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, ProviderDestroyedError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Block cache warming failed on {self.engine.name}: {result}")
        return block_number

    def _new_block(self, block_number: str) -> None:
        if self.latest_block is not None and _block_height(block_number) <= _block_height(self.latest_block):
            logger.debug(f"Ignoring block {block_number}, already at {self.latest_block}")
            return

        self.latest_block = block_number
        self.last_updated = time.monotonic()
        self._first_block.set()
        logger.debug(f"New latest block {block_number} on {self.engine.name}")
        for listener in list(self._listeners):
            try:
                listener(block_number)
            except Exception as e:
                logger.error(f"Latest block listener failed: {e}")

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.check_for_latest_block()
            except ProviderDestroyedError:
                logger.info(f"Provider {self.engine.name} destroyed, block tracker exiting")
                return
            except (ProviderError, ValueError, TypeError) as e:
                logger.warning(f"Block tracker poll failed on {self.engine.name}: {e}")
            await asyncio.sleep(self.polling_interval)

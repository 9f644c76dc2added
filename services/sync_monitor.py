"""Watchdog comparing the matcher's and the wallet's chain tip while waiting."""
import asyncio
import logging
import random
from typing import Awaitable, Callable

from config.settings import TimingConfig
from services.interfaces import MatcherClient, WalletClient
from utils.exceptions import DesyncError

logger = logging.getLogger(__name__)

class SyncMonitor:
    """Detects the matcher and wallet drifting onto different chain tips.

    A single mismatch is tolerated: nodes routinely see a new block a few
    seconds apart. The check is repeated after a random delay and only a
    second consecutive mismatch is fatal.
    """

    def __init__(
        self,
        matcher: MatcherClient,
        wallet: WalletClient,
        timing: TimingConfig,
        jitter: Callable[[float, float], float] = random.uniform,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.matcher = matcher
        self.wallet = wallet
        self.interval = timing.sync_check_interval
        self.jitter_min = timing.sync_jitter_min
        self.jitter_max = timing.sync_jitter_max
        self._jitter = jitter
        self._sleep = sleep

    async def check_sync(self) -> None:
        """Compare both chain tips once.

        Raises:
            DesyncError: If the tips differ or either side cannot be queried
        """
        try:
            status = await self.matcher.status()
        except Exception as e:
            raise DesyncError(f"error checking status of matcher: {e}") from e

        try:
            chain_info = await self.wallet.current_chain_info()
        except Exception as e:
            raise DesyncError(f"error checking wallet chain info: {e}") from e

        if status.mainchain_hash != chain_info.best_block_hash:
            raise DesyncError(
                f"matcher mainchain hash ({status.mainchain_hash.hex()}) different than "
                f"wallet mainchain hash ({chain_info.best_block_hash.hex()})"
            )

    async def run(self) -> None:
        """Monitor until cancelled or until a persistent desync is found."""
        wait = self.interval
        try:
            while True:
                await self._sleep(wait)
                wait = self.interval
                try:
                    await self.check_sync()
                    continue
                except DesyncError as e:
                    delay = self._jitter(self.jitter_min, self.jitter_max)
                    logger.warning(f"Matcher and wallet out of sync ({e}); rechecking in {delay:.1f}s")

                await self._sleep(delay)
                await self.check_sync()
                logger.info("Matcher and wallet back in sync")
                # next check stays on the regular tick
                wait = max(self.interval - delay, 0)
        except asyncio.CancelledError:
            # Cancellation of the wait scope is the normal way out
            logger.debug("Sync monitor stopped")

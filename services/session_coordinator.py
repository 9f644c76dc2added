"""Entry point of a split ticket purchase attempt."""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from config.settings import DISCOVER_WALLET_HOST, BuyerConfig
from models.stages import Stage
from services.dcrdata_service import DcrdataUtxoSource
from services.interfaces import (
    IndexerFactory,
    MatcherClient,
    MatcherConnector,
    NodeConnector,
    Reporter,
    SessionWriter,
    WalletClient,
    WalletConnector,
    WalletDiscovery
)
from services.progress_reporter import LoggingReporter
from services.purchase_executor import PurchaseExecutor
from services.session_waiter import Connections, SessionWaiter, WaitResult
from utils.exceptions import BuyerError, WalletDiscoveryError, is_reportable, wrap_error

logger = logging.getLogger(__name__)

class SessionCoordinator:
    """Runs one purchase attempt and owns its connections.

    The connections acquired while waiting for a match are closed exactly
    once, after the purchase has fully stopped, whatever the outcome.
    """

    def __init__(
        self,
        config: BuyerConfig,
        reporter: Optional[Reporter] = None,
        wallet_discovery: Optional[WalletDiscovery] = None,
        wallet_connector: Optional[WalletConnector] = None,
        matcher_connector: Optional[MatcherConnector] = None,
        node_connector: Optional[NodeConnector] = None,
        indexer_factory: IndexerFactory = DcrdataUtxoSource.from_config,
        wallet: Optional[WalletClient] = None,
        matcher: Optional[MatcherClient] = None,
        session_writer: Optional[SessionWriter] = None,
        jitter: Callable[[float, float], float] = random.uniform,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config
        self.reporter = reporter or LoggingReporter()
        self.wallet_discovery = wallet_discovery
        self.session_writer = session_writer
        self.waiter = SessionWaiter(
            config,
            self.reporter,
            wallet_connector=wallet_connector,
            matcher_connector=matcher_connector,
            node_connector=node_connector,
            indexer_factory=indexer_factory,
            wallet=wallet,
            matcher=matcher,
            jitter=jitter,
            sleep=sleep
        )

    async def buy_split_ticket(self) -> None:
        """Perform the whole purchase.

        Cancelling the calling task abandons the attempt; once matched, the
        purchase itself still runs until it ends or hits its time bound.

        Raises:
            BuyerError: If the purchase fails
            asyncio.CancelledError: If the caller cancelled the purchase
        """
        self.reporter.report_stage(Stage.STARTING, None, self.config)
        try:
            await self._buy()
        except BaseException as e:
            self.reporter.report_buying_error(e)
            raise

    async def resolve_wallet_host(self) -> None:
        """Locate the running wallet when no host was configured."""
        if self.config.wallet_host != DISCOVER_WALLET_HOST or self.waiter.wallet is not None:
            return
        if self.wallet_discovery is None:
            raise WalletDiscoveryError("wallet host not configured and no wallet discovery available")

        try:
            hosts = await self.wallet_discovery(self.config)
        except Exception as e:
            self.reporter.report_wallet_discovery_error(e)
            raise WalletDiscoveryError(f"error finding running wallet: {e}") from e

        if len(hosts) != 1:
            error = WalletDiscoveryError(
                f"found different number of running wallets ({len(hosts)}) than expected"
            )
            self.reporter.report_wallet_discovery_error(error)
            raise error

        self.reporter.report_wallet_found(hosts[0])
        self.config.wallet_host = hosts[0]

    async def _buy(self) -> None:
        try:
            await self.resolve_wallet_host()
        except BaseException:
            await Connections(wallet=self.waiter.wallet, matcher=self.waiter.matcher).close()
            raise

        try:
            result = await self.waiter.wait()
        except BuyerError as e:
            raise wrap_error(e, "error waiting for session") from e

        try:
            await self._purchase(result)
        finally:
            await result.connections.close()

    async def _purchase(self, result: WaitResult) -> None:
        executor = PurchaseExecutor(
            self.config,
            self.reporter,
            result.matcher,
            result.wallet,
            session_writer=self.session_writer
        )
        task = asyncio.create_task(executor.execute(result.session))

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # Funds may already be committed: the purchase runs on to the end
            # of its own time bound and only then are the connections closed.
            # Its outcome is discarded.
            logger.warning("Purchase cancelled by caller, waiting for it to finish")
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"Discarded purchase error after cancellation: {task.exception()}")
            raise
        except Exception as e:
            if is_reportable(e) and not self.config.skip_report_errors_to_svc:
                await self._send_error_report(result, e)
            raise

    async def _send_error_report(self, result: WaitResult, error: BaseException) -> None:
        try:
            await result.matcher.send_error_report(result.session.id, error)
        except Exception as e:
            logger.warning(f"Could not send error report to matcher: {e}")

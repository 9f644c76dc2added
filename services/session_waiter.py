"""Setup of a buyer session and the wait for a match."""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from config.settings import BuyerConfig
from models.session import Session
from models.stages import Stage
from models.transactions import amount_from_coins
from services.dcrdata_service import DcrdataUtxoSource
from services.interfaces import (
    ChainNode,
    IndexerFactory,
    MatcherClient,
    MatcherConnector,
    NodeConnector,
    Reporter,
    UtxoSource,
    WalletClient,
    WalletConnector
)
from services.sync_monitor import SyncMonitor
from utils.exceptions import (
    BuyerError,
    ConnectionSetupError,
    MatchTimeoutError,
    PreconditionError,
    WaitError,
    wrap_error
)
from utils.logging import session_context

logger = logging.getLogger(__name__)

@dataclass
class Connections:
    """Collaborator handles owned by one purchase attempt."""
    wallet: Optional[WalletClient] = None
    matcher: Optional[MatcherClient] = None
    utxo_source: Optional[UtxoSource] = None
    closed: bool = False

    async def close(self) -> None:
        """Close every open handle. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        for name, conn in (('matcher', self.matcher), ('wallet', self.wallet),
                           ('utxo source', self.utxo_source)):
            if conn is None:
                continue
            try:
                await conn.close()
            except Exception as e:
                logger.error(f"Error closing {name} connection: {e}")

@dataclass
class WaitResult:
    """A matched session and the live connections it runs on."""
    session: Session
    connections: Connections

    @property
    def matcher(self) -> MatcherClient:
        return self.connections.matcher

    @property
    def wallet(self) -> WalletClient:
        return self.connections.wallet

class SessionWaiter:
    """Brings the buyer to a validated state and waits to be matched.

    Wallet preconditions are checked first, then the utxo source and the
    matcher connection are set up. While waiting for the match, watchdogs
    on the wallet, the node (when one is used) and the matcher/wallet chain
    sync run alongside the participation request; whichever finishes first
    decides the outcome.
    """

    def __init__(
        self,
        config: BuyerConfig,
        reporter: Reporter,
        wallet_connector: Optional[WalletConnector] = None,
        matcher_connector: Optional[MatcherConnector] = None,
        node_connector: Optional[NodeConnector] = None,
        indexer_factory: IndexerFactory = DcrdataUtxoSource.from_config,
        wallet: Optional[WalletClient] = None,
        matcher: Optional[MatcherClient] = None,
        jitter: Callable[[float, float], float] = random.uniform,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config
        self.reporter = reporter
        self.wallet_connector = wallet_connector
        self.matcher_connector = matcher_connector
        self.node_connector = node_connector
        self.indexer_factory = indexer_factory
        self.wallet = wallet
        self.matcher = matcher
        self._jitter = jitter
        self._sleep = sleep
        self.max_amount: Optional[int] = None

    async def wait(self) -> WaitResult:
        """Set up the session and block until matched.

        Raises:
            PreconditionError: If the wallet cannot take part in a session
            ConnectionSetupError: If a collaborator cannot be reached
            WaitError: If the wait fails, times out or the chain views diverge
        """
        conns = Connections(wallet=self.wallet, matcher=self.matcher)
        try:
            try:
                await asyncio.wait_for(self._setup(conns), self.config.timing.setup_timeout)
            except asyncio.TimeoutError as e:
                raise ConnectionSetupError(
                    f"setup did not finish within {self.config.timing.setup_timeout:g}s"
                ) from e

            self.reporter.report_stage(Stage.FINDING_MATCHES, None, self.config)
            session = await self._wait_for_match(conns)
        except BaseException:
            await conns.close()
            raise

        logger.info("Matched into session", extra=session_context(session, Stage.MATCHES_FOUND))
        self.reporter.report_stage(Stage.MATCHES_FOUND, session, self.config)
        return WaitResult(session=session, connections=conns)

    async def _step(self, context: str, aw: Awaitable, error_cls=ConnectionSetupError):
        """Await one setup step, annotating its failure with ``context``."""
        try:
            return await aw
        except BuyerError as e:
            raise wrap_error(e, context) from e
        except Exception as e:
            raise error_cls(f"{context}: {e}") from e

    async def _setup(self, conns: Connections) -> None:
        cfg = self.config

        try:
            self.max_amount = amount_from_coins(cfg.max_amount)
        except ValueError as e:
            raise PreconditionError(f"invalid maximum amount: {e}") from e

        if conns.wallet is None:
            if self.wallet_connector is None:
                raise ConnectionSetupError("no wallet connection or wallet connector configured")
            self.reporter.report_stage(Stage.CONNECTING_TO_WALLET, None, cfg)
            conns.wallet = await self._step(
                "error trying to connect to wallet",
                self.wallet_connector(cfg.wallet_host, cfg.wallet_cert_file)
            )
        wallet = conns.wallet

        await self._step("error checking for wallet network",
                         wallet.check_network(cfg.chain_network), PreconditionError)
        await self._step("error testing buyer vote address",
                         wallet.test_vote_address(cfg.vote_address), PreconditionError)
        await self._step("error testing wallet passphrase",
                         wallet.test_passphrase(cfg.pass_phrase), PreconditionError)
        await self._step("error testing wallet funds",
                         wallet.test_funds(self.max_amount), PreconditionError)

        if conns.matcher is None:
            if self.matcher_connector is None:
                raise ConnectionSetupError("no matcher connection or matcher connector configured")
            if not cfg.utxos_from_dcrdata:
                if self.node_connector is None:
                    raise ConnectionSetupError("no dcrd connector configured")
                conns.utxo_source = await self._step(
                    "error connecting to dcrd", self.node_connector(cfg)
                )
                self.reporter.report_stage(Stage.CONNECTING_TO_DCRD, None, cfg)
            else:
                indexer = self.indexer_factory(cfg)
                conns.utxo_source = indexer
                await self._step("error checking if dcrdata is online",
                                 indexer.check_online(cfg.chain_network))
                self.reporter.report_stage(Stage.CONNECTING_TO_DCRDATA, None, cfg)

            self.reporter.report_stage(Stage.CONNECTING_TO_MATCHER, None, cfg)
            conns.matcher = await self._step(
                "error connecting to matcher",
                self.matcher_connector(cfg, conns.utxo_source.fetch_split_utxos)
            )

        status = await self._step("error getting status from matcher", conns.matcher.status())
        self.reporter.report_matcher_status(status)

    async def _wait_for_match(self, conns: Connections) -> Session:
        cfg = self.config
        sync_monitor = SyncMonitor(conns.matcher, conns.wallet, cfg.timing,
                                   jitter=self._jitter, sleep=self._sleep)

        match_task = asyncio.create_task(conns.matcher.participate(
            self.max_amount,
            cfg.session_name,
            cfg.vote_address,
            cfg.pool_address,
            cfg.pool_fee_rate,
            cfg.chain_network
        ))
        contexts: Dict[asyncio.Task, str] = {
            match_task: "error while waiting to participate in session",
            asyncio.create_task(conns.wallet.wait_ready_for_session()):
                "error while checking wallet readiness",
            asyncio.create_task(sync_monitor.run()):
                "error while checking matcher and wallet sync to the network",
        }
        if isinstance(conns.utxo_source, ChainNode):
            contexts[asyncio.create_task(conns.utxo_source.wait_ready_for_session())] = \
                "error while checking dcrd readiness"

        max_wait = cfg.timing.max_wait_time if cfg.timing.max_wait_time > 0 else None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait if max_wait is not None else None
        pending = set(contexts)

        try:
            while True:
                timeout = None
                if deadline is not None:
                    timeout = max(deadline - loop.time(), 0)
                done, pending = await asyncio.wait(
                    pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                if not done:
                    raise MatchTimeoutError(max_wait)

                # A finished match wins over watchdogs finishing in the same step
                if match_task in done:
                    exc = match_task.exception()
                    if exc is not None:
                        raise self._wait_error(exc, contexts[match_task]) from exc
                    return match_task.result()

                for task in done:
                    exc = task.exception()
                    if exc is not None:
                        raise self._wait_error(exc, contexts[task]) from exc
                    # a watchdog that stops without an error does not decide the wait
                    logger.debug(f"Watchdog stopped: {contexts[task]}")
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    @staticmethod
    def _wait_error(exc: BaseException, context: str) -> BuyerError:
        if isinstance(exc, BuyerError):
            return wrap_error(exc, context)
        return WaitError(f"{context}: {exc}")

"""Drives a matched session through the purchase stages."""
import asyncio
import logging
from typing import Optional

from config.settings import BuyerConfig
from models.session import Session
from models.stages import Stage
from services.interfaces import MatcherClient, Reporter, SessionWriter, WalletClient
from services.publication_watcher import PublicationWatcher
from services.session_archive import FileSessionWriter, archive_session
from utils.exceptions import (
    BuyerError,
    ChainMismatchError,
    PurchaseTimeoutError,
    SessionError,
    VoterMismatchError,
    wrap_error
)
from utils.logging import session_context

logger = logging.getLogger(__name__)

class PurchaseExecutor:
    """Runs the purchase of one matched session, start to finish.

    Stages run strictly in order and any failure aborts the attempt. Errors
    raised by matcher calls are marked unreportable, as the matcher already
    knows about them.
    """

    def __init__(
        self,
        config: BuyerConfig,
        reporter: Reporter,
        matcher: MatcherClient,
        wallet: WalletClient,
        session_writer: Optional[SessionWriter] = None,
        publication_watcher: Optional[PublicationWatcher] = None
    ):
        self.config = config
        self.reporter = reporter
        self.matcher = matcher
        self.wallet = wallet
        self.session_writer = session_writer or FileSessionWriter(config.data_dir, reporter)
        self.publication_watcher = publication_watcher or PublicationWatcher(
            wallet, reporter, config.timing.publish_poll_interval
        )
        self._deadline: Optional[float] = None

    async def execute(self, session: Session) -> None:
        """Purchase the ticket within the configured maximum time.

        Raises:
            PurchaseTimeoutError: If the purchase takes longer than allowed
            BuyerError: If any stage fails
        """
        max_time = self.config.timing.max_time
        self._deadline = asyncio.get_running_loop().time() + max_time
        try:
            await asyncio.wait_for(self._run(session), max_time)
        except asyncio.TimeoutError as e:
            raise PurchaseTimeoutError(max_time) from e

    def _stage(self, stage: Stage, session: Session) -> None:
        logger.debug(stage.description, extra=session_context(session, stage))
        self.reporter.report_stage(stage, session, self.config)

    async def _matcher_step(self, context: str, aw) -> None:
        try:
            await aw
        except BuyerError as e:
            raise wrap_error(e, context, reportable=False) from e
        except Exception as e:
            raise SessionError(f"{context}: {e}", reportable=False) from e

    async def _wallet_step(self, context: str, aw) -> None:
        try:
            await aw
        except BuyerError as e:
            raise wrap_error(e, context) from e
        except Exception as e:
            raise SessionError(f"{context}: {e}") from e

    async def check_chain_info(self, session: Session) -> None:
        """The wallet must agree with the matcher on the session's chain context."""
        chain_info = await self.wallet.current_chain_info()
        if chain_info.best_block_hash != session.mainchain_hash:
            raise ChainMismatchError(
                "mainchain tip", chain_info.best_block_hash.hex(), session.mainchain_hash.hex()
            )
        if chain_info.best_block_height != session.mainchain_height:
            raise ChainMismatchError(
                "mainchain height", chain_info.best_block_height, session.mainchain_height
            )
        if chain_info.ticket_price != session.ticket_price:
            raise ChainMismatchError(
                "ticket price", chain_info.ticket_price, session.ticket_price
            )

    def check_funded_ticket(self, session: Session) -> None:
        """Verify what the matcher returned when funding the ticket."""
        session.check_participants()
        session.check_signatures()
        session.check_revealed_secrets()

        coin, voter = session.compute_voter()
        if voter != session.voter_index:
            raise VoterMismatchError(voter, session.voter_index)
        if session.selected_coin is None:
            session.selected_coin = coin

    async def _run(self, session: Session) -> None:
        cfg = self.config

        await self._wallet_step("error checking wallet chain info", self.check_chain_info(session))

        self._stage(Stage.GENERATING_OUTPUTS, session)
        await self._wallet_step("error generating outputs",
                                self.wallet.generate_outputs(session, cfg))
        self._stage(Stage.OUTPUTS_GENERATED, session)

        self._stage(Stage.GENERATING_TICKET, session)
        await self._matcher_step("error generating ticket",
                                 self.matcher.generate_ticket(session, cfg))
        try:
            session.check_split_inputs()
        except BuyerError as e:
            raise wrap_error(e, "error verifying ticket template") from e
        self._stage(Stage.TICKET_GENERATED, session)

        self._stage(Stage.SIGNING_TICKET, session)
        await self._wallet_step("error signing transactions",
                                self.wallet.sign_transactions(session, cfg))
        self._stage(Stage.TICKET_SIGNED, session)

        self._stage(Stage.FUNDING_TICKET, session)
        await self._matcher_step("error funding ticket",
                                 self.matcher.fund_ticket(session, cfg))
        try:
            self.check_funded_ticket(session)
        except BuyerError as e:
            raise wrap_error(e, "error verifying funded ticket") from e
        self._stage(Stage.TICKET_FUNDED, session)

        await self._wallet_step("error when trying to start monitoring for session txs",
                                self.wallet.monitor_session(session))

        self._stage(Stage.FUNDING_SPLIT_TX, session)
        await self._matcher_step("error funding split tx",
                                 self.matcher.fund_split_tx(session, cfg))
        self._stage(Stage.SPLIT_TX_FUNDED, session)

        try:
            archive_session(session, cfg, self.session_writer)
        except Exception as e:
            raise SessionError(f"error saving session: {e}") from e

        if cfg.skip_wait_published_txs:
            self._stage(Stage.SKIPPED_WAITING, session)
            self._stage(Stage.SESSION_ENDED_SUCCESSFULLY, session)
            return

        remaining = None
        if self._deadline is not None:
            remaining = max(self._deadline - asyncio.get_running_loop().time(), 0)
        try:
            await self.publication_watcher.wait(session, remaining)
        except BuyerError as e:
            raise wrap_error(e, "error waiting for txs to be published", reportable=False) from e

        self._stage(Stage.SESSION_ENDED_SUCCESSFULLY, session)

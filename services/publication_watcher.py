"""Confirms the session's transactions reach the network after funding."""
import asyncio
import logging
from typing import Optional

from models.session import Session
from services.interfaces import Reporter, WalletClient
from utils.exceptions import PublicationTimeoutError, WrongTicketPublishedError
from utils.logging import session_context

logger = logging.getLogger(__name__)

class PublicationWatcher:
    """Waits until both the split transaction and a ticket are published.

    Another participant may publish a different, equally valid ticket of the
    pool first; that is reported but the wait still runs until the split
    transaction is seen too.
    """

    def __init__(self, wallet: WalletClient, reporter: Reporter, poll_interval: float = 0.25):
        self.wallet = wallet
        self.reporter = reporter
        self.poll_interval = poll_interval

    async def wait(self, session: Session, timeout: Optional[float] = None) -> None:
        """Block until both transactions were observed.

        Raises:
            WrongTicketPublishedError: If the published ticket is not the selected one
            PublicationTimeoutError: If ``timeout`` expires first
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        event = self.wallet.publication_event()
        expected_hash = session.selected_ticket.tx_hash()
        published_hash = None
        seen_split = False
        seen_ticket = False
        correct_ticket = False

        try:
            while not (seen_split and seen_ticket):
                if not seen_split and self.wallet.published_split_tx():
                    self.reporter.report_split_published()
                    seen_split = True

                if not seen_ticket:
                    published_hash = self.wallet.published_ticket_tx()
                    if published_hash is not None:
                        if published_hash == expected_hash:
                            self.reporter.report_right_ticket_published()
                            correct_ticket = True
                        else:
                            logger.warning(
                                f"Ticket {published_hash} published instead of {expected_hash}",
                                extra=session_context(session)
                            )
                            self.reporter.report_wrong_ticket_published(published_hash, session)
                        seen_ticket = True

                if seen_split and seen_ticket:
                    break

                wait_for = self.poll_interval
                if deadline is not None:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        raise PublicationTimeoutError(
                            "Timeout while waiting for published txs "
                            f"(split seen: {seen_split}, ticket seen: {seen_ticket})"
                        )
                    wait_for = min(wait_for, remaining)
                await self._pause(event, wait_for)
        except asyncio.CancelledError:
            logger.warning(
                "Cancelled while waiting for published txs",
                extra=session_context(session)
            )
            raise

        if not correct_ticket:
            raise WrongTicketPublishedError(expected_hash, published_hash)

    async def _pause(self, event: Optional[asyncio.Event], delay: float) -> None:
        if event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(event.wait(), delay)
        except asyncio.TimeoutError:
            return
        event.clear()

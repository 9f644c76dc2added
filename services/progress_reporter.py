"""Progress reporter that writes a buyer session's progress to the log."""
import logging
from typing import Optional

from tabulate import tabulate

from config.settings import BuyerConfig
from models.session import Session
from models.stages import Stage
from models.transactions import format_amount
from services.interfaces import MatcherStatus, Reporter
from utils.logging import session_context

class LoggingReporter(Reporter):
    """Reports every event of a buyer session through a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def report_stage(self, stage: Stage, session: Optional[Session], config: BuyerConfig) -> None:
        extra = session_context(session, stage)
        self.logger.info(stage.description, extra=extra)

        if stage == Stage.MATCHES_FOUND and session is not None:
            self.logger.info(
                f"Matched into session {session.id} with {session.nb_participants} participants, "
                f"contributing {format_amount(session.amount)} "
                f"(ticket price {format_amount(session.ticket_price)})",
                extra=extra
            )
        elif stage == Stage.TICKET_FUNDED and session is not None:
            rows = [
                [i, format_amount(p.amount), p.vote_address, "*" if i == session.voter_index else ""]
                for i, p in enumerate(session.participants)
            ]
            table = tabulate(rows, headers=["#", "Amount", "Vote Address", "Voter"], tablefmt="simple")
            self.logger.info(f"Ticket funded, participants:\n{table}", extra=extra)
        elif stage == Stage.SESSION_ENDED_SUCCESSFULLY and session is not None:
            self.logger.info(
                f"Ticket {session.selected_ticket.tx_hash()} purchased",
                extra=extra
            )

    def report_matcher_status(self, status: MatcherStatus) -> None:
        table = tabulate(
            [
                ["Version", status.version],
                ["Mainchain hash", status.mainchain_hash.hex()],
                ["Ticket price", format_amount(status.ticket_price)],
                ["Waiting sessions", status.waiting_sessions],
            ],
            tablefmt="plain"
        )
        self.logger.info(f"Matcher status:\n{table}")

    def report_saved_session(self, location: str) -> None:
        self.logger.info(f"Session saved to {location}")

    def report_wallet_found(self, host: str) -> None:
        self.logger.info(f"Found running wallet at {host}")

    def report_wallet_discovery_error(self, error: BaseException) -> None:
        self.logger.error(f"Error looking for running wallet: {error}")

    def report_split_published(self) -> None:
        self.logger.info("Split transaction published to the network")

    def report_right_ticket_published(self) -> None:
        self.logger.info("Correct ticket published to the network")

    def report_wrong_ticket_published(self, ticket_hash: str, session: Session) -> None:
        self.logger.warning(
            f"Wrong ticket published to the network: {ticket_hash}",
            extra=session_context(session)
        )

    def report_buying_error(self, error: BaseException) -> None:
        self.logger.error(f"Error buying split ticket: {str(error) or type(error).__name__}")

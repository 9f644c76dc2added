"""Archival of finished sessions.

A finished session is written out as a plain text report holding everything
needed to audit the purchase later: the chain context, the lottery inputs
and result, the buyer's own inputs and the final transactions.
"""
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from config.settings import BuyerConfig
from models.lottery import lottery_commitment_hash
from models.session import Session
from models.transactions import format_amount
from services.interfaces import Reporter, SessionWriter

logger = logging.getLogger(__name__)

class FileSessionWriter(SessionWriter):
    """Writes each session to ``<data_dir>/sessions/<ticket hash>``."""

    def __init__(self, data_dir: str, reporter: Optional[Reporter] = None):
        self.session_dir = Path(data_dir) / "sessions"
        self.reporter = reporter
        self.path: Optional[Path] = None
        self._file = None

    def start_writing_session(self, ticket_hash: str) -> None:
        self.session_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        self.path = self.session_dir / ticket_hash
        fd = os.open(self.path, os.O_TRUNC | os.O_CREAT | os.O_WRONLY, 0o600)
        self._file = os.fdopen(fd, "wb")

    def write(self, data: bytes) -> None:
        self._file.write(data)

    def session_writing_finished(self) -> None:
        if self._file is None:
            return
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        self._file = None
        logger.info(f"Session saved to {self.path}")
        if self.reporter is not None:
            self.reporter.report_saved_session(str(self.path))

@contextmanager
def writing_session(writer: SessionWriter, ticket_hash: str) -> Iterator[SessionWriter]:
    """Frame a session dump, finishing it on every exit path."""
    writer.start_writing_session(ticket_hash)
    try:
        yield writer
    finally:
        writer.session_writing_finished()

def archive_session(session: Session, config: BuyerConfig, writer: SessionWriter) -> None:
    """Write the text dump of a finished session to ``writer``."""
    ticket_hash = session.selected_ticket.tx_hash()

    with writing_session(writer, ticket_hash):
        def out(text: str = "") -> None:
            writer.write(f"{text}\n".encode("utf-8"))

        total_pool_fee = session.pool_fee * session.nb_participants
        contrib_perc = 0.0
        if session.ticket_price:
            contrib_perc = (session.amount + session.pool_fee) / session.ticket_price * 100

        out("====== General Info ======")
        out(f"Session ID = {session.id}")
        out(f"Mainchain Hash = {session.mainchain_hash.hex()}")
        out(f"Mainchain Height = {session.mainchain_height}")
        out(f"Ticket Price = {format_amount(session.ticket_price)}")
        out(f"Number of Participants = {session.nb_participants}")
        out(f"My Index = {session.my_index}")
        out(f"My Secret Number = {session.secret_nb}")
        out(f"My Secret Hash = {session.secret_nb_hash.hex()}")
        out(f"Commitment Amount = {format_amount(session.amount)} ({contrib_perc:.2f}%)")
        out(f"Ticket Fee = {format_amount(session.fee)} "
            f"(total = {format_amount(session.fee * session.nb_participants)})")
        out(f"Pool Fee = {format_amount(session.pool_fee)} (total = {format_amount(total_pool_fee)})")
        out(f"Split Transaction hash = {session.funded_split_tx.tx_hash()}")
        out(f"Final Ticket Hash = {ticket_hash}")
        out(f"Final Revocation Hash = {session.selected_revocation.tx_hash()}")

        commitment = lottery_commitment_hash(
            session.secret_hashes(),
            session.amounts(),
            session.vote_addresses(),
            session.mainchain_hash
        )
        out()
        out("====== Voter Selection ======")
        out(f"Participant Amounts = {[format_amount(a) for a in session.amounts()]}")
        out(f"Secret Hashes = {[h.hex() for h in session.secret_hashes()]}")
        out(f"Voter Addresses = {session.vote_addresses()}")
        out(f"Voter Lottery Commitment Hash = {commitment.hex()}")
        out(f"Secret Numbers = {session.secret_numbers()}")
        out(f"Selected Coin = {session.selected_coin}")
        out(f"Selected Voter Index = {session.voter_index}")

        out()
        out("====== My Participation Info ======")
        out(f"Total input amount: {format_amount(session.my_total_amount_in())}")
        if session.split_change is not None:
            out(f"Change amount: {format_amount(session.split_change.value)}")
        else:
            out("Change amount: [none]")
        out(f"Commitment Address: {session.ticket_output_address}")
        out(f"Split Output Address: {session.split_output_address}")
        out(f"Vote Address: {config.vote_address}")
        out(f"Pool Fee Address: {config.pool_address}")

        out()
        out("====== Final Transactions ======")
        out("== Split Transaction ==")
        out(session.funded_split_tx.hex())
        out()
        out("== Ticket ==")
        out(session.selected_ticket.hex())
        out()
        out("== Revocation ==")
        out(session.selected_revocation.hex())
        out()

        out()
        out("====== My Split Inputs ======")
        for i, outpoint in enumerate(session.split_inputs):
            out(f"Outpoint {i} = {outpoint}")

        out()
        out("====== Participant Intermediate Information ======")
        for i, p in enumerate(session.participants):
            out()
            out(f"== Participant {i} ==")
            out(f"Amount = {format_amount(p.amount)}")
            out(f"Secret Hash = {p.secret_hash.hex()}")
            out(f"Secret Number = {p.secret_nb}")
            out(f"Vote Address = {p.vote_address}")
            out(f"Vote PkScript = {p.vote_pk_script.hex()}")
            out(f"Pool PkScript = {p.pool_pk_script.hex()}")
            out(f"Ticket = {p.ticket.hex() if p.ticket else ''}")
            out(f"Revocation = {p.revocation.hex() if p.revocation else ''}")

"""Shared test doubles for buyer session tests."""
import asyncio
from typing import List, Optional

import pytest

from config.settings import BuyerConfig, LoggingConfig, TimingConfig
from models.lottery import secret_number_hash
from models.session import Participant, Session
from models.transactions import OutPoint, Transaction, TxOut, UtxoEntry
from services.interfaces import (
    ChainInfo,
    ChainNode,
    IndexerUtxoSource,
    MatcherClient,
    MatcherStatus,
    Reporter,
    SessionWriter,
    WalletClient
)

MAINCHAIN_HASH = bytes.fromhex("11" * 32)
OTHER_HASH = bytes.fromhex("22" * 32)
MAINCHAIN_HEIGHT = 250_000
TICKET_PRICE = 120_00000000
AMOUNTS = [40_00000000, 50_00000000, 30_00000000]

def make_tx(tag: str) -> Transaction:
    return Transaction(tag.encode())

def make_session(my_index: int = 1) -> Session:
    session = Session.new(
        id="session-1",
        session_token=b"token",
        amount=AMOUNTS[my_index],
        fee=10_000,
        pool_fee=500_000,
        ticket_price=TICKET_PRICE,
        mainchain_hash=MAINCHAIN_HASH,
        mainchain_height=MAINCHAIN_HEIGHT,
        nb_participants=len(AMOUNTS),
        vote_address="Dsvote",
        pool_address="Dspool"
    )
    for i, amount in enumerate(AMOUNTS):
        secret_nb = session.secret_nb if i == my_index else 1000 + i
        session.participants.append(Participant(
            secret_hash=secret_number_hash(secret_nb),
            amount=amount,
            vote_address=f"Dsvote{i}"
        ))
    session.my_index = my_index
    return session

def reveal_secrets(session: Session) -> None:
    for i, p in enumerate(session.participants):
        p.secret_nb = session.secret_nb if i == session.my_index else 1000 + i

class RecordingReporter(Reporter):
    """Reporter keeping every event it receives."""

    def __init__(self):
        self.stages = []
        self.events = []

    def report_stage(self, stage, session, config):
        self.stages.append(stage)

    def report_matcher_status(self, status):
        self.events.append(('matcher_status', status))

    def report_saved_session(self, location):
        self.events.append(('saved_session', location))

    def report_wallet_found(self, host):
        self.events.append(('wallet_found', host))

    def report_wallet_discovery_error(self, error):
        self.events.append(('wallet_discovery_error', error))

    def report_split_published(self):
        self.events.append(('split_published', None))

    def report_right_ticket_published(self):
        self.events.append(('right_ticket', None))

    def report_wrong_ticket_published(self, ticket_hash, session):
        self.events.append(('wrong_ticket', ticket_hash))

    def report_buying_error(self, error):
        self.events.append(('buying_error', error))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

class FakeMatcher(MatcherClient):
    """In-memory matching service."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session or make_session()
        self.mainchain_hashes = []
        self.status_calls = 0
        self.close_calls = 0
        self.error_reports = []
        self.failures = {}
        self.participate_calls = 0
        self.block_participate = False
        self.fund_ticket_gate: Optional[asyncio.Event] = None
        self.fund_ticket_cancelled = False
        self.wrong_voter = False

    def _maybe_fail(self, name):
        if name in self.failures:
            raise self.failures[name]

    async def status(self):
        self.status_calls += 1
        self._maybe_fail('status')
        mainchain_hash = self.mainchain_hashes.pop(0) if self.mainchain_hashes else MAINCHAIN_HASH
        return MatcherStatus(mainchain_hash=mainchain_hash, ticket_price=TICKET_PRICE, version="test")

    async def participate(self, max_amount, session_name, vote_address, pool_address,
                          pool_fee_rate, chain_network):
        self.participate_calls += 1
        self._maybe_fail('participate')
        if self.block_participate:
            await asyncio.Event().wait()
        return self.session

    async def generate_ticket(self, session, config):
        self._maybe_fail('generate_ticket')
        others = [OutPoint("bb" * 32, i) for i in range(len(session.participants) - 1)]
        session.ticket_template = make_tx("ticket-template")
        session.split_tx = make_tx("split")
        session.split_tx_inputs = list(session.split_inputs) + others
        for outpoint in session.split_tx_inputs:
            session.split_tx_utxo_map[outpoint] = UtxoEntry(value=60_00000000)

    async def fund_ticket(self, session, config):
        self._maybe_fail('fund_ticket')
        if self.fund_ticket_gate is not None:
            try:
                await self.fund_ticket_gate.wait()
            except asyncio.CancelledError:
                self.fund_ticket_cancelled = True
                raise
        reveal_secrets(session)
        session.tickets_script_sig = [f"sig{i}".encode() for i in range(session.nb_participants)]
        for i, p in enumerate(session.participants):
            p.ticket = make_tx(f"ticket-{i}")
            p.revocation = make_tx(f"revocation-{i}")
        coin, voter = session.compute_voter()
        session.voter_index = (voter + 1) % session.nb_participants if self.wrong_voter else voter
        session.selected_coin = coin
        session.selected_ticket = session.participants[voter].ticket
        session.selected_revocation = session.participants[voter].revocation

    async def fund_split_tx(self, session, config):
        self._maybe_fail('fund_split_tx')
        session.funded_split_tx = make_tx("funded-split")

    async def send_error_report(self, session_id, error):
        self.error_reports.append((session_id, error))

    async def close(self):
        self.close_calls += 1

class FakeWallet(WalletClient):
    """In-memory wallet."""

    def __init__(self):
        self.calls = []
        self.failures = {}
        self.close_calls = 0
        self.chain_info = ChainInfo(MAINCHAIN_HASH, MAINCHAIN_HEIGHT, TICKET_PRICE)
        self.chain_hashes = []
        self.ready_error: Optional[Exception] = None
        self.ready_cancelled = False
        self.auto_publish = True
        self.split_published = False
        self.ticket_published: Optional[str] = None
        self.probe_calls = 0

    async def _call(self, name):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def check_network(self, chain_network):
        await self._call('check_network')

    async def test_vote_address(self, vote_address):
        await self._call('test_vote_address')

    async def test_passphrase(self, pass_phrase):
        await self._call('test_passphrase')

    async def test_funds(self, max_amount):
        await self._call('test_funds')

    async def wait_ready_for_session(self):
        if self.ready_error is not None:
            raise self.ready_error
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.ready_cancelled = True
            raise

    async def current_chain_info(self):
        await self._call('current_chain_info')
        if self.chain_hashes:
            h = self.chain_hashes.pop(0)
            return ChainInfo(h, self.chain_info.best_block_height, self.chain_info.ticket_price)
        return self.chain_info

    async def generate_outputs(self, session, config):
        await self._call('generate_outputs')
        session.split_inputs = [OutPoint("aa" * 32, 0)]
        session.split_change = TxOut(value=5_00000000)
        session.split_output_address = "Dssplit"
        session.ticket_output_address = "Dsticket"

    async def sign_transactions(self, session, config):
        await self._call('sign_transactions')
        session.revocation_script_sig = b"revocation-sig"

    async def monitor_session(self, session):
        await self._call('monitor_session')
        if self.auto_publish:
            self.split_published = True
            self.ticket_published = session.selected_ticket.tx_hash()

    def published_split_tx(self):
        self.probe_calls += 1
        return self.split_published

    def published_ticket_tx(self):
        self.probe_calls += 1
        return self.ticket_published

    async def close(self):
        self.close_calls += 1

class FakeNode(ChainNode):
    def __init__(self):
        self.close_calls = 0
        self.ready_error: Optional[Exception] = None

    async def fetch_split_utxos(self, outpoints):
        return {op: UtxoEntry(value=1) for op in outpoints}

    async def wait_ready_for_session(self):
        if self.ready_error is not None:
            raise self.ready_error
        await asyncio.Event().wait()

    async def close(self):
        self.close_calls += 1

class FakeIndexer(IndexerUtxoSource):
    def __init__(self):
        self.close_calls = 0
        self.online_error: Optional[Exception] = None

    async def check_online(self, chain_network):
        if self.online_error is not None:
            raise self.online_error

    async def fetch_split_utxos(self, outpoints):
        return {op: UtxoEntry(value=1) for op in outpoints}

    async def close(self):
        self.close_calls += 1

class MemorySessionWriter(SessionWriter):
    def __init__(self):
        self.ticket_hash = None
        self.chunks = []
        self.finished = 0

    def start_writing_session(self, ticket_hash):
        self.ticket_hash = ticket_hash

    def write(self, data):
        self.chunks.append(data)

    def session_writing_finished(self):
        self.finished += 1

    @property
    def text(self) -> str:
        return b"".join(self.chunks).decode("utf-8")

@pytest.fixture
def config(tmp_path):
    return BuyerConfig(
        max_amount=50.0,
        vote_address="Dsvote",
        pool_address="Dspool",
        pool_fee_rate=5.0,
        wallet_host="127.0.0.1:19110",
        data_dir=str(tmp_path),
        timing=TimingConfig(
            setup_timeout=5.0,
            max_time=5.0,
            publish_poll_interval=0.01
        ),
        logging=LoggingConfig(log_file=None)
    )

@pytest.fixture
def reporter():
    return RecordingReporter()

@pytest.fixture
def matcher():
    return FakeMatcher()

@pytest.fixture
def wallet():
    return FakeWallet()

@pytest.fixture
def session_writer():
    return MemorySessionWriter()

"""Contracts of the collaborators a buyer session talks to."""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from config.settings import BuyerConfig
from models.session import Session
from models.stages import Stage
from models.transactions import OutPoint, UtxoMap

@dataclass
class MatcherStatus:
    """Status snapshot of the matching service."""
    mainchain_hash: bytes
    ticket_price: int
    version: str = ""
    waiting_sessions: int = 0

@dataclass
class ChainInfo:
    """Chain tip as seen by the wallet."""
    best_block_hash: bytes
    best_block_height: int
    ticket_price: int

class MatcherClient(ABC):
    """Connection to the matching service."""

    @abstractmethod
    async def status(self) -> MatcherStatus:
        pass

    @abstractmethod
    async def participate(
        self,
        max_amount: int,
        session_name: str,
        vote_address: str,
        pool_address: str,
        pool_fee_rate: float,
        chain_network: str
    ) -> Session:
        """Block until the service pairs this buyer into a session."""
        pass

    @abstractmethod
    async def generate_ticket(self, session: Session, config: BuyerConfig) -> None:
        """Have the service assemble the shared ticket template."""
        pass

    @abstractmethod
    async def fund_ticket(self, session: Session, config: BuyerConfig) -> None:
        """Send the buyer's signatures and receive the finalized ticket set."""
        pass

    @abstractmethod
    async def fund_split_tx(self, session: Session, config: BuyerConfig) -> None:
        pass

    @abstractmethod
    async def send_error_report(self, session_id: str, error: BaseException) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

class WalletClient(ABC):
    """Connection to the buyer's wallet."""

    @abstractmethod
    async def check_network(self, chain_network: str) -> None:
        pass

    @abstractmethod
    async def test_vote_address(self, vote_address: str) -> None:
        pass

    @abstractmethod
    async def test_passphrase(self, pass_phrase: Optional[str]) -> None:
        pass

    @abstractmethod
    async def test_funds(self, max_amount: int) -> None:
        pass

    @abstractmethod
    async def wait_ready_for_session(self) -> None:
        """Block while the wallet stays usable; raise when it stops being so."""
        pass

    @abstractmethod
    async def current_chain_info(self) -> ChainInfo:
        pass

    @abstractmethod
    async def generate_outputs(self, session: Session, config: BuyerConfig) -> None:
        pass

    @abstractmethod
    async def sign_transactions(self, session: Session, config: BuyerConfig) -> None:
        pass

    @abstractmethod
    async def monitor_session(self, session: Session) -> None:
        """Start watching the network for the session's transactions."""
        pass

    @abstractmethod
    def published_split_tx(self) -> bool:
        pass

    @abstractmethod
    def published_ticket_tx(self) -> Optional[str]:
        """Hash of the session ticket seen on the network, if any."""
        pass

    def publication_event(self) -> Optional[asyncio.Event]:
        """Event set whenever a monitored transaction is seen, if supported."""
        return None

    @abstractmethod
    async def close(self) -> None:
        pass

class UtxoSource(ABC):
    """Source of funding details for split transaction inputs."""

    @abstractmethod
    async def fetch_split_utxos(self, outpoints: List[OutPoint]) -> UtxoMap:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

class ChainNode(UtxoSource):
    """Full validating node connection."""

    @abstractmethod
    async def wait_ready_for_session(self) -> None:
        pass

class IndexerUtxoSource(UtxoSource):
    """Utxo source backed by a public block explorer."""

    @abstractmethod
    async def check_online(self, chain_network: str) -> None:
        pass

class SessionWriter(ABC):
    """Sink receiving the text dump of a finished session."""

    @abstractmethod
    def start_writing_session(self, ticket_hash: str) -> None:
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        pass

    @abstractmethod
    def session_writing_finished(self) -> None:
        pass

class Reporter(ABC):
    """Observer of a buyer session's progress. Never affects control flow."""

    @abstractmethod
    def report_stage(self, stage: Stage, session: Optional[Session], config: BuyerConfig) -> None:
        pass

    @abstractmethod
    def report_matcher_status(self, status: MatcherStatus) -> None:
        pass

    @abstractmethod
    def report_saved_session(self, location: str) -> None:
        pass

    @abstractmethod
    def report_wallet_found(self, host: str) -> None:
        pass

    @abstractmethod
    def report_wallet_discovery_error(self, error: BaseException) -> None:
        pass

    @abstractmethod
    def report_split_published(self) -> None:
        pass

    @abstractmethod
    def report_right_ticket_published(self) -> None:
        pass

    @abstractmethod
    def report_wrong_ticket_published(self, ticket_hash: str, session: Session) -> None:
        pass

    @abstractmethod
    def report_buying_error(self, error: BaseException) -> None:
        pass

UtxoProvider = Callable[[List[OutPoint]], Awaitable[UtxoMap]]
WalletConnector = Callable[[str, Optional[str]], Awaitable[WalletClient]]
NodeConnector = Callable[[BuyerConfig], Awaitable[ChainNode]]
MatcherConnector = Callable[[BuyerConfig, UtxoProvider], Awaitable[MatcherClient]]
WalletDiscovery = Callable[[BuyerConfig], Awaitable[List[str]]]
IndexerFactory = Callable[[BuyerConfig], 'IndexerUtxoSource']

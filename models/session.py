"""Data model of a single split ticket purchase attempt."""
from dataclasses import dataclass, field
from typing import List, Optional

from models.lottery import new_secret_number, secret_number_hash, select_voter
from models.transactions import OutPoint, Transaction, TxOut, UtxoMap
from utils.exceptions import SessionInvariantError

@dataclass
class Participant:
    """One participant of a session, as seen by this buyer."""
    secret_hash: bytes
    amount: int
    vote_address: str
    secret_nb: Optional[int] = None
    vote_pk_script: bytes = b""
    pool_pk_script: bytes = b""
    ticket: Optional[Transaction] = None
    revocation: Optional[Transaction] = None

@dataclass
class Session:
    """A split ticket session in progress.

    Created when the matching service pairs a set of participants and then
    owned by the purchase flow, which fills it in stage by stage. The chain
    context (mainchain hash, height, participant count) is fixed at match
    time and shared by every participant.
    """
    id: str
    session_token: bytes
    amount: int
    fee: int
    pool_fee: int
    ticket_price: int
    mainchain_hash: bytes
    mainchain_height: int
    nb_participants: int
    secret_nb: int
    secret_nb_hash: bytes

    vote_address: str = ""
    pool_address: str = ""
    split_output_address: str = ""
    ticket_output_address: str = ""
    split_change: Optional[TxOut] = None
    split_inputs: List[OutPoint] = field(default_factory=list)
    participants: List[Participant] = field(default_factory=list)
    split_tx_utxo_map: UtxoMap = field(default_factory=dict)
    _my_index: Optional[int] = field(default=None, repr=False)

    ticket_template: Optional[Transaction] = None
    split_tx: Optional[Transaction] = None
    split_tx_inputs: List[OutPoint] = field(default_factory=list)

    tickets_script_sig: List[bytes] = field(default_factory=list)
    revocation_script_sig: bytes = b""

    selected_ticket: Optional[Transaction] = None
    funded_split_tx: Optional[Transaction] = None
    selected_revocation: Optional[Transaction] = None
    voter_index: Optional[int] = None
    selected_coin: Optional[int] = None

    @classmethod
    def new(cls, id: str, session_token: bytes, amount: int, fee: int, pool_fee: int,
            ticket_price: int, mainchain_hash: bytes, mainchain_height: int,
            nb_participants: int, **kwargs) -> 'Session':
        """Create a session with a freshly generated local secret number."""
        secret_nb = new_secret_number()
        return cls(
            id=id,
            session_token=session_token,
            amount=amount,
            fee=fee,
            pool_fee=pool_fee,
            ticket_price=ticket_price,
            mainchain_hash=mainchain_hash,
            mainchain_height=mainchain_height,
            nb_participants=nb_participants,
            secret_nb=secret_nb,
            secret_nb_hash=secret_number_hash(secret_nb),
            **kwargs
        )

    @property
    def my_index(self) -> Optional[int]:
        return self._my_index

    @my_index.setter
    def my_index(self, index: int) -> None:
        if self._my_index is not None and self._my_index != index:
            raise SessionInvariantError(
                f"Buyer index already assigned ({self._my_index}), refusing {index}"
            )
        self._my_index = index

    def secret_hashes(self) -> List[bytes]:
        return [p.secret_hash for p in self.participants]

    def secret_numbers(self) -> List[Optional[int]]:
        return [p.secret_nb for p in self.participants]

    def amounts(self) -> List[int]:
        return [p.amount for p in self.participants]

    def vote_scripts(self) -> List[bytes]:
        return [p.vote_pk_script for p in self.participants]

    def vote_addresses(self) -> List[str]:
        return [p.vote_address for p in self.participants]

    def split_input_outpoints(self) -> List[OutPoint]:
        """Outpoints spent by the (shared) split transaction."""
        return list(self.split_tx_inputs)

    def my_total_amount_in(self) -> int:
        """Sum of the buyer's own split inputs that resolve in the utxo map."""
        total = 0
        for outpoint in self.split_inputs:
            entry = self.split_tx_utxo_map.get(outpoint)
            if entry is not None:
                total += entry.value
        return total

    def compute_voter(self):
        """Recompute the lottery result from the committed session data."""
        return select_voter(
            self.secret_hashes(),
            self.amounts(),
            self.vote_addresses(),
            self.mainchain_hash
        )

    def check_participants(self) -> None:
        if len(self.participants) != self.nb_participants:
            raise SessionInvariantError(
                f"Session has {len(self.participants)} participants, "
                f"expected {self.nb_participants}"
            )

    def check_split_inputs(self) -> None:
        """Every split input must resolve to its funding utxo."""
        missing = [str(op) for op in self.split_input_outpoints()
                   if op not in self.split_tx_utxo_map]
        if missing:
            raise SessionInvariantError(
                f"Split inputs missing from utxo map: {', '.join(missing)}"
            )

    def check_signatures(self) -> None:
        if len(self.tickets_script_sig) != self.nb_participants:
            raise SessionInvariantError(
                f"Got {len(self.tickets_script_sig)} ticket signatures, "
                f"expected {self.nb_participants}"
            )

    def check_revealed_secrets(self) -> None:
        """Revealed secret numbers must match the previously committed hashes."""
        for i, p in enumerate(self.participants):
            if p.secret_nb is None:
                raise SessionInvariantError(f"Participant {i} has not revealed its secret number")
            if secret_number_hash(p.secret_nb) != p.secret_hash:
                raise SessionInvariantError(
                    f"Secret number of participant {i} does not match its committed hash"
                )


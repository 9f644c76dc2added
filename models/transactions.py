"""Opaque transaction primitives used by a buyer session."""
import hashlib
import math
from dataclasses import dataclass
from typing import Dict

ATOMS_PER_COIN = 100_000_000

def amount_from_coins(coins: float) -> int:
    """Convert a coin amount into atoms, rounding to the nearest atom."""
    if math.isnan(coins) or math.isinf(coins):
        raise ValueError(f"Invalid coin amount: {coins}")
    return int(round(coins * ATOMS_PER_COIN))

def format_amount(atoms: int) -> str:
    """Render an atom amount as coins."""
    sign = "-" if atoms < 0 else ""
    whole, frac = divmod(abs(atoms), ATOMS_PER_COIN)
    return f"{sign}{whole}.{frac:08d} DCR"

@dataclass(frozen=True)
class Transaction:
    """A serialized transaction. Scripts are never interpreted."""
    raw: bytes

    def tx_hash(self) -> str:
        digest = hashlib.sha256(hashlib.sha256(self.raw).digest()).digest()
        return digest[::-1].hex()

    def hex(self) -> str:
        return self.raw.hex()

@dataclass(frozen=True)
class OutPoint:
    """Reference to a previous transaction output."""
    tx_hash: str
    index: int
    tree: int = 0

    def __str__(self) -> str:
        return f"{self.tx_hash}:{self.index}"

@dataclass(frozen=True)
class UtxoEntry:
    """Funding details of an unspent output."""
    value: int
    pk_script: bytes = b""
    version: int = 0

@dataclass(frozen=True)
class TxOut:
    value: int
    pk_script: bytes = b""

UtxoMap = Dict[OutPoint, UtxoEntry]

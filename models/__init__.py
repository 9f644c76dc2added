"""Buyer session data model."""
from .session import Session, Participant
from .stages import Stage
from .transactions import Transaction, OutPoint, UtxoEntry, TxOut, UtxoMap

__all__ = [
    'Session',
    'Participant',
    'Stage',
    'Transaction',
    'OutPoint',
    'UtxoEntry',
    'TxOut',
    'UtxoMap'
]

"""Commit-reveal voter lottery shared by all participants of a session.

Every participant evaluates the lottery over the same ordered inputs, so the
selected voter can be verified independently by anyone holding the session
data. The inputs are committed (secret hashes) before any secret number is
revealed.
"""
import hashlib
import secrets
from typing import Sequence, Tuple

SECRET_NUMBER_SIZE = 8

def new_secret_number() -> int:
    """Generate a random secret number for a new session."""
    return int.from_bytes(secrets.token_bytes(SECRET_NUMBER_SIZE), 'big')

def secret_number_hash(number: int) -> bytes:
    """Hash committed to the matcher before the number itself is revealed."""
    return hashlib.sha256(number.to_bytes(SECRET_NUMBER_SIZE, 'big')).digest()

def lottery_commitment_hash(
    secret_hashes: Sequence[bytes],
    amounts: Sequence[int],
    vote_addresses: Sequence[str],
    mainchain_hash: bytes
) -> bytes:
    """Hash of the ordered lottery inputs.

    Raises:
        ValueError: If the participant sequences have different lengths
    """
    if not (len(secret_hashes) == len(amounts) == len(vote_addresses)):
        raise ValueError(
            f"Mismatched lottery inputs: {len(secret_hashes)} hashes, "
            f"{len(amounts)} amounts, {len(vote_addresses)} addresses"
        )

    h = hashlib.sha256()
    for secret_hash in secret_hashes:
        h.update(secret_hash)
    for amount in amounts:
        h.update(amount.to_bytes(8, 'big'))
    for address in vote_addresses:
        h.update(address.encode('utf-8'))
    h.update(mainchain_hash)
    return h.digest()

def select_voter(
    secret_hashes: Sequence[bytes],
    amounts: Sequence[int],
    vote_addresses: Sequence[str],
    mainchain_hash: bytes
) -> Tuple[int, int]:
    """Select the voting participant.

    The commitment hash, taken as an integer modulo the total contribution,
    picks one coin; the voter is the participant whose contribution covers
    that coin.

    Returns:
        Tuple of (selected coin, voter index)
    """
    commitment = lottery_commitment_hash(secret_hashes, amounts, vote_addresses, mainchain_hash)
    total = sum(amounts)
    if total <= 0:
        raise ValueError("Total contribution must be positive")

    coin = int.from_bytes(commitment, 'big') % total
    cumulative = 0
    for index, amount in enumerate(amounts):
        cumulative += amount
        if coin < cumulative:
            return coin, index

    # unreachable: coin < total == cumulative
    raise ValueError("Coin outside contribution range")

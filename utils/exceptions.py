"""Custom exceptions for the split ticket buyer."""
from typing import Optional

class BuyerError(Exception):
    """Base exception for all buyer errors.

    ``reportable`` tells whether the failure should be sent to the matching
    service as a diagnostic report. Failures that originate in the matching
    service itself are not, since it already knows about them.
    """
    reportable = True

    def __init__(self, message: str, reportable: Optional[bool] = None):
        super().__init__(message)
        if reportable is not None:
            self.reportable = reportable

class PreconditionError(BuyerError):
    """Base class for wallet precondition failures."""
    pass

class NetworkMismatchError(PreconditionError):
    """Raised when the wallet runs on a different network than configured."""
    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Wallet on network {actual}, expected {expected}")

class InvalidVoteAddressError(PreconditionError):
    """Raised when the vote address is malformed or not owned by the wallet."""
    def __init__(self, address: str, reason: str):
        self.address = address
        super().__init__(f"Invalid vote address {address}: {reason}")

class WalletLockedError(PreconditionError):
    """Raised when the wallet passphrase cannot unlock the wallet."""
    pass

class InsufficientFundsError(PreconditionError):
    """Raised when the wallet cannot cover the maximum contribution."""
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient spendable funds. Required: {required}, Available: {available}"
        )

class ConnectionSetupError(BuyerError):
    """Raised when a collaborator connection cannot be established."""
    pass

class WalletDiscoveryError(ConnectionSetupError):
    """Raised when the running wallet cannot be located."""
    pass

class WaitError(BuyerError):
    """Base class for failures while waiting for a match."""
    pass

class MatchTimeoutError(WaitError):
    """Raised when the wait for a session exceeds its maximum duration."""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timeout while waiting for session in matcher ({timeout:g}s)")

class DesyncError(WaitError):
    """Raised when the matcher and wallet disagree on the chain tip twice in a row."""
    pass

class SessionError(BuyerError):
    """Base class for failures inside a matched session."""
    pass

class ChainMismatchError(SessionError):
    """Raised when wallet and matcher chain context differ at purchase time."""
    def __init__(self, field: str, wallet_value, matcher_value):
        self.field = field
        self.wallet_value = wallet_value
        self.matcher_value = matcher_value
        super().__init__(
            f"{field} of wallet ({wallet_value}) not the same as matcher ({matcher_value})"
        )

class SessionInvariantError(SessionError):
    """Raised when session data violates one of its invariants."""
    pass

class VoterMismatchError(SessionError):
    """Raised when the matcher's voter selection cannot be reproduced locally."""
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Matcher selected voter {actual}, local lottery selected {expected}")

class PurchaseTimeoutError(SessionError):
    """Raised when the purchase exceeds its maximum time."""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Purchase did not complete within {timeout:g}s")

class PublicationError(BuyerError):
    """Base class for post-funding publication failures."""
    pass

class WrongTicketPublishedError(PublicationError):
    """Raised when a ticket other than the selected one reached the network."""
    def __init__(self, expected: str, published: str):
        self.expected = expected
        self.published = published
        super().__init__(
            f"Wrong ticket published to the network: {published} (expected {expected})"
        )

class PublicationTimeoutError(PublicationError):
    """Raised when the publication wait expires before both txs are seen."""
    pass

class IndexerError(BuyerError):
    """Raised when a block explorer API request fails."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code

def wrap_error(err: BaseException, context: str, reportable: Optional[bool] = None) -> BuyerError:
    """Annotate ``err`` with ``context``, keeping its classification.

    The returned error has ``err`` as its ``__cause__`` once raised with
    ``raise wrapped from err``; its class is kept when ``err`` is a
    ``BuyerError`` so callers can still match on it.
    """
    if reportable is None:
        reportable = is_reportable(err)
    if isinstance(err, BuyerError):
        wrapped = BuyerError.__new__(type(err))
        Exception.__init__(wrapped, f"{context}: {err}")
        wrapped.__dict__.update(err.__dict__)
    else:
        wrapped = BuyerError(f"{context}: {err}")
    wrapped.reportable = reportable
    return wrapped

def is_reportable(err: BaseException) -> bool:
    """Whether ``err`` should be reported to the matching service."""
    return getattr(err, 'reportable', True)

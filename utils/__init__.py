"""Utility functions and helpers."""
from .exceptions import (
    BuyerError,
    PreconditionError,
    SessionError,
    PublicationError,
    wrap_error,
    is_reportable
)
from .logging import setup_logger, session_context

__all__ = [
    'BuyerError',
    'PreconditionError',
    'SessionError',
    'PublicationError',
    'wrap_error',
    'is_reportable',
    'setup_logger',
    'session_context'
]

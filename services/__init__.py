"""Initialize services package."""
from .interfaces import (
    MatcherClient,
    WalletClient,
    ChainNode,
    UtxoSource,
    IndexerUtxoSource,
    SessionWriter,
    Reporter,
    MatcherStatus,
    ChainInfo
)
from .sync_monitor import SyncMonitor
from .publication_watcher import PublicationWatcher
from .session_waiter import SessionWaiter, WaitResult, Connections
from .purchase_executor import PurchaseExecutor
from .session_coordinator import SessionCoordinator
from .session_archive import FileSessionWriter, archive_session
from .progress_reporter import LoggingReporter
from .dcrdata_service import DcrdataUtxoSource

__all__ = [
    'MatcherClient',
    'WalletClient',
    'ChainNode',
    'UtxoSource',
    'IndexerUtxoSource',
    'SessionWriter',
    'Reporter',
    'MatcherStatus',
    'ChainInfo',
    'SyncMonitor',
    'PublicationWatcher',
    'SessionWaiter',
    'WaitResult',
    'Connections',
    'PurchaseExecutor',
    'SessionCoordinator',
    'FileSessionWriter',
    'archive_session',
    'LoggingReporter',
    'DcrdataUtxoSource'
]

import asyncio

import pytest

from conftest import FakeWallet, RecordingReporter, make_session, make_tx
from services.publication_watcher import PublicationWatcher
from utils.exceptions import PublicationTimeoutError, WrongTicketPublishedError


def funded_session():
    session = make_session()
    session.selected_ticket = make_tx("ticket-0")
    return session


class DelayedWallet(FakeWallet):
    """Reports the split transaction only after a few probes."""

    def __init__(self, split_after: int):
        super().__init__()
        self.split_after = split_after
        self.split_probes = 0

    def published_split_tx(self):
        self.split_probes += 1
        return self.split_probes > self.split_after


class EventWallet(FakeWallet):
    def __init__(self):
        super().__init__()
        self.event = asyncio.Event()

    def publication_event(self):
        return self.event


def test_matching_ticket_succeeds():
    session = funded_session()
    wallet = FakeWallet()
    wallet.split_published = True
    wallet.ticket_published = session.selected_ticket.tx_hash()
    reporter = RecordingReporter()

    asyncio.run(PublicationWatcher(wallet, reporter, 0.01).wait(session, timeout=1.0))

    assert reporter.names().count('right_ticket') == 1
    assert reporter.names().count('split_published') == 1
    assert 'wrong_ticket' not in reporter.names()


def test_keeps_polling_until_split_is_seen():
    session = funded_session()
    wallet = DelayedWallet(split_after=3)
    wallet.ticket_published = session.selected_ticket.tx_hash()
    reporter = RecordingReporter()

    asyncio.run(PublicationWatcher(wallet, reporter, 0.01).wait(session, timeout=1.0))

    assert wallet.split_probes == 4
    assert reporter.names() == ['right_ticket', 'split_published']


def test_wrong_ticket_is_terminal_after_split():
    session = funded_session()
    wrong_hash = make_tx("someone-else").tx_hash()
    wallet = DelayedWallet(split_after=2)
    wallet.ticket_published = wrong_hash
    reporter = RecordingReporter()

    with pytest.raises(WrongTicketPublishedError) as excinfo:
        asyncio.run(PublicationWatcher(wallet, reporter, 0.01).wait(session, timeout=1.0))

    assert excinfo.value.published == wrong_hash
    assert ('wrong_ticket', wrong_hash) in reporter.events
    assert 'right_ticket' not in reporter.names()
    assert 'split_published' in reporter.names()


def test_times_out_when_nothing_is_published():
    session = funded_session()
    reporter = RecordingReporter()

    with pytest.raises(PublicationTimeoutError, match="split seen: False"):
        asyncio.run(PublicationWatcher(FakeWallet(), reporter, 0.01).wait(session, timeout=0.05))

    assert reporter.events == []


def test_cancellation_propagates():
    session = funded_session()

    async def scenario():
        watcher = PublicationWatcher(FakeWallet(), RecordingReporter(), 0.01)
        task = asyncio.create_task(watcher.wait(session))
        await asyncio.sleep(0.03)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(scenario())


def test_wakes_up_on_publication_event():
    session = funded_session()
    reporter = RecordingReporter()

    async def scenario():
        wallet = EventWallet()
        # a poll interval this long would never finish the test without the event
        watcher = PublicationWatcher(wallet, reporter, 30.0)
        task = asyncio.create_task(watcher.wait(session, timeout=60.0))
        await asyncio.sleep(0.01)
        wallet.split_published = True
        wallet.ticket_published = session.selected_ticket.tx_hash()
        wallet.event.set()
        await asyncio.wait_for(task, 5.0)

    asyncio.run(scenario())
    assert reporter.names() == ['split_published', 'right_ticket']

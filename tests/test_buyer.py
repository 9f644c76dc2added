import asyncio
import logging

import pytest

import buyer
from conftest import FakeIndexer
from models.stages import Stage
from utils.exceptions import PreconditionError


def test_buy_split_ticket(config, reporter, matcher, wallet, session_writer):
    config.skip_wait_published_txs = True

    asyncio.run(buyer.buy_split_ticket(
        config,
        reporter,
        wallet=wallet,
        matcher=matcher,
        session_writer=session_writer,
        indexer_factory=lambda cfg: FakeIndexer()
    ))

    assert reporter.stages[-1] == Stage.SESSION_ENDED_SUCCESSFULLY
    assert session_writer.finished == 1
    assert logging.getLogger('services').handlers


def test_buy_split_ticket_propagates_failures(config, reporter, matcher, wallet):
    wallet.failures['check_network'] = RuntimeError("wallet on testnet3")

    with pytest.raises(PreconditionError, match="wallet on testnet3"):
        asyncio.run(buyer.buy_split_ticket(config, reporter, wallet=wallet, matcher=matcher))

    assert reporter.names()[-1] == 'buying_error'


def test_configure_logging_levels(config):
    config.logging.level = "DEBUG"

    logger = buyer.configure_logging(config)

    assert logger.name == 'buyer'
    assert logger.level == logging.DEBUG
    assert logging.getLogger('services').level == logging.DEBUG
    assert logging.getLogger('aiohttp.client').level == logging.WARNING

"""Runs a split ticket purchase with logging configured from the buyer config."""
import asyncio
import logging
from typing import Optional

from config.settings import BuyerConfig, load_config
from services.interfaces import Reporter
from services.progress_reporter import LoggingReporter
from services.session_coordinator import SessionCoordinator
from utils.logging import setup_logger

# Loggers of the packages doing runtime work
LOGGER_NAMES = ['services', 'buyer']

def configure_logging(config: BuyerConfig) -> logging.Logger:
    """Attach console (and optional file) output to the buyer loggers."""
    for name in ['asyncio', 'aiohttp.access', 'aiohttp.client']:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name in LOGGER_NAMES:
        setup_logger(name, config.logging.log_file, config.logging.level)
    return logging.getLogger('buyer')

async def buy_split_ticket(
    config: Optional[BuyerConfig] = None,
    reporter: Optional[Reporter] = None,
    **collaborators
) -> None:
    """Buy one split ticket.

    ``collaborators`` are handed to :class:`SessionCoordinator`: the wallet,
    matcher and node connectors (or already connected clients), wallet
    discovery and an optional session writer.
    """
    config = config or load_config()
    logger = configure_logging(config)
    logger.info(
        f"Starting split ticket purchase on {config.chain_network} "
        f"(max amount {config.max_amount}, matcher {config.matcher_host})"
    )

    coordinator = SessionCoordinator(config, reporter or LoggingReporter(), **collaborators)
    await coordinator.buy_split_ticket()
    logger.info("Split ticket purchase finished")

def main(**collaborators):
    """Run a purchase until it finishes or the user interrupts it."""
    try:
        asyncio.run(buy_split_ticket(**collaborators))
    except KeyboardInterrupt:
        logging.getLogger('buyer').info("Received keyboard interrupt, purchase aborted")

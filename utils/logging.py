import logging
import colorlog
from pathlib import Path

class SessionContextFilter(logging.Filter):
    """Add buyer session context to log records."""
    def filter(self, record):
        # Ensure all records have certain attributes, even if empty
        for attr in ['session_id', 'stage']:
            if not hasattr(record, attr):
                setattr(record, attr, None)
        return True

def session_context(session=None, stage=None) -> dict:
    """Build the ``extra`` mapping for a log call about a session."""
    return {
        'session_id': getattr(session, 'id', None),
        'stage': stage.name if stage is not None else None,
    }

def setup_logger(name: str, log_file: str = None, level: str = "INFO") -> logging.Logger:
    """Set up a colored logger instance with optional file output."""

    # Get or create logger
    logger = logging.getLogger(name)

    # Clear any existing handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.setLevel(level)
    logger.propagate = False

    # Add session context filter
    logger.addFilter(SessionContextFilter())

    # Create console handler with colored formatting
    console_handler = colorlog.StreamHandler()
    console_handler.setLevel(level)

    color_formatter = colorlog.ColoredFormatter(
        "%(asctime)s - %(log_color)s%(levelname)-8s%(reset)s - %(message)s"
        " [session:%(session_id)s] [stage:%(stage)s]",
        datefmt="%Y-%m-%d %H:%M:%S",
        reset=True,
        log_colors={
            'DEBUG':    'cyan',
            'INFO':     'green',
            'WARNING':  'yellow',
            'ERROR':    'red',
            'CRITICAL': 'red,bg_white',
        }
    )

    console_handler.setFormatter(color_formatter)
    logger.addHandler(console_handler)

    # Add file handler if specified
    if log_file:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        file_handler = logging.FileHandler(
            filename=log_dir / log_file,
            encoding="utf-8",
            mode="a"
        )
        # Detailed formatter for file logs
        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            " [session:%(session_id)s] [stage:%(stage)s]",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

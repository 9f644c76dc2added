"""Buyer configuration."""
from .settings import BuyerConfig, TimingConfig, LoggingConfig, load_config

__all__ = [
    'BuyerConfig',
    'TimingConfig',
    'LoggingConfig',
    'load_config'
]

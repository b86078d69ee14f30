"""Structured logging: JSON formatter and setup."""

from listening_stats.logging.formatter import JSONLogFormatter
from listening_stats.logging.setup import configure_logging

__all__ = ["JSONLogFormatter", "configure_logging"]

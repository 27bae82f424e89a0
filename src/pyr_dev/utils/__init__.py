"""Shared utilities."""

from .rich_logging import ChainLogFormatter, ContextLogger, setup_rich_logging

__all__ = ["ChainLogFormatter", "ContextLogger", "setup_rich_logging"]

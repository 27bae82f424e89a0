"""Adapters exposing the chain engine to view layers."""

from .chain_messages import ChainMessageHandler, chain_summary, format_chain_details

__all__ = ["ChainMessageHandler", "chain_summary", "format_chain_details"]

"""
Exception hierarchy for the DEX pool feed.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for all feed errors."""


class SubscriptionError(MonitorError):
    """
    A chain's log subscription failed or dropped.

    terminal=True means the subscriber has given up on this chain and will
    not produce any more logs.
    """

    def __init__(self, chain_id: int, message: str, terminal: bool = False) -> None:
        super().__init__(message)
        self.chain_id = chain_id
        self.terminal = terminal


class AllChainsFailedError(MonitorError):
    """Raised by the control loop once no chain subscription remains usable."""


class MetadataError(MonitorError):
    """Raised when ram / bootstrap metadata files cannot be read or written."""


class TokenMetadataError(MonitorError):
    """Raised when a pool's token addresses cannot be fetched over RPC."""

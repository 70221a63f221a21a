# ballot_engine/core/ports/__init__.py
"""
Core Ports (Interfaces).

This package defines the Protocols that the Infrastructure Adapters must
implement. They let the use cases read ledger state and fall back to demo
polls without knowing whether the other side is a Solana RPC node, a mock
or a static table.
"""

from .fallback_resolver import IFallbackResolver
from .ledger_gateway import ILedgerGateway

__all__ = [
    "IFallbackResolver",
    "ILedgerGateway",
]

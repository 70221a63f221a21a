# ballot_engine/adapters/ledger/__init__.py
"""
Ledger adapter: the D21 Anchor program reached over Solana JSON-RPC.

- `codec`: account layouts, instruction encoding, program error parsing.
- `solana_rpc`: the ILedgerGateway implementation.
"""

from .solana_rpc import SolanaRpcGateway

__all__ = ["SolanaRpcGateway"]

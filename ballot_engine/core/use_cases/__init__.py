# ballot_engine/core/use_cases/__init__.py
"""
Core Use Cases (Application Logic).

The interactors of the ballot engine. They orchestrate the flow between the
domain rules and the Ports (Ledger Gateway, Fallback Resolver):
1. Parsing request values into domain types.
2. Reading ledger state through the gateway.
3. Returning domain results (transactions, simulated outcomes, diagnostics).
"""

from .ballot_service import BallotService
from .build_transaction import TransactionBuilder
from .diagnose_poll import DiagnosePoll
from .reclaim_voter_record import ReclaimVoterRecord
from .submit_ballot import SubmitBallot

__all__ = [
    "BallotService",
    "TransactionBuilder",
    "DiagnosePoll",
    "ReclaimVoterRecord",
    "SubmitBallot",
]

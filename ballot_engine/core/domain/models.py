# ballot_engine/core/domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

U8_MAX = 0xFF
U32_MAX = 0xFFFFFFFF
U64_MAX = 0xFFFFFFFFFFFFFFFF

# Fixed size of the zero-padded candidate name buffer on-chain
CANDIDATE_NAME_LEN = 32


class BallotMode(str, Enum):
    """Whether a response is backed by the ledger or simulated in memory."""
    LEDGER = "ledger"
    SIMULATED = "simulated"


# --- Ledger snapshots ---

@dataclass(frozen=True)
class PollConfig:
    """
    Snapshot of a poll account.

    `max_positive` / `max_negative` are the per-voter allowances
    (`plus_votes_allowed` / `minus_votes_allowed` in the program).
    """
    poll_id: int
    description: str
    poll_start: int
    poll_end: int
    candidate_count: int
    seats: int
    max_positive: int
    max_negative: int


@dataclass(frozen=True)
class CandidateAccount:
    address: Pubkey
    name: str
    plus_votes: int = 0
    minus_votes: int = 0


@dataclass(frozen=True)
class VoterRecord:
    has_voted: bool
    plus_used: int = 0
    minus_used: int = 0


# --- Ballot ---

@dataclass(frozen=True)
class VoteAllocation:
    """One (candidate, weight) pair. Weight is a u8 on the wire."""
    candidate: Pubkey
    votes: int = 1


@dataclass(frozen=True)
class ValidatedBallot:
    """
    A ballot that passed every D21 rule.

    `candidate_accounts` holds each referenced candidate once, first-seen
    order (plus list before minus list); it becomes the instruction's
    remaining accounts.
    """
    plus: Tuple[VoteAllocation, ...]
    minus: Tuple[VoteAllocation, ...]
    plus_total: int
    minus_total: int
    candidate_accounts: Tuple[Pubkey, ...]


# --- Outputs ---

@dataclass(frozen=True)
class BallotSummary:
    poll_id: int
    positive_votes: int
    negative_votes: int

    @property
    def text(self) -> str:
        return (
            f"Submitting {self.positive_votes} positive and "
            f"{self.negative_votes} negative votes to poll {self.poll_id}"
        )


@dataclass(frozen=True)
class UnsignedTransaction:
    """Base64 wire encodings of an unsigned legacy transaction and its message."""
    transaction: str
    message: str
    recent_checkpoint: str
    fee_payer: Pubkey
    summary: BallotSummary


@dataclass(frozen=True)
class TransactionOutcome:
    transaction: UnsignedTransaction
    mode: BallotMode = BallotMode.LEDGER


@dataclass(frozen=True)
class SimulatedOutcome:
    """Result of a demo-mode ballot. Nothing was recorded anywhere."""
    poll_id: int
    plus: Tuple[Pubkey, ...]
    minus: Tuple[Pubkey, ...]
    plus_names: Tuple[str, ...]
    minus_names: Tuple[str, ...]
    mode: BallotMode = BallotMode.SIMULATED

    @property
    def message(self) -> str:
        return f"Demo vote accepted for poll {self.poll_id}. No blockchain transaction was created."

    @property
    def note(self) -> str:
        return f"Poll {self.poll_id} is not initialized on-chain. This is a simulation."


@dataclass(frozen=True)
class PollView:
    """Poll metadata plus candidates, as shown to a voter before casting."""
    poll_id: int
    mode: BallotMode
    title: str
    description: str
    name: str
    max_positive: int
    max_negative: int
    seats: int
    candidates: List[CandidateAccount] = field(default_factory=list)
    poll_start: Optional[int] = None
    poll_end: Optional[int] = None

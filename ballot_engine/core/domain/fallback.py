# ballot_engine/core/domain/fallback.py
"""
Demo-mode polls.

When a poll has not been initialized on-chain, the service can still show
and exercise the D21 rules against a fixed, in-memory definition. Nothing
here ever claims a vote was recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from solders.pubkey import Pubkey

from ballot_engine.core.domain.addresses import AddressDeriver, candidate_name_bytes
from ballot_engine.core.domain.ballot_rules import ensure_known_candidates, validate_ballot
from ballot_engine.core.domain.models import (
    BallotMode,
    CandidateAccount,
    PollConfig,
    PollView,
    SimulatedOutcome,
    VoteAllocation,
)


@dataclass(frozen=True)
class FallbackPoll:
    poll_id: int
    title: str
    description: str
    name: str
    max_positive: int
    max_negative: int
    candidates: Tuple[str, ...]

    def __post_init__(self):
        for candidate in self.candidates:
            candidate_name_bytes(candidate)

    def poll_config(self) -> PollConfig:
        return PollConfig(
            poll_id=self.poll_id,
            description=self.name,
            poll_start=0,
            poll_end=0,
            candidate_count=len(self.candidates),
            seats=0,
            max_positive=self.max_positive,
            max_negative=self.max_negative,
        )

    def candidate_accounts(self, deriver: AddressDeriver) -> List[CandidateAccount]:
        """Candidates at the addresses they would occupy once seeded on-chain."""
        return [
            CandidateAccount(address=deriver.candidate_address(self.poll_id, name), name=name)
            for name in self.candidates
        ]

    def view(self, deriver: AddressDeriver) -> PollView:
        return PollView(
            poll_id=self.poll_id,
            mode=BallotMode.SIMULATED,
            title=self.title,
            description=self.description,
            name=self.name,
            max_positive=self.max_positive,
            max_negative=self.max_negative,
            seats=0,
            candidates=self.candidate_accounts(deriver),
        )


def simulate_ballot(
    fallback: FallbackPoll,
    deriver: AddressDeriver,
    plus: Sequence[VoteAllocation],
    minus: Sequence[VoteAllocation],
) -> SimulatedOutcome:
    """
    Re-runs the ballot rules in memory against a fallback poll.

    The voter is treated as never having voted: there is no ledger state to
    consult. Candidate addresses must be the derived fallback addresses.
    """
    candidates = fallback.candidate_accounts(deriver)
    names: Dict[Pubkey, str] = {c.address: c.name for c in candidates}

    ballot = validate_ballot(fallback.poll_config(), False, plus, minus)
    ensure_known_candidates(ballot, names)

    return SimulatedOutcome(
        poll_id=fallback.poll_id,
        plus=tuple(a.candidate for a in ballot.plus),
        minus=tuple(a.candidate for a in ballot.minus),
        plus_names=tuple(names[a.candidate] for a in ballot.plus),
        minus_names=tuple(names[a.candidate] for a in ballot.minus),
    )

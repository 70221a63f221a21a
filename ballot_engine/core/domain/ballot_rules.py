# ballot_engine/core/domain/ballot_rules.py
"""
D21 ballot rules.

`validate_ballot` applies the same checks as the ledger program's `vote`
instruction, in the same order, so a ballot rejected here carries the error
code the program would have returned:

    1. AlreadyVoted           voter record is terminal
    2. EmptyBallot            no positive vote (product rule, off-chain only)
    3. TooManyPlus            sum(plus)  > max_positive
    4. TooManyMinus           sum(minus) > max_negative
    5. InvalidTotal           sum(plus) + sum(minus) >= candidate_count
    6. MinusRequiresTwoPlus   minus votes cast with sum(plus) < 2
    7. Overflow               a weight outside u8, or a u64 tally would wrap

The check here is advisory: two concurrent requests can both pass it. Only
the program's atomic voter-record creation prevents a double vote.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ballot_engine.core.domain.exceptions import (
    AlreadyVotedError,
    BallotOverflowError,
    EmptyBallotError,
    InvalidCandidateAddressError,
    InvalidTotalError,
    MinusRequiresTwoPlusError,
    TooManyMinusError,
    TooManyPlusError,
)
from ballot_engine.core.domain.models import (
    U8_MAX,
    U64_MAX,
    CandidateAccount,
    PollConfig,
    ValidatedBallot,
    VoteAllocation,
)

# Negative votes unlock only once this many positive votes are cast
MIN_PLUS_FOR_MINUS = 2


def validate_ballot(
    poll: PollConfig,
    voter_has_voted: bool,
    plus: Sequence[VoteAllocation],
    minus: Sequence[VoteAllocation],
    tallies: Optional[Mapping[Pubkey, CandidateAccount]] = None,
) -> ValidatedBallot:
    """
    Validates a proposed ballot against the poll configuration.

    Args:
        poll: Poll snapshot (ledger or fallback).
        voter_has_voted: Advisory flag from the voter record.
        plus: Positive allocations; duplicates allowed, each unit counts.
        minus: Negative allocations.
        tallies: Current candidate tallies, keyed by address. When given,
            the u64 overflow check runs against them.

    Returns:
        The normalized ValidatedBallot.

    Raises:
        BallotError: The first violated rule, in program order.
    """
    if voter_has_voted:
        raise AlreadyVotedError()

    if not plus:
        raise EmptyBallotError()

    sum_plus = sum(a.votes for a in plus)
    sum_minus = sum(a.votes for a in minus)

    if sum_plus > poll.max_positive:
        raise TooManyPlusError(
            f"Too many positive votes: {sum_plus} (max {poll.max_positive})"
        )

    if sum_minus > poll.max_negative:
        raise TooManyMinusError(
            f"Too many negative votes: {sum_minus} (max {poll.max_negative})"
        )

    if sum_plus + sum_minus >= poll.candidate_count:
        raise InvalidTotalError(
            f"Total votes must be less than {poll.candidate_count}, got {sum_plus + sum_minus}"
        )

    if sum_minus > 0 and sum_plus < MIN_PLUS_FOR_MINUS:
        raise MinusRequiresTwoPlusError(
            f"At least {MIN_PLUS_FOR_MINUS} positive votes required to cast negative votes"
        )

    for allocation in (*plus, *minus):
        if not 0 <= allocation.votes <= U8_MAX:
            raise BallotOverflowError(
                f"Vote weight {allocation.votes} for {allocation.candidate} does not fit in a byte"
            )

    ballot = ValidatedBallot(
        plus=tuple(plus),
        minus=tuple(minus),
        plus_total=sum_plus,
        minus_total=sum_minus,
        candidate_accounts=unique_candidates(plus, minus),
    )
    if tallies:
        check_tallies(ballot, tallies)
    return ballot


def check_tallies(ballot: ValidatedBallot, tallies: Mapping[Pubkey, CandidateAccount]) -> None:
    """
    The u64 half of the Overflow rule. Needs the candidates' current tallies,
    so callers that read them from the ledger run it after `validate_ballot`.
    """
    added_plus = _weights_by_candidate(ballot.plus)
    added_minus = _weights_by_candidate(ballot.minus)

    for address, candidate in tallies.items():
        if candidate.plus_votes + added_plus.get(address, 0) > U64_MAX:
            raise BallotOverflowError(f"Positive tally of {candidate.name!r} would overflow")
        if candidate.minus_votes + added_minus.get(address, 0) > U64_MAX:
            raise BallotOverflowError(f"Negative tally of {candidate.name!r} would overflow")


def _weights_by_candidate(allocations: Iterable[VoteAllocation]) -> Dict[Pubkey, int]:
    weights: Dict[Pubkey, int] = defaultdict(int)
    for allocation in allocations:
        weights[allocation.candidate] += allocation.votes
    return weights


def unique_candidates(
    plus: Sequence[VoteAllocation],
    minus: Sequence[VoteAllocation],
) -> Tuple[Pubkey, ...]:
    """Every referenced candidate once, in first-seen order."""
    seen: Dict[Pubkey, None] = {}
    for allocation in (*plus, *minus):
        seen.setdefault(allocation.candidate, None)
    return tuple(seen)


def ensure_known_candidates(ballot: ValidatedBallot, known: Iterable[Pubkey]) -> None:
    """
    Rejects a ballot that references an address outside the poll's candidate set.
    Called after `validate_ballot` so D21 rule violations take precedence.
    """
    known_set = set(known)
    for address in ballot.candidate_accounts:
        if address not in known_set:
            raise InvalidCandidateAddressError(
                f"{address} is not a candidate of this poll"
            )

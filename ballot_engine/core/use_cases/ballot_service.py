# ballot_engine/core/use_cases/ballot_service.py
import asyncio
from typing import Dict, List, Sequence, Union

import structlog
from solders.pubkey import Pubkey

from ballot_engine.core.domain.addresses import AddressDeriver, parse_pubkey
from ballot_engine.core.domain.ballot_rules import (
    check_tallies,
    ensure_known_candidates,
    validate_ballot,
)
from ballot_engine.core.domain.exceptions import (
    InvalidCandidateAddressError,
    InvalidVoterIdentityError,
    LedgerUnavailableError,
    NameTooLongError,
    PollNotFoundError,
)
from ballot_engine.core.domain.fallback import FallbackPoll, simulate_ballot
from ballot_engine.core.domain.models import (
    BallotMode,
    CandidateAccount,
    PollConfig,
    PollView,
    SimulatedOutcome,
    TransactionOutcome,
    VoteAllocation,
)
from ballot_engine.core.ports.fallback_resolver import IFallbackResolver
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.core.use_cases.build_transaction import TransactionBuilder
from ballot_engine.shared.observability import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)

BallotOutcome = Union[TransactionOutcome, SimulatedOutcome]


class BallotService:
    """
    Use Case: The single entry point for viewing a poll and casting a ballot.

    Flow:
        addresses -> ledger reads -> [validator | fallback] -> transaction builder

    Both the Ledger Gateway and the Fallback Resolver are injected Ports, so
    the same rules and error messages apply whichever one answers.
    """

    def __init__(
        self,
        gateway: ILedgerGateway,
        fallback_resolver: IFallbackResolver,
        deriver: AddressDeriver,
        builder: TransactionBuilder,
    ):
        self.gateway = gateway
        self.fallback_resolver = fallback_resolver
        self.deriver = deriver
        self.builder = builder

    # --- GET: poll metadata ---

    async def describe_poll(self, poll_id: int) -> PollView:
        with tracer.start_as_current_span("use_case.describe_poll") as span:
            span.set_attribute("ballot.poll_id", poll_id)

            try:
                poll = await self.gateway.fetch_poll(self.deriver.poll_address(poll_id))
                if poll is None:
                    logger.info("poll_not_on_chain", poll_id=poll_id)
                    return self._fallback(poll_id).view(self.deriver)
                candidates = await self.gateway.list_candidates(poll_id)
            except LedgerUnavailableError as e:
                logger.warning("describe_poll_degraded", poll_id=poll_id, error=e.message)
                return self._fallback(poll_id).view(self.deriver)

            span.set_attribute("ballot.mode", BallotMode.LEDGER.value)
            return self._ledger_view(poll_id, poll, candidates)

    def _ledger_view(self, poll_id: int, poll: PollConfig, candidates: List[CandidateAccount]) -> PollView:
        return PollView(
            poll_id=poll_id,
            mode=BallotMode.LEDGER,
            title=f"Poll {poll_id}: {poll.description}",
            description=(
                f"D21 Voting System - Cast up to {poll.max_positive} positive and "
                f"{poll.max_negative} negative votes. This poll has {len(candidates)} "
                f"candidates competing for {poll.seats} seats."
            ),
            name=poll.description,
            max_positive=poll.max_positive,
            max_negative=poll.max_negative,
            seats=poll.seats,
            candidates=sorted(candidates, key=lambda c: c.name),
            poll_start=poll.poll_start,
            poll_end=poll.poll_end,
        )

    # --- POST: cast a ballot ---

    async def cast_ballot(
        self,
        poll_id: int,
        voter_identity: str,
        positive: Sequence[str],
        negative: Sequence[str],
    ) -> BallotOutcome:
        """
        Validates a ballot and returns either an unsigned vote transaction or,
        when the poll cannot be read or is not on-chain, a simulated acceptance.

        Raises:
            BallotError: Any rule violation, InvalidVoterIdentity,
                InvalidCandidateAddress, or PollNotFound.
            LedgerUnavailableError: The poll was read but a later candidate or
                checkpoint read failed.
        """
        with tracer.start_as_current_span("use_case.cast_ballot") as span:
            span.set_attribute("ballot.poll_id", poll_id)
            span.set_attribute("ballot.plus_count", len(positive))
            span.set_attribute("ballot.minus_count", len(negative))

            voter = parse_pubkey(voter_identity, InvalidVoterIdentityError)
            plus = self._allocations(positive)
            minus = self._allocations(negative)

            logger.info("ballot_received", poll_id=poll_id, voter=str(voter),
                        plus=len(plus), minus=len(minus))

            try:
                poll = await self.gateway.fetch_poll(self.deriver.poll_address(poll_id))
            except LedgerUnavailableError as e:
                logger.warning("cast_ballot_degraded", poll_id=poll_id, stage="poll", error=e.message)
                return self._simulate(poll_id, plus, minus)

            if poll is None:
                logger.info("poll_not_on_chain", poll_id=poll_id)
                return self._simulate(poll_id, plus, minus)

            # Candidates are read only for a ballot that passed the rules
            has_voted = await self._voter_has_voted(poll_id, voter)
            ballot = validate_ballot(poll, has_voted, plus, minus)

            # The poll is on-chain: losing the ledger now is a 503, not a demo vote
            try:
                tallies = await self._candidate_tallies(poll_id, ballot.candidate_accounts)
                check_tallies(ballot, tallies)
                ensure_known_candidates(ballot, tallies)
                transaction = await self.builder.build(poll, poll_id, voter, ballot)
            except LedgerUnavailableError as e:
                logger.error("cast_ballot_ledger_lost", poll_id=poll_id, error=e.message)
                raise

            span.set_attribute("ballot.mode", BallotMode.LEDGER.value)
            return TransactionOutcome(transaction=transaction)

    def _allocations(self, addresses: Sequence[str]) -> List[VoteAllocation]:
        return [
            VoteAllocation(candidate=parse_pubkey(a, InvalidCandidateAddressError), votes=1)
            for a in addresses
        ]

    async def _voter_has_voted(self, poll_id: int, voter: Pubkey) -> bool:
        """A record that cannot be read counts as 'not yet voted'; the ledger has the final say."""
        address = self.deriver.voter_record_address(poll_id, voter)
        try:
            record = await self.gateway.fetch_voter_record(address)
        except LedgerUnavailableError as e:
            logger.warning("voter_record_unreadable", poll_id=poll_id, voter=str(voter), error=e.message)
            return False
        return bool(record and record.has_voted)

    async def _candidate_tallies(
        self,
        poll_id: int,
        addresses: Sequence[Pubkey],
    ) -> Dict[Pubkey, CandidateAccount]:
        """
        Fetches every referenced candidate concurrently. Only accounts whose
        address re-derives from (poll_id, name) belong to this poll.
        """
        fetched = await asyncio.gather(*(self.gateway.fetch_candidate(a) for a in addresses))

        tallies: Dict[Pubkey, CandidateAccount] = {}
        for candidate in fetched:
            if candidate is None:
                continue
            try:
                expected = self.deriver.candidate_address(poll_id, candidate.name)
            except NameTooLongError:
                continue
            if expected == candidate.address:
                tallies[candidate.address] = candidate
        return tallies

    # --- Fallback ---

    def _fallback(self, poll_id: int) -> FallbackPoll:
        fallback = self.fallback_resolver.resolve(poll_id)
        if fallback is None:
            raise PollNotFoundError(
                f"Poll {poll_id} not found on-chain and has no demo definition."
            )
        return fallback

    def _simulate(
        self,
        poll_id: int,
        plus: Sequence[VoteAllocation],
        minus: Sequence[VoteAllocation],
    ) -> SimulatedOutcome:
        outcome = simulate_ballot(self._fallback(poll_id), self.deriver, plus, minus)
        logger.info("ballot_simulated", poll_id=poll_id, plus=len(outcome.plus), minus=len(outcome.minus))
        return outcome

# ballot_engine/core/use_cases/diagnose_poll.py
from dataclasses import dataclass, field
from typing import List, Optional

import structlog
from solders.pubkey import Pubkey

from ballot_engine.core.domain.addresses import AddressDeriver
from ballot_engine.core.domain.exceptions import LedgerUnavailableError
from ballot_engine.core.domain.models import CandidateAccount, PollConfig
from ballot_engine.core.ports.fallback_resolver import IFallbackResolver
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway

logger = structlog.get_logger()


@dataclass(frozen=True)
class CandidateCheck:
    """Whether a demo candidate name is already seeded at its derived address."""
    name: str
    expected_address: Pubkey
    found: bool
    on_chain_name: Optional[str] = None


@dataclass(frozen=True)
class PollDiagnostics:
    poll_id: int
    poll_address: Pubkey
    poll_exists: bool
    poll: Optional[PollConfig] = None
    candidates: List[CandidateAccount] = field(default_factory=list)
    candidate_checks: List[CandidateCheck] = field(default_factory=list)
    ledger_error: Optional[str] = None


class DiagnosePoll:
    """
    Use Case: Debug view of one poll.

    Compares the addresses the demo candidate names would occupy with the
    candidates actually found on-chain. Ledger failures are reported in
    the result instead of raised.
    """

    def __init__(self, gateway: ILedgerGateway, fallback_resolver: IFallbackResolver, deriver: AddressDeriver):
        self.gateway = gateway
        self.fallback_resolver = fallback_resolver
        self.deriver = deriver

    async def execute(self, poll_id: int) -> PollDiagnostics:
        poll_address = self.deriver.poll_address(poll_id)
        poll: Optional[PollConfig] = None
        candidates: List[CandidateAccount] = []
        error: Optional[str] = None

        try:
            poll = await self.gateway.fetch_poll(poll_address)
            candidates = await self.gateway.list_candidates(poll_id)
        except LedgerUnavailableError as e:
            logger.warning("diagnose_poll_ledger_unavailable", poll_id=poll_id, error=e.message)
            error = e.message

        on_chain = {c.address: c for c in candidates}
        checks: List[CandidateCheck] = []
        fallback = self.fallback_resolver.resolve(poll_id)
        if fallback is not None:
            for name in fallback.candidates:
                expected = self.deriver.candidate_address(poll_id, name)
                found = on_chain.get(expected)
                checks.append(CandidateCheck(
                    name=name,
                    expected_address=expected,
                    found=found is not None,
                    on_chain_name=found.name if found else None,
                ))

        logger.info("poll_diagnosed", poll_id=poll_id, poll_exists=poll is not None,
                    candidates=len(candidates))
        return PollDiagnostics(
            poll_id=poll_id,
            poll_address=poll_address,
            poll_exists=poll is not None,
            poll=poll,
            candidates=candidates,
            candidate_checks=checks,
            ledger_error=error,
        )

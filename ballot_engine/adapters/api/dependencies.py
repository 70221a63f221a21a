# ballot_engine/adapters/api/dependencies.py
from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Query

from ballot_engine.core.domain.addresses import parse_poll_id
from ballot_engine.core.use_cases.ballot_service import BallotService
from ballot_engine.core.use_cases.diagnose_poll import DiagnosePoll
from ballot_engine.core.use_cases.reclaim_voter_record import ReclaimVoterRecord
from ballot_engine.core.use_cases.submit_ballot import SubmitBallot
from ballot_engine.shared.container import Container

DEFAULT_POLL_ID = "1"


def get_poll_id(
    poll_id: str = Query(DEFAULT_POLL_ID, alias="pollId", description="Unsigned 32-bit poll identifier."),
) -> int:
    """
    Parses `?pollId=` with the domain rules so a bad value surfaces as
    InvalidPollId (400) instead of a framework validation error.
    """
    return parse_poll_id(poll_id)


# -----------------------------------------------------------------------------
# Use case injection
# -----------------------------------------------------------------------------
@inject
def get_ballot_service(
    service: BallotService = Depends(Provide[Container.ballot_service]),
) -> BallotService:
    """Dependency to inject the Ballot Service (container-managed)."""
    return service


@inject
def get_submit_ballot_use_case(
    use_case: SubmitBallot = Depends(Provide[Container.submit_ballot_use_case]),
) -> SubmitBallot:
    return use_case


@inject
def get_reclaim_voter_record_use_case(
    use_case: ReclaimVoterRecord = Depends(Provide[Container.reclaim_voter_record_use_case]),
) -> ReclaimVoterRecord:
    return use_case


@inject
def get_diagnose_poll_use_case(
    use_case: DiagnosePoll = Depends(Provide[Container.diagnose_poll_use_case]),
) -> DiagnosePoll:
    return use_case

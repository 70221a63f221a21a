# ballot_engine/adapters/api/routers/vote.py
from typing import Union

import structlog
from fastapi import APIRouter, Body, Depends, status

from ballot_engine.adapters.api.dependencies import (
    get_ballot_service,
    get_diagnose_poll_use_case,
    get_poll_id,
    get_reclaim_voter_record_use_case,
    get_submit_ballot_use_case,
)
from ballot_engine.adapters.api.schemas import (
    DiagnosticsResponse,
    PollResponse,
    ReclaimRequest,
    SimulatedResponse,
    SubmitRequest,
    SubmitResponse,
    TransactionResponse,
    VoteRequest,
)
from ballot_engine.core.domain.models import SimulatedOutcome
from ballot_engine.core.use_cases.ballot_service import BallotService
from ballot_engine.core.use_cases.diagnose_poll import DiagnosePoll
from ballot_engine.core.use_cases.reclaim_voter_record import ReclaimVoterRecord
from ballot_engine.core.use_cases.submit_ballot import SubmitBallot
from ballot_engine.shared.config import settings

logger = structlog.get_logger()

router = APIRouter(prefix="/api/vote", tags=["Ballot"])


@router.get(
    "",
    response_model=PollResponse,
    status_code=status.HTTP_200_OK,
    summary="Poll metadata and candidates",
)
async def describe_poll(
    poll_id: int = Depends(get_poll_id),
    service: BallotService = Depends(get_ballot_service),
):
    """
    Returns the poll and its candidates from the ledger, or the demo
    definition (`mode: simulated`) when the poll is not on-chain.
    """
    view = await service.describe_poll(poll_id)
    return PollResponse.from_domain(view, icon=settings.ACTION_ICON_URL)


@router.post(
    "",
    response_model=Union[TransactionResponse, SimulatedResponse],
    status_code=status.HTTP_200_OK,
    summary="Validate a ballot and build the vote transaction",
)
async def cast_ballot(
    request: VoteRequest = Body(...),
    poll_id: int = Depends(get_poll_id),
    service: BallotService = Depends(get_ballot_service),
):
    """
    **Body:**
    * `voterIdentity`: voter public key (fee payer and signer).
    * `positiveCandidateAddresses`: candidate addresses receiving a plus vote.
    * `negativeCandidateAddresses`: candidate addresses receiving a minus vote.

    **Returns:**
    * An unsigned, base64 transaction for the wallet to sign, or a
      simulated acceptance when the poll only exists in demo mode.
    """
    outcome = await service.cast_ballot(
        poll_id,
        request.voter_identity,
        request.positive_candidate_addresses,
        request.negative_candidate_addresses,
    )
    if isinstance(outcome, SimulatedOutcome):
        return SimulatedResponse.from_domain(outcome)
    return TransactionResponse.from_domain(outcome)


@router.post(
    "/submit",
    response_model=SubmitResponse,
    status_code=status.HTTP_200_OK,
    summary="Forward a signed vote transaction to the ledger",
)
async def submit_ballot(
    request: SubmitRequest = Body(...),
    use_case: SubmitBallot = Depends(get_submit_ballot_use_case),
):
    signature = await use_case.execute(request.signed_transaction)
    return SubmitResponse(signature=signature)


@router.post(
    "/reclaim",
    response_model=TransactionResponse,
    status_code=status.HTTP_200_OK,
    summary="Build a transaction closing the voter record",
)
async def reclaim_voter_record(
    request: ReclaimRequest = Body(...),
    poll_id: int = Depends(get_poll_id),
    use_case: ReclaimVoterRecord = Depends(get_reclaim_voter_record_use_case),
):
    unsigned = await use_case.execute(poll_id, request.voter_identity)
    return TransactionResponse.from_unsigned(unsigned)


@router.get(
    "/debug-poll",
    response_model=DiagnosticsResponse,
    status_code=status.HTTP_200_OK,
    summary="Compare expected candidate addresses with on-chain state",
)
async def debug_poll(
    poll_id: int = Depends(get_poll_id),
    use_case: DiagnosePoll = Depends(get_diagnose_poll_use_case),
):
    diagnostics = await use_case.execute(poll_id)
    logger.info("debug_poll_served", poll_id=poll_id, poll_exists=diagnostics.poll_exists)
    return DiagnosticsResponse.from_domain(diagnostics, rpc_url=settings.LEDGER_RPC_URL)

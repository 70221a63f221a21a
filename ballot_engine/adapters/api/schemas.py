# ballot_engine/adapters/api/schemas.py
"""
Wire models for the `/api/vote` surface.

Field names are snake_case in Python and camelCase on the wire, matching
what wallet "action" clients already send and expect.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ballot_engine.core.domain.models import (
    CandidateAccount,
    PollView,
    SimulatedOutcome,
    TransactionOutcome,
    UnsignedTransaction,
)
from ballot_engine.core.use_cases.diagnose_poll import PollDiagnostics


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---

class VoteRequest(ApiModel):
    voter_identity: str = Field(..., description="Base58 public key of the voter (fee payer and signer).")
    positive_candidate_addresses: List[str] = Field(default_factory=list)
    negative_candidate_addresses: List[str] = Field(default_factory=list)


class ReclaimRequest(ApiModel):
    voter_identity: str


class SubmitRequest(ApiModel):
    signed_transaction: str = Field(..., description="Base64 wire encoding of the signed transaction.")


# --- GET /api/vote ---

class CandidateOut(ApiModel):
    public_key: str
    name: str
    plus_votes: int = 0
    minus_votes: int = 0

    @classmethod
    def from_domain(cls, candidate: CandidateAccount) -> "CandidateOut":
        return cls(
            public_key=str(candidate.address),
            name=candidate.name,
            plus_votes=candidate.plus_votes,
            minus_votes=candidate.minus_votes,
        )


class ActionParameter(ApiModel):
    name: str
    label: str
    required: bool = False


class LinkedAction(ApiModel):
    label: str
    href: str
    type: str = "post"
    parameters: List[ActionParameter] = Field(default_factory=list)


class ActionLinks(ApiModel):
    actions: List[LinkedAction] = Field(default_factory=list)


class PollResponse(ApiModel):
    icon: str
    title: str
    description: str
    label: str
    mode: str
    poll_id: int
    name: str
    plus_votes_allowed: int
    minus_votes_allowed: int
    seats: int
    poll_start: Optional[int] = None
    poll_end: Optional[int] = None
    candidates: List[CandidateOut]
    links: ActionLinks

    @classmethod
    def from_domain(cls, view: PollView, icon: str) -> "PollResponse":
        demo = view.mode.value == "simulated"
        return cls(
            icon=icon,
            title=view.title,
            description=view.description,
            label="Vote (Demo Mode)" if demo else "Vote",
            mode=view.mode.value,
            poll_id=view.poll_id,
            name=view.name,
            plus_votes_allowed=view.max_positive,
            minus_votes_allowed=view.max_negative,
            seats=view.seats,
            poll_start=view.poll_start,
            poll_end=view.poll_end,
            candidates=[CandidateOut.from_domain(c) for c in view.candidates],
            links=ActionLinks(actions=[
                LinkedAction(
                    label="Cast Your Votes (Demo)" if demo else "Cast Your Votes",
                    href=f"/api/vote?pollId={view.poll_id}",
                    parameters=[
                        ActionParameter(
                            name="positiveCandidateAddresses",
                            label=f"Select up to {view.max_positive} candidates for positive votes",
                            required=True,
                        ),
                        ActionParameter(
                            name="negativeCandidateAddresses",
                            label=f"Select up to {view.max_negative} candidates for negative votes (optional)",
                        ),
                    ],
                ),
            ]),
        )


# --- POST /api/vote ---

class SummaryOut(ApiModel):
    poll_id: int
    positive_votes: int
    negative_votes: int


class TransactionResponse(ApiModel):
    type: Literal["transaction"] = "transaction"
    mode: Literal["ledger"] = "ledger"
    transaction: str
    serialized_message: str
    recent_blockhash: str
    fee_payer: str
    message: str
    summary: SummaryOut

    @classmethod
    def from_unsigned(cls, unsigned: UnsignedTransaction) -> "TransactionResponse":
        return cls(
            transaction=unsigned.transaction,
            serialized_message=unsigned.message,
            recent_blockhash=unsigned.recent_checkpoint,
            fee_payer=str(unsigned.fee_payer),
            message=unsigned.summary.text,
            summary=SummaryOut(
                poll_id=unsigned.summary.poll_id,
                positive_votes=unsigned.summary.positive_votes,
                negative_votes=unsigned.summary.negative_votes,
            ),
        )

    @classmethod
    def from_domain(cls, outcome: TransactionOutcome) -> "TransactionResponse":
        return cls.from_unsigned(outcome.transaction)


class VoteChoice(ApiModel):
    public_key: str
    name: str


class SimulatedVotes(ApiModel):
    plus: List[VoteChoice]
    minus: List[VoteChoice]


class SimulatedResponse(ApiModel):
    mode: Literal["simulated"] = "simulated"
    poll_id: int
    message: str
    note: str
    votes: SimulatedVotes

    @classmethod
    def from_domain(cls, outcome: SimulatedOutcome) -> "SimulatedResponse":
        return cls(
            poll_id=outcome.poll_id,
            message=outcome.message,
            note=outcome.note,
            votes=SimulatedVotes(
                plus=[VoteChoice(public_key=str(k), name=n) for k, n in zip(outcome.plus, outcome.plus_names)],
                minus=[VoteChoice(public_key=str(k), name=n) for k, n in zip(outcome.minus, outcome.minus_names)],
            ),
        )


class SubmitResponse(ApiModel):
    signature: str


# --- GET /api/vote/debug-poll ---

class PollDataOut(ApiModel):
    poll_description: str
    plus_votes_allowed: int
    minus_votes_allowed: int
    candidate_count: str
    winners: int
    poll_start: int
    poll_end: int


class CandidateCheckOut(ApiModel):
    name: str
    expected_pda: str
    found: bool
    on_chain_name: Optional[str] = None


class DiagnosticsResponse(ApiModel):
    poll_id: int
    poll_pda: str
    poll_exists: bool
    poll_data: Optional[PollDataOut] = None
    total_candidates: int
    candidate_checks: List[CandidateCheckOut]
    all_candidates_keys: List[str]
    rpc_url: str
    ledger_error: Optional[str] = None

    @classmethod
    def from_domain(cls, diag: PollDiagnostics, rpc_url: str) -> "DiagnosticsResponse":
        poll_data = None
        if diag.poll is not None:
            poll_data = PollDataOut(
                poll_description=diag.poll.description,
                plus_votes_allowed=diag.poll.max_positive,
                minus_votes_allowed=diag.poll.max_negative,
                # u64 on-chain; strings keep JS clients exact
                candidate_count=str(diag.poll.candidate_count),
                winners=diag.poll.seats,
                poll_start=diag.poll.poll_start,
                poll_end=diag.poll.poll_end,
            )
        return cls(
            poll_id=diag.poll_id,
            poll_pda=str(diag.poll_address),
            poll_exists=diag.poll_exists,
            poll_data=poll_data,
            total_candidates=len(diag.candidates),
            candidate_checks=[
                CandidateCheckOut(
                    name=c.name,
                    expected_pda=str(c.expected_address),
                    found=c.found,
                    on_chain_name=c.on_chain_name,
                )
                for c in diag.candidate_checks
            ],
            all_candidates_keys=[str(c.address) for c in diag.candidates],
            rpc_url=rpc_url,
            ledger_error=diag.ledger_error,
        )

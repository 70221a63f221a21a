# ballot_engine/core/use_cases/build_transaction.py
import base64

import structlog
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ballot_engine.core.domain.addresses import AddressDeriver
from ballot_engine.core.domain.models import (
    BallotSummary,
    PollConfig,
    UnsignedTransaction,
    ValidatedBallot,
)
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.shared.observability import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)


class TransactionBuilder:
    """
    Use Case: Turns a validated ballot into an unsigned vote transaction.

    Responsibilities:
    1. Derive the poll and voter-record addresses.
    2. Ask the Ledger Gateway for the vote instruction (candidates as
       writable remaining accounts).
    3. Attach a fresh checkpoint (recent blockhash) so the message expires.
    4. Serialize the unsigned transaction for client-side signing.

    The only I/O is the checkpoint read. Nothing is signed or submitted here.
    """

    def __init__(self, gateway: ILedgerGateway, deriver: AddressDeriver):
        self.gateway = gateway
        self.deriver = deriver

    async def build(
        self,
        poll: PollConfig,
        poll_id: int,
        voter: Pubkey,
        ballot: ValidatedBallot,
    ) -> UnsignedTransaction:
        with tracer.start_as_current_span("use_case.build_transaction") as span:
            span.set_attribute("ballot.poll_id", poll_id)
            span.set_attribute("ballot.candidate_accounts", len(ballot.candidate_accounts))

            instruction = self.gateway.build_vote_instruction(
                poll_id=poll_id,
                voter=voter,
                poll_address=self.deriver.poll_address(poll_id),
                voter_record_address=self.deriver.voter_record_address(poll_id, voter),
                plus=ballot.plus,
                minus=ballot.minus,
                candidate_accounts=ballot.candidate_accounts,
            )
            summary = BallotSummary(
                poll_id=poll_id,
                positive_votes=ballot.plus_total,
                negative_votes=ballot.minus_total,
            )
            unsigned = await self._compile(instruction, voter, summary)

            logger.info(
                "vote_transaction_built",
                poll_id=poll_id,
                poll=poll.description,
                voter=str(voter),
                plus=ballot.plus_total,
                minus=ballot.minus_total,
            )
            return unsigned

    async def build_reclaim(self, poll_id: int, voter: Pubkey) -> UnsignedTransaction:
        """Unsigned `close_voter_record` transaction returning the record's rent to the voter."""
        with tracer.start_as_current_span("use_case.build_reclaim_transaction") as span:
            span.set_attribute("ballot.poll_id", poll_id)

            instruction = self.gateway.build_close_voter_record_instruction(
                voter=voter,
                voter_record_address=self.deriver.voter_record_address(poll_id, voter),
            )
            summary = BallotSummary(poll_id=poll_id, positive_votes=0, negative_votes=0)
            return await self._compile(instruction, voter, summary)

    async def _compile(
        self,
        instruction: Instruction,
        fee_payer: Pubkey,
        summary: BallotSummary,
    ) -> UnsignedTransaction:
        checkpoint = await self.gateway.get_latest_checkpoint()
        message = Message.new_with_blockhash([instruction], fee_payer, checkpoint)
        transaction = Transaction.new_unsigned(message)

        return UnsignedTransaction(
            transaction=base64.b64encode(bytes(transaction)).decode(),
            message=base64.b64encode(bytes(message)).decode(),
            recent_checkpoint=str(checkpoint),
            fee_payer=fee_payer,
            summary=summary,
        )

# ballot_engine/core/use_cases/reclaim_voter_record.py
import structlog

from ballot_engine.core.domain.addresses import AddressDeriver, parse_pubkey
from ballot_engine.core.domain.exceptions import (
    InvalidVoterIdentityError,
    VoterRecordNotFoundError,
)
from ballot_engine.core.domain.models import UnsignedTransaction
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.core.use_cases.build_transaction import TransactionBuilder

logger = structlog.get_logger()


class ReclaimVoterRecord:
    """
    Use Case: Builds the unsigned transaction that closes a voter record
    and returns its rent to the voter.
    """

    def __init__(self, gateway: ILedgerGateway, deriver: AddressDeriver, builder: TransactionBuilder):
        self.gateway = gateway
        self.deriver = deriver
        self.builder = builder

    async def execute(self, poll_id: int, voter_identity: str) -> UnsignedTransaction:
        voter = parse_pubkey(voter_identity, InvalidVoterIdentityError)
        address = self.deriver.voter_record_address(poll_id, voter)

        # LedgerUnavailable propagates: there is nothing to simulate for a close
        record = await self.gateway.fetch_voter_record(address)
        if record is None:
            raise VoterRecordNotFoundError(
                f"No voter record for {voter} in poll {poll_id}"
            )

        logger.info("voter_record_reclaim_requested", poll_id=poll_id, voter=str(voter))
        return await self.builder.build_reclaim(poll_id, voter)

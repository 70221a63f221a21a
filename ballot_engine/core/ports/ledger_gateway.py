# ballot_engine/core/ports/ledger_gateway.py
from typing import List, Optional, Protocol, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ballot_engine.core.domain.models import (
    CandidateAccount,
    PollConfig,
    VoteAllocation,
    VoterRecord,
)


class ILedgerGateway(Protocol):
    """
    Port for reading and writing D21 program state.
    Implementations:
    - SolanaRpcGateway (JSON-RPC over HTTP)

    Reads return None when the account does not exist. Any failure to reach
    the ledger raises LedgerUnavailableError.
    """

    async def fetch_poll(self, address: Pubkey) -> Optional[PollConfig]:
        """Fetches and decodes the poll account at `address`."""
        ...

    async def fetch_candidate(self, address: Pubkey) -> Optional[CandidateAccount]:
        """Fetches and decodes the candidate account at `address`."""
        ...

    async def fetch_voter_record(self, address: Pubkey) -> Optional[VoterRecord]:
        """Fetches and decodes the voter record at `address`."""
        ...

    async def list_candidates(self, poll_id: int) -> List[CandidateAccount]:
        """
        Returns every candidate belonging to `poll_id`.
        Order is unspecified; callers must not depend on it.
        """
        ...

    async def get_latest_checkpoint(self) -> Hash:
        """Returns a recent blockhash bounding the validity window of a message."""
        ...

    def build_vote_instruction(
        self,
        *,
        poll_id: int,
        voter: Pubkey,
        poll_address: Pubkey,
        voter_record_address: Pubkey,
        plus: Sequence[VoteAllocation],
        minus: Sequence[VoteAllocation],
        candidate_accounts: Sequence[Pubkey],
    ) -> Instruction:
        """Encodes the program's `vote` instruction. Performs no I/O."""
        ...

    def build_close_voter_record_instruction(
        self,
        *,
        voter: Pubkey,
        voter_record_address: Pubkey,
    ) -> Instruction:
        """Encodes the program's `close_voter_record` instruction. Performs no I/O."""
        ...

    async def send_transaction(self, raw_transaction: bytes) -> str:
        """
        Submits a signed transaction and returns its signature.

        Raises:
            BallotError: A program error translated by code (source='ledger'),
                or TransactionRejectedError for any other rejection.
        """
        ...

    async def health_check(self) -> bool:
        """Returns True if the RPC node reports itself healthy."""
        ...

    async def close(self) -> None:
        """Releases the connection pool. Called once on application shutdown."""
        ...

# ballot_engine/adapters/ledger/solana_rpc.py
import base64
import uuid
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
import structlog
from solders.hash import Hash
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ballot_engine.adapters.ledger import codec
from ballot_engine.core.domain.addresses import AddressDeriver
from ballot_engine.core.domain.exceptions import (
    LedgerUnavailableError,
    NameTooLongError,
    TransactionRejectedError,
    ledger_error,
)
from ballot_engine.core.domain.models import (
    CandidateAccount,
    PollConfig,
    VoteAllocation,
    VoterRecord,
)
from ballot_engine.shared.resilience import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    bounded_attempts,
    get_circuit_breaker,
)

logger = structlog.get_logger()


class SolanaRpcGateway:
    """
    Adapter for the D21 program over the Solana JSON-RPC API.

    Responsibilities:
    1. Fetch and decode Poll / Candidate / VoterRecord accounts.
    2. List a poll's candidates (program account scan, filtered by re-derived address).
    3. Encode vote / close instructions for the configured program.
    4. Fetch recent blockhashes and forward signed transactions.
    5. Handle node instability via a Circuit Breaker and bounded attempts.
    """

    def __init__(
        self,
        rpc_url: str,
        program_id: Union[Pubkey, str],
        commitment: str = "confirmed",
        timeout: float = 10.0,
        read_attempts: int = 2,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if isinstance(program_id, str):
            program_id = Pubkey.from_string(program_id)
        self.rpc_url = rpc_url
        self.program_id = program_id
        self.commitment = commitment
        self.timeout = timeout
        self.read_attempts = read_attempts
        self.deriver = AddressDeriver(program_id)
        self.circuit_breaker = breaker or get_circuit_breaker("ledger_rpc")
        # One pooled client for every call; tests inject httpx.MockTransport
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    # --- Transport ---

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        return response.json()

    async def _post_with_attempts(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async for attempt in bounded_attempts(
            (httpx.TransportError,), attempts=self.read_attempts, deadline=self.timeout
        ):
            with attempt:
                return await self._post(payload)

    async def _call(self, method: str, params: List[Any], retry: bool = True) -> Dict[str, Any]:
        """
        Performs one JSON-RPC call and returns the raw response body.
        JSON-RPC level errors are left in the body for the caller to interpret.
        """
        payload = {"jsonrpc": "2.0", "id": str(uuid.uuid4()), "method": method, "params": params}
        send = self._post_with_attempts if retry else self._post
        try:
            return await self.circuit_breaker.a_call(send, payload)
        except CircuitBreakerOpenError as e:
            logger.warning("ledger_circuit_open", method=method)
            raise LedgerUnavailableError(str(e))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("ledger_rpc_failed", method=method, url=self.rpc_url, error=str(e))
            raise LedgerUnavailableError(f"Ledger RPC call '{method}' failed: {e}")

    async def _result(self, method: str, params: List[Any]) -> Any:
        body = await self._call(method, params)
        if "error" in body:
            error = body["error"] or {}
            logger.error("ledger_rpc_error", method=method, error=error)
            raise LedgerUnavailableError(
                f"Ledger RPC '{method}' returned an error: {error.get('message', error)}"
            )
        return body.get("result")

    # --- Reads ---

    async def _account_data(self, address: Pubkey) -> Optional[bytes]:
        result = await self._result(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        if value.get("owner") != str(self.program_id):
            logger.warning("ledger_account_foreign_owner", address=str(address), owner=value.get("owner"))
            return None
        return base64.b64decode(value["data"][0])

    async def fetch_poll(self, address: Pubkey) -> Optional[PollConfig]:
        data = await self._account_data(address)
        if data is None:
            return None
        try:
            return codec.decode_poll(data)
        except codec.AccountDecodeError as e:
            logger.warning("ledger_poll_undecodable", address=str(address), error=str(e))
            return None

    async def fetch_candidate(self, address: Pubkey) -> Optional[CandidateAccount]:
        data = await self._account_data(address)
        if data is None:
            return None
        try:
            return codec.decode_candidate(address, data)
        except codec.AccountDecodeError as e:
            logger.warning("ledger_candidate_undecodable", address=str(address), error=str(e))
            return None

    async def fetch_voter_record(self, address: Pubkey) -> Optional[VoterRecord]:
        data = await self._account_data(address)
        if data is None:
            return None
        try:
            return codec.decode_voter_record(data)
        except codec.AccountDecodeError as e:
            logger.warning("ledger_voter_record_undecodable", address=str(address), error=str(e))
            return None

    async def list_candidates(self, poll_id: int) -> List[CandidateAccount]:
        """
        Candidate accounts carry no poll id, so the scan keeps only those whose
        address re-derives from (poll_id, name).
        """
        result = await self._result(
            "getProgramAccounts",
            [
                str(self.program_id),
                {
                    "encoding": "base64",
                    "commitment": self.commitment,
                    "filters": [
                        {"dataSize": codec.CANDIDATE_ACCOUNT_SIZE},
                        {
                            "memcmp": {
                                "offset": 0,
                                "bytes": base64.b64encode(codec.CANDIDATE_DISCRIMINATOR).decode(),
                                "encoding": "base64",
                            }
                        },
                    ],
                },
            ],
        )

        candidates: List[CandidateAccount] = []
        for entry in result or []:
            address = Pubkey.from_string(entry["pubkey"])
            try:
                candidate = codec.decode_candidate(address, base64.b64decode(entry["account"]["data"][0]))
                expected = self.deriver.candidate_address(poll_id, candidate.name)
            except (codec.AccountDecodeError, NameTooLongError):
                continue
            if expected == address:
                candidates.append(candidate)

        logger.info("ledger_candidates_listed", poll_id=poll_id, count=len(candidates))
        return candidates

    async def get_latest_checkpoint(self) -> Hash:
        result = await self._result("getLatestBlockhash", [{"commitment": self.commitment}])
        try:
            return Hash.from_string(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerUnavailableError(f"Malformed getLatestBlockhash response: {e}")

    async def health_check(self) -> bool:
        try:
            body = await self._call("getHealth", [], retry=False)
        except LedgerUnavailableError:
            return False
        return body.get("result") == "ok"

    # --- Instructions ---

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
        return codec.vote_instruction(
            self.program_id,
            poll_id=poll_id,
            voter=voter,
            poll_address=poll_address,
            voter_record_address=voter_record_address,
            plus=plus,
            minus=minus,
            candidate_accounts=candidate_accounts,
        )

    def build_close_voter_record_instruction(
        self,
        *,
        voter: Pubkey,
        voter_record_address: Pubkey,
    ) -> Instruction:
        return codec.close_voter_record_instruction(
            self.program_id, voter=voter, voter_record_address=voter_record_address
        )

    # --- Writes ---

    async def send_transaction(self, raw_transaction: bytes) -> str:
        # Never retried: a resend could race the first submission
        body = await self._call(
            "sendTransaction",
            [
                base64.b64encode(raw_transaction).decode(),
                {"encoding": "base64", "preflightCommitment": self.commitment},
            ],
            retry=False,
        )
        if "error" not in body:
            return body["result"]

        error = body["error"] or {}
        code = codec.custom_program_error(error)
        logger.warning("ledger_transaction_rejected", custom_code=code, message=error.get("message"))
        if code is not None:
            raise ledger_error(code, error.get("message"))
        raise TransactionRejectedError(error.get("message") or str(error), source="ledger")

    async def close(self) -> None:
        await self.client.aclose()

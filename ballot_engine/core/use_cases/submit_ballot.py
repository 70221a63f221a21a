# ballot_engine/core/use_cases/submit_ballot.py
import base64
import binascii

import structlog

from ballot_engine.core.domain.exceptions import MalformedTransactionError
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.shared.observability import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)


class SubmitBallot:
    """
    Use Case: Forwards a client-signed vote transaction to the ledger.

    The engine never holds keys; the client signs what the Transaction
    Builder produced and hands it back here. Rejections from the ledger
    program arrive translated to the ballot taxonomy with `source='ledger'`.
    """

    def __init__(self, gateway: ILedgerGateway):
        self.gateway = gateway

    async def execute(self, signed_transaction: str) -> str:
        """Returns the transaction signature reported by the ledger."""
        with tracer.start_as_current_span("use_case.submit_ballot") as span:
            raw = self._decode(signed_transaction)
            span.set_attribute("ballot.transaction_bytes", len(raw))

            signature = await self.gateway.send_transaction(raw)

            logger.info("ballot_submitted", signature=signature)
            return signature

    @staticmethod
    def _decode(signed_transaction: str) -> bytes:
        try:
            raw = base64.b64decode(signed_transaction or "", validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedTransactionError(f"Signed transaction is not valid base64: {e}")
        if not raw:
            raise MalformedTransactionError("Signed transaction is empty")
        return raw

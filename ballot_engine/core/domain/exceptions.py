# ballot_engine/core/domain/exceptions.py
"""
Ballot error taxonomy.

Codes 6000-6005 are the ledger program's own custom error codes; a ballot
rejected locally carries the same code the program would have returned, so
clients handle both paths identically. Codes from 7000 upwards only ever
originate off-chain.
"""

from typing import Dict, Optional, Type


class DomainError(Exception):
    """Base class for all domain-level exceptions."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class BallotError(DomainError):
    """
    Base class for every error in the ballot taxonomy.

    Attributes:
        code: Stable numeric code (shared with the ledger program where one exists).
        name: Taxonomy name, e.g. 'TooManyPlus'.
        http_status: Status used by the HTTP adapter.
        source: 'local' when raised by this engine, 'ledger' when translated
            from a rejected transaction.
    """
    code: int = 0
    name: str = "BallotError"
    http_status: int = 400
    default_message: str = "Ballot rejected"

    def __init__(self, message: Optional[str] = None, *, source: str = "local"):
        self.source = source
        super().__init__(message or self.default_message)

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": "error",
            "code": self.code,
            "error": self.name,
            "message": self.message,
            "source": self.source,
        }


# --- Ledger program errors (mirrored 1:1) ---

class AlreadyVotedError(BallotError):
    code = 6000
    name = "AlreadyVoted"
    default_message = "Voter has already cast a ballot"

class TooManyPlusError(BallotError):
    code = 6001
    name = "TooManyPlus"
    default_message = "Allocated more plus votes than allowed"

class TooManyMinusError(BallotError):
    code = 6002
    name = "TooManyMinus"
    default_message = "Allocated more minus votes than allowed"

class InvalidTotalError(BallotError):
    code = 6003
    name = "InvalidTotal"
    default_message = "Total votes exceed candidate count"

class MinusRequiresTwoPlusError(BallotError):
    code = 6004
    name = "MinusRequiresTwoPlus"
    default_message = "Minus vote requires at least two plus votes"

class BallotOverflowError(BallotError):
    code = 6005
    name = "Overflow"
    default_message = "Arithmetic overflow"


# --- Off-chain errors ---

class InvalidPollIdError(BallotError):
    code = 7000
    name = "InvalidPollId"
    default_message = "Invalid poll ID"

class PollNotFoundError(BallotError):
    code = 7001
    name = "PollNotFound"
    http_status = 404
    default_message = "Poll not found on-chain and no demo poll is available"

class NameTooLongError(BallotError):
    code = 7002
    name = "NameTooLong"
    default_message = "Candidate name exceeds 32 bytes"

class EmptyBallotError(BallotError):
    code = 7003
    name = "EmptyBallot"
    default_message = "At least one positive vote is required"

class InvalidCandidateAddressError(BallotError):
    code = 7004
    name = "InvalidCandidateAddress"
    default_message = "Invalid candidate address"

class LedgerUnavailableError(BallotError):
    code = 7005
    name = "LedgerUnavailable"
    http_status = 503
    default_message = "Ledger RPC endpoint is unavailable"

class InvalidSeedKindError(BallotError):
    code = 7006
    name = "InvalidSeedKind"
    default_message = "Unrecognized address seed kind"

class InvalidVoterIdentityError(BallotError):
    code = 7007
    name = "InvalidVoterIdentity"
    default_message = "Invalid voter public key"

class VoterRecordNotFoundError(BallotError):
    code = 7008
    name = "VoterRecordNotFound"
    http_status = 404
    default_message = "No voter record exists for this voter and poll"

class MalformedTransactionError(BallotError):
    code = 7009
    name = "MalformedTransaction"
    default_message = "Signed transaction could not be decoded"

class TransactionRejectedError(BallotError):
    code = 7010
    name = "TransactionRejected"
    default_message = "Transaction rejected by the ledger"


# Inclusive range of custom codes the ledger program itself can return
LEDGER_CODES = (AlreadyVotedError.code, BallotOverflowError.code)

_BY_CODE: Dict[int, Type[BallotError]] = {
    cls.code: cls
    for cls in (
        AlreadyVotedError,
        TooManyPlusError,
        TooManyMinusError,
        InvalidTotalError,
        MinusRequiresTwoPlusError,
        BallotOverflowError,
        InvalidPollIdError,
        PollNotFoundError,
        NameTooLongError,
        EmptyBallotError,
        InvalidCandidateAddressError,
        LedgerUnavailableError,
        InvalidSeedKindError,
        InvalidVoterIdentityError,
        VoterRecordNotFoundError,
        MalformedTransactionError,
        TransactionRejectedError,
    )
}


def error_for_code(code: int) -> Optional[Type[BallotError]]:
    """Returns the taxonomy class for a numeric code, or None if unknown."""
    return _BY_CODE.get(code)


def ledger_error(code: int, message: Optional[str] = None) -> BallotError:
    """
    Translates a custom error code returned by the ledger program.
    Codes outside the program's own range become TransactionRejected with
    the ledger's message.
    """
    cls = error_for_code(code) if LEDGER_CODES[0] <= code <= LEDGER_CODES[1] else None
    if cls is None:
        return TransactionRejectedError(
            message or f"Ledger program returned unknown error code {code}",
            source="ledger",
        )
    return cls(source="ledger")

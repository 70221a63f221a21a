# ballot_engine/adapters/ledger/codec.py
"""
Byte-level codec for the D21 Anchor program.

Anchor prefixes every account with an 8-byte discriminator
(`sha256("account:<Name>")[:8]`) and every instruction with
`sha256("global:<snake_name>")[:8]`; the remaining bytes are Borsh:
little-endian integers, `u32` length-prefixed strings and vectors, fixed
arrays inline.

Account layouts (after the discriminator):

    Poll         u32 poll_id | string description | u64 start | u64 end
                 | u64 candidate_count | u8 seats | u8 plus_allowed | u8 minus_allowed
    Candidate    [u8; 32] name | u64 plus_votes | u64 minus_votes
    VoterRecord  bool has_voted | u8 plus_used | u8 minus_used
"""

from __future__ import annotations

import hashlib
import struct
from typing import Any, Mapping, Optional, Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from ballot_engine.core.domain.exceptions import BallotOverflowError
from ballot_engine.core.domain.models import (
    CANDIDATE_NAME_LEN,
    U8_MAX,
    CandidateAccount,
    PollConfig,
    VoteAllocation,
    VoterRecord,
)

DISCRIMINATOR_LEN = 8


class AccountDecodeError(ValueError):
    """Raised when account bytes do not match the expected layout."""


def anchor_discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:DISCRIMINATOR_LEN]


POLL_DISCRIMINATOR = anchor_discriminator("account", "Poll")
CANDIDATE_DISCRIMINATOR = anchor_discriminator("account", "Candidate")
VOTER_RECORD_DISCRIMINATOR = anchor_discriminator("account", "VoterRecord")

VOTE_DISCRIMINATOR = anchor_discriminator("global", "vote")
CLOSE_VOTER_RECORD_DISCRIMINATOR = anchor_discriminator("global", "close_voter_record")

_CANDIDATE_BODY = struct.Struct(f"<{CANDIDATE_NAME_LEN}sQQ")
_VOTER_RECORD_BODY = struct.Struct("<?BB")
_POLL_TAIL = struct.Struct("<QQQBBB")

CANDIDATE_ACCOUNT_SIZE = DISCRIMINATOR_LEN + _CANDIDATE_BODY.size


# --- Account decoding ---

def _strip_discriminator(data: bytes, expected: bytes, kind: str) -> memoryview:
    if len(data) < DISCRIMINATOR_LEN or data[:DISCRIMINATOR_LEN] != expected:
        raise AccountDecodeError(f"Account data is not a {kind} account")
    return memoryview(data)[DISCRIMINATOR_LEN:]


def decode_poll(data: bytes) -> PollConfig:
    body = _strip_discriminator(data, POLL_DISCRIMINATOR, "Poll")
    try:
        (poll_id, desc_len) = struct.unpack_from("<II", body, 0)
        offset = 8
        description = bytes(body[offset:offset + desc_len])
        if len(description) != desc_len:
            raise AccountDecodeError("Poll description is truncated")
        offset += desc_len
        start, end, count, seats, plus_allowed, minus_allowed = _POLL_TAIL.unpack_from(body, offset)
    except struct.error as e:
        raise AccountDecodeError(f"Poll account is truncated: {e}")

    return PollConfig(
        poll_id=poll_id,
        description=description.decode("utf-8", errors="replace"),
        poll_start=start,
        poll_end=end,
        candidate_count=count,
        seats=seats,
        max_positive=plus_allowed,
        max_negative=minus_allowed,
    )


def decode_candidate_name(raw: bytes) -> str:
    """Zero-padded name buffer -> str (everything up to the first NUL)."""
    end = raw.find(b"\x00")
    if end >= 0:
        raw = raw[:end]
    return raw.decode("utf-8", errors="replace")


def decode_candidate(address: Pubkey, data: bytes) -> CandidateAccount:
    body = _strip_discriminator(data, CANDIDATE_DISCRIMINATOR, "Candidate")
    try:
        name, plus_votes, minus_votes = _CANDIDATE_BODY.unpack_from(body, 0)
    except struct.error as e:
        raise AccountDecodeError(f"Candidate account is truncated: {e}")
    return CandidateAccount(
        address=address,
        name=decode_candidate_name(name),
        plus_votes=plus_votes,
        minus_votes=minus_votes,
    )


def decode_voter_record(data: bytes) -> VoterRecord:
    body = _strip_discriminator(data, VOTER_RECORD_DISCRIMINATOR, "VoterRecord")
    try:
        has_voted, plus_used, minus_used = _VOTER_RECORD_BODY.unpack_from(body, 0)
    except struct.error as e:
        raise AccountDecodeError(f"VoterRecord account is truncated: {e}")
    return VoterRecord(has_voted=has_voted, plus_used=plus_used, minus_used=minus_used)


# --- Instruction encoding ---

def _encode_allocations(allocations: Sequence[VoteAllocation]) -> bytes:
    out = bytearray(struct.pack("<I", len(allocations)))
    for allocation in allocations:
        if not 0 <= allocation.votes <= U8_MAX:
            raise BallotOverflowError(f"Vote weight {allocation.votes} does not fit in a byte")
        out += bytes(allocation.candidate)
        out.append(allocation.votes)
    return bytes(out)


def encode_vote_args(
    poll_id: int,
    plus: Sequence[VoteAllocation],
    minus: Sequence[VoteAllocation],
) -> bytes:
    """`vote(poll_id: u32, plus: Vec<VoteAllocation>, minus: Vec<VoteAllocation>)`"""
    return (
        VOTE_DISCRIMINATOR
        + struct.pack("<I", poll_id)
        + _encode_allocations(plus)
        + _encode_allocations(minus)
    )


def vote_instruction(
    program_id: Pubkey,
    *,
    poll_id: int,
    voter: Pubkey,
    poll_address: Pubkey,
    voter_record_address: Pubkey,
    plus: Sequence[VoteAllocation],
    minus: Sequence[VoteAllocation],
    candidate_accounts: Sequence[Pubkey],
) -> Instruction:
    """
    Account order follows the program's `CastBallot` context:
    signer, poll, voter_record, system_program, then every candidate as a
    writable remaining account (the program increments their tallies).
    """
    accounts = [
        AccountMeta(voter, is_signer=True, is_writable=True),
        AccountMeta(poll_address, is_signer=False, is_writable=False),
        AccountMeta(voter_record_address, is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    accounts.extend(
        AccountMeta(candidate, is_signer=False, is_writable=True)
        for candidate in candidate_accounts
    )
    return Instruction(program_id, encode_vote_args(poll_id, plus, minus), accounts)


def close_voter_record_instruction(
    program_id: Pubkey,
    *,
    voter: Pubkey,
    voter_record_address: Pubkey,
) -> Instruction:
    accounts = [
        AccountMeta(voter_record_address, is_signer=False, is_writable=True),
        AccountMeta(voter, is_signer=True, is_writable=True),
    ]
    return Instruction(program_id, CLOSE_VOTER_RECORD_DISCRIMINATOR, accounts)


# --- RPC error parsing ---

def custom_program_error(error: Optional[Mapping[str, Any]]) -> Optional[int]:
    """
    Extracts the custom program error code from a JSON-RPC error object.

    sendTransaction preflight failures look like:
        {"code": -32002, "message": "...",
         "data": {"err": {"InstructionError": [0, {"Custom": 6001}]}, "logs": [...]}}
    """
    if not error:
        return None
    data = error.get("data")
    err = data.get("err") if isinstance(data, Mapping) else None
    if not isinstance(err, Mapping):
        return None
    instruction_error = err.get("InstructionError")
    if not isinstance(instruction_error, (list, tuple)) or len(instruction_error) != 2:
        return None
    detail = instruction_error[1]
    if isinstance(detail, Mapping) and isinstance(detail.get("Custom"), int):
        return detail["Custom"]
    return None

# ballot_engine/core/domain/addresses.py
"""
Deterministic addressing for poll, candidate and voter-record accounts.

Every account the ledger program owns lives at a program derived address
(PDA) computed from fixed seeds. This module reproduces the program's seed
scheme exactly:

    poll          ["poll",  le_u32(poll_id)]
    candidate     ["cand",  le_u32(poll_id), utf8(name)]
    voter record  ["voter", voter_pubkey,    le_u32(poll_id)]

The UI, the gateway and the seeding tools all locate accounts through these
seeds instead of a lookup table, so two derivations with identical inputs
must always produce the identical address.
"""

from __future__ import annotations

import struct
from enum import Enum
from typing import Optional, Type, Union

from solders.pubkey import Pubkey

from ballot_engine.core.domain.exceptions import (
    BallotError,
    InvalidPollIdError,
    InvalidSeedKindError,
    NameTooLongError,
)
from ballot_engine.core.domain.models import CANDIDATE_NAME_LEN, U32_MAX


class SeedKind(str, Enum):
    POLL = "poll"
    CANDIDATE = "cand"
    VOTER = "voter"


def parse_poll_id(raw: Union[str, int, None]) -> int:
    """Parses a poll id from a query string value. Must fit in a u32."""
    if isinstance(raw, bool):
        raise InvalidPollIdError()
    if isinstance(raw, int):
        value = raw
    else:
        text = (raw or "").strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidPollIdError(f"Invalid poll ID: {raw!r}")
        value = int(text)
    if not 0 <= value <= U32_MAX:
        raise InvalidPollIdError(f"Poll ID {value} does not fit in 32 bits")
    return value


def poll_id_bytes(poll_id: int) -> bytes:
    """Little-endian u32 encoding used in every seed."""
    parse_poll_id(poll_id)
    return struct.pack("<I", poll_id)


def candidate_name_bytes(name: str) -> bytes:
    encoded = name.encode("utf-8")
    if len(encoded) > CANDIDATE_NAME_LEN:
        raise NameTooLongError(
            f"Candidate name is {len(encoded)} bytes; the limit is {CANDIDATE_NAME_LEN}"
        )
    return encoded


def parse_pubkey(raw: Optional[str], error: Type[BallotError]) -> Pubkey:
    """Parses a base58 public key, raising `error` when it is malformed."""
    if not raw or not isinstance(raw, str):
        raise error()
    try:
        return Pubkey.from_string(raw.strip())
    except ValueError:
        raise error(f"{error.default_message}: {raw}")


class AddressDeriver:
    """
    Derives ledger addresses for a single program.

    The program id is injected so that a deriver never depends on module
    level state; tests and multi-cluster deployments build their own.
    """

    def __init__(self, program_id: Union[Pubkey, str]):
        if isinstance(program_id, str):
            program_id = Pubkey.from_string(program_id)
        self.program_id = program_id

    def derive(
        self,
        seed_kind: Union[SeedKind, str],
        poll_id: int,
        extra: Optional[bytes] = None,
    ) -> Pubkey:
        """
        Derives the address for `seed_kind`.

        Args:
            seed_kind: 'poll', 'cand' or 'voter'.
            poll_id: u32 poll identifier.
            extra: Candidate name bytes ('cand') or the 32 voter key bytes ('voter').

        Raises:
            InvalidSeedKindError: Unknown prefix, or `extra` missing / malformed.
            NameTooLongError: Candidate name longer than 32 bytes.
            InvalidPollIdError: Poll id outside the u32 range.
        """
        try:
            kind = SeedKind(seed_kind)
        except ValueError:
            raise InvalidSeedKindError(f"Unrecognized seed kind: {seed_kind!r}")

        pid = poll_id_bytes(poll_id)

        if kind is SeedKind.POLL:
            seeds = [kind.value.encode(), pid]
        elif kind is SeedKind.CANDIDATE:
            if extra is None:
                raise InvalidSeedKindError("Seed kind 'cand' requires the candidate name")
            if len(extra) > CANDIDATE_NAME_LEN:
                raise NameTooLongError(
                    f"Candidate name is {len(extra)} bytes; the limit is {CANDIDATE_NAME_LEN}"
                )
            seeds = [kind.value.encode(), pid, bytes(extra)]
        else:
            if extra is None or len(extra) != 32:
                raise InvalidSeedKindError("Seed kind 'voter' requires a 32-byte voter key")
            seeds = [kind.value.encode(), bytes(extra), pid]

        address, _bump = Pubkey.find_program_address(seeds, self.program_id)
        return address

    def poll_address(self, poll_id: int) -> Pubkey:
        return self.derive(SeedKind.POLL, poll_id)

    def candidate_address(self, poll_id: int, name: str) -> Pubkey:
        return self.derive(SeedKind.CANDIDATE, poll_id, candidate_name_bytes(name))

    def voter_record_address(self, poll_id: int, voter: Pubkey) -> Pubkey:
        return self.derive(SeedKind.VOTER, poll_id, bytes(voter))

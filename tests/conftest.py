# tests/conftest.py
from functools import partial
from typing import Dict, List

import pytest
from unittest.mock import AsyncMock, MagicMock

from solders.hash import Hash
from solders.pubkey import Pubkey

from ballot_engine.adapters.fallback.static_resolver import StaticFallbackResolver
from ballot_engine.adapters.ledger import codec
from ballot_engine.core.domain.addresses import AddressDeriver
from ballot_engine.core.domain.models import CandidateAccount, PollConfig
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.shared.container import container as app_container

PROGRAM_ID = Pubkey.from_string("HaV1HXC62zmRYUGDo8XT4kbPY7EMfwFkMZcwjKCF7gxx")

LEDGER_POLL_ID = 7
LEDGER_CANDIDATES = ["Ada", "Grace", "Linus", "Guido", "Barbara", "Ken"]


@pytest.fixture(scope="function")
def deriver():
    return AddressDeriver(PROGRAM_ID)


@pytest.fixture(scope="function")
def checkpoint():
    return Hash.new_unique()


@pytest.fixture(scope="function")
def voter():
    return Pubkey.new_unique()


@pytest.fixture(scope="function")
def mock_gateway(checkpoint):
    """
    Returns a mock Ledger Gateway with an empty ledger.
    Instruction builders delegate to the real codec so transactions compile.
    """
    gateway = MagicMock(spec=ILedgerGateway)
    # Async methods must be mocked with AsyncMock
    gateway.fetch_poll = AsyncMock(return_value=None)
    gateway.fetch_candidate = AsyncMock(return_value=None)
    gateway.fetch_voter_record = AsyncMock(return_value=None)
    gateway.list_candidates = AsyncMock(return_value=[])
    gateway.get_latest_checkpoint = AsyncMock(return_value=checkpoint)
    gateway.send_transaction = AsyncMock(return_value="5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW")
    gateway.health_check = AsyncMock(return_value=True)
    gateway.close = AsyncMock()
    gateway.build_vote_instruction.side_effect = partial(codec.vote_instruction, PROGRAM_ID)
    gateway.build_close_voter_record_instruction.side_effect = partial(
        codec.close_voter_record_instruction, PROGRAM_ID
    )
    return gateway


@pytest.fixture(scope="function")
def fallback_resolver():
    """The built-in demo table (polls 1 and 2)."""
    return StaticFallbackResolver()


@pytest.fixture(scope="function")
def ledger_poll():
    return PollConfig(
        poll_id=LEDGER_POLL_ID,
        description="Board Election",
        poll_start=1_700_000_000,
        poll_end=1_800_000_000,
        candidate_count=len(LEDGER_CANDIDATES),
        seats=2,
        max_positive=3,
        max_negative=1,
    )


@pytest.fixture(scope="function")
def ledger_candidates(deriver) -> Dict[str, CandidateAccount]:
    return {
        name: CandidateAccount(
            address=deriver.candidate_address(LEDGER_POLL_ID, name),
            name=name,
            plus_votes=10,
            minus_votes=2,
        )
        for name in LEDGER_CANDIDATES
    }


@pytest.fixture(scope="function")
def seeded_gateway(mock_gateway, deriver, ledger_poll, ledger_candidates):
    """
    The mock gateway with poll 7 and its candidates on-chain.
    Every other address reads as missing.
    """
    by_address = {c.address: c for c in ledger_candidates.values()}

    async def fetch_poll(address):
        return ledger_poll if address == deriver.poll_address(LEDGER_POLL_ID) else None

    async def fetch_candidate(address):
        return by_address.get(address)

    async def list_candidates(poll_id):
        return list(by_address.values()) if poll_id == LEDGER_POLL_ID else []

    mock_gateway.fetch_poll.side_effect = fetch_poll
    mock_gateway.fetch_candidate.side_effect = fetch_candidate
    mock_gateway.list_candidates.side_effect = list_candidates
    return mock_gateway


@pytest.fixture(scope="function")
def container(mock_gateway, deriver, fallback_resolver):
    """
    Sets up the Dependency Injection Container for testing.
    It overrides real infrastructure providers with the fixtures above.
    """
    app_container.ledger_gateway.override(mock_gateway)
    app_container.address_deriver.override(deriver)
    app_container.fallback_resolver.override(fallback_resolver)

    yield app_container

    # Clean up overrides after test
    app_container.reset_override()


@pytest.fixture(scope="function")
def pick(ledger_candidates):
    """Base58 addresses of the named ledger candidates, as a client would send them."""
    def _pick(*names: str) -> List[str]:
        return [str(ledger_candidates[n].address) for n in names]
    return _pick

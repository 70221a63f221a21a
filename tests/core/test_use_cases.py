# tests/core/test_use_cases.py
import base64
from dataclasses import replace

import pytest
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ballot_engine.adapters.fallback.static_resolver import StaticFallbackResolver
from ballot_engine.adapters.ledger import codec
from ballot_engine.core.domain.exceptions import (
    AlreadyVotedError,
    InvalidCandidateAddressError,
    InvalidVoterIdentityError,
    LedgerUnavailableError,
    MalformedTransactionError,
    MinusRequiresTwoPlusError,
    PollNotFoundError,
    TooManyPlusError,
    VoterRecordNotFoundError,
)
from ballot_engine.core.domain.models import (
    BallotMode,
    CandidateAccount,
    SimulatedOutcome,
    TransactionOutcome,
    VoterRecord,
)
from tests.conftest import LEDGER_POLL_ID, PROGRAM_ID


def decode_transaction(encoded: str) -> Transaction:
    return Transaction.from_bytes(base64.b64decode(encoded))


@pytest.mark.asyncio
class TestDescribePoll:

    async def test_ledger_poll(self, container, seeded_gateway, ledger_poll):
        """
        Scenario: The poll exists on-chain.
        Expected: A ledger-backed view with every re-derived candidate, sorted by name.
        """
        view = await container.ballot_service().describe_poll(LEDGER_POLL_ID)

        assert view.mode is BallotMode.LEDGER
        assert view.title == "Poll 7: Board Election"
        assert "competing for 2 seats" in view.description
        assert [c.name for c in view.candidates] == sorted(c.name for c in view.candidates)
        assert len(view.candidates) == ledger_poll.candidate_count
        assert view.poll_end == ledger_poll.poll_end

    async def test_missing_poll_uses_fallback(self, container, mock_gateway):
        view = await container.ballot_service().describe_poll(2)

        assert view.mode is BallotMode.SIMULATED
        assert view.title == "Tech vs Environment Policy Debate"
        assert len(view.candidates) == 5
        mock_gateway.list_candidates.assert_not_called()

    async def test_ledger_unavailable_uses_fallback(self, container, mock_gateway):
        mock_gateway.fetch_poll.side_effect = LedgerUnavailableError("timeout")

        view = await container.ballot_service().describe_poll(1)

        assert view.mode is BallotMode.SIMULATED
        assert view.max_positive == 2

    async def test_unknown_poll_not_found(self, container):
        with pytest.raises(PollNotFoundError):
            await container.ballot_service().describe_poll(99)

    async def test_ledger_unavailable_without_fallback(self, container, mock_gateway):
        mock_gateway.fetch_poll.side_effect = LedgerUnavailableError("timeout")
        with pytest.raises(PollNotFoundError):
            await container.ballot_service().describe_poll(99)


@pytest.mark.asyncio
class TestCastBallotLedger:

    async def test_builds_unsigned_vote_transaction(self, container, seeded_gateway, voter, checkpoint, pick, deriver):
        """
        Scenario: A valid ballot against an on-chain poll.
        Expected: An unsigned transaction paying from the voter, carrying the
        vote instruction with deduplicated candidates as writable accounts.
        """
        outcome = await container.ballot_service().cast_ballot(
            LEDGER_POLL_ID, str(voter), pick("Ada", "Grace"), pick("Ken")
        )

        assert isinstance(outcome, TransactionOutcome)
        unsigned = outcome.transaction
        assert unsigned.recent_checkpoint == str(checkpoint)
        assert unsigned.summary.text == "Submitting 2 positive and 1 negative votes to poll 7"

        tx = decode_transaction(unsigned.transaction)
        message = tx.message
        assert message.account_keys[0] == voter
        assert message.recent_blockhash == checkpoint
        assert message == Message.from_bytes(base64.b64decode(unsigned.message))

        instruction = message.instructions[0]
        assert message.account_keys[instruction.program_id_index] == PROGRAM_ID
        assert bytes(instruction.data)[:8] == codec.VOTE_DISCRIMINATOR
        accounts = [message.account_keys[i] for i in instruction.accounts]
        assert accounts[1] == deriver.poll_address(LEDGER_POLL_ID)
        assert accounts[2] == deriver.voter_record_address(LEDGER_POLL_ID, voter)
        assert [str(a) for a in accounts[4:]] == pick("Ada", "Grace", "Ken")

    async def test_signature_slots_left_empty(self, container, seeded_gateway, voter, pick):
        outcome = await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada"), [])

        tx = decode_transaction(outcome.transaction.transaction)
        assert len(tx.signatures) == 1
        assert bytes(tx.signatures[0]) == bytes(64)

    async def test_already_voted(self, container, seeded_gateway, voter, pick):
        seeded_gateway.fetch_voter_record.return_value = VoterRecord(has_voted=True, plus_used=2, minus_used=0)

        with pytest.raises(AlreadyVotedError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada"), [])
        seeded_gateway.fetch_candidate.assert_not_called()
        seeded_gateway.get_latest_checkpoint.assert_not_called()

    async def test_rule_violation_never_reaches_network(self, container, seeded_gateway, voter, pick):
        with pytest.raises(TooManyPlusError):
            await container.ballot_service().cast_ballot(
                LEDGER_POLL_ID, str(voter), pick("Ada", "Grace", "Linus", "Guido"), []
            )
        with pytest.raises(MinusRequiresTwoPlusError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada"), pick("Ken"))

        seeded_gateway.fetch_candidate.assert_not_called()
        seeded_gateway.get_latest_checkpoint.assert_not_called()
        seeded_gateway.send_transaction.assert_not_called()

    async def test_oversized_ballot_rejected_without_candidate_reads(self, container, seeded_gateway, voter):
        """
        Scenario: Hundreds of addresses against a poll allowing 3 positive votes.
        Expected: TooManyPlus from the local rules, with no candidate fetched.
        """
        flood = [str(Pubkey.new_unique()) for _ in range(500)]

        with pytest.raises(TooManyPlusError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), flood, [])

        assert seeded_gateway.fetch_candidate.await_count == 0

    async def test_unknown_candidate_address(self, container, seeded_gateway, voter, pick):
        stranger = str(Pubkey.new_unique())
        with pytest.raises(InvalidCandidateAddressError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada") + [stranger], [])

    async def test_candidate_of_another_poll(self, container, seeded_gateway, voter, deriver, pick):
        """A real candidate account whose address derives from another poll id is rejected."""
        foreign = deriver.candidate_address(8, "Ada")
        original = seeded_gateway.fetch_candidate.side_effect

        async def fetch_candidate(address):
            if address == foreign:
                return CandidateAccount(address=foreign, name="Ada")
            return await original(address)

        seeded_gateway.fetch_candidate.side_effect = fetch_candidate

        with pytest.raises(InvalidCandidateAddressError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Grace") + [str(foreign)], [])

    async def test_malformed_addresses(self, container, seeded_gateway, voter, pick):
        with pytest.raises(InvalidVoterIdentityError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, "not-a-wallet", pick("Ada"), [])
        with pytest.raises(InvalidCandidateAddressError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), ["xyz"], [])

    async def test_unreadable_voter_record_counts_as_not_voted(self, container, seeded_gateway, voter, pick):
        seeded_gateway.fetch_voter_record.side_effect = LedgerUnavailableError("timeout")

        outcome = await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada"), [])

        assert isinstance(outcome, TransactionOutcome)

    async def test_checkpoint_failure_after_poll_read_is_unavailable(
        self, container, mock_gateway, voter, deriver, ledger_poll
    ):
        """
        Scenario: Poll 1 is on-chain and allows 3 positive votes (its demo
        definition allows 2), but the blockhash read fails.
        Expected: LedgerUnavailable; the ballot is never re-judged by the demo table.
        """
        names = ("Alice - Taxes", "Bob - Taxes", "Bob - Defense")
        by_address = {}
        for name in names:
            address = deriver.candidate_address(1, name)
            by_address[address] = CandidateAccount(address=address, name=name)

        async def fetch_candidate(address):
            return by_address.get(address)

        mock_gateway.fetch_poll.return_value = replace(ledger_poll, poll_id=1)
        mock_gateway.fetch_candidate.side_effect = fetch_candidate
        mock_gateway.get_latest_checkpoint.side_effect = LedgerUnavailableError("blockhash timeout")

        with pytest.raises(LedgerUnavailableError):
            await container.ballot_service().cast_ballot(1, str(voter), [str(a) for a in by_address], [])

    async def test_candidate_read_failure_is_unavailable(self, container, seeded_gateway, voter, pick):
        seeded_gateway.fetch_candidate.side_effect = LedgerUnavailableError("timeout")

        with pytest.raises(LedgerUnavailableError):
            await container.ballot_service().cast_ballot(LEDGER_POLL_ID, str(voter), pick("Ada", "Grace"), [])
        seeded_gateway.get_latest_checkpoint.assert_not_called()


@pytest.mark.asyncio
class TestCastBallotFallback:

    async def test_demo_poll_is_simulated(self, container, mock_gateway, voter, deriver):
        """
        Scenario: Poll 2 is not on-chain but has a demo definition.
        Expected: A simulated acceptance, never a transaction.
        """
        plus = [str(deriver.candidate_address(2, n)) for n in ("Tech Innovation Focus", "Balanced Approach")]
        minus = [str(deriver.candidate_address(2, "Economic Growth Priority"))]

        outcome = await container.ballot_service().cast_ballot(2, str(voter), plus, minus)

        assert isinstance(outcome, SimulatedOutcome)
        assert outcome.mode is BallotMode.SIMULATED
        assert outcome.plus_names == ("Tech Innovation Focus", "Balanced Approach")
        mock_gateway.get_latest_checkpoint.assert_not_called()
        mock_gateway.build_vote_instruction.assert_not_called()

    async def test_demo_rules_enforced(self, container, voter, deriver):
        plus = [str(deriver.candidate_address(1, n)) for n in ("Alice - Taxes", "Bob - Taxes", "Bob - Defense")]
        with pytest.raises(TooManyPlusError):
            await container.ballot_service().cast_ballot(1, str(voter), plus, [])

    async def test_no_fallback_entry(self, container, voter, deriver):
        with pytest.raises(PollNotFoundError):
            await container.ballot_service().cast_ballot(404, str(voter), [str(deriver.candidate_address(404, "A"))], [])

    async def test_poll_read_failure_degrades(self, container, mock_gateway, voter, deriver):
        mock_gateway.fetch_poll.side_effect = LedgerUnavailableError("timeout")
        plus = [str(deriver.candidate_address(1, n)) for n in ("Alice - Education", "Bob - Taxes")]

        outcome = await container.ballot_service().cast_ballot(1, str(voter), plus, [])

        assert isinstance(outcome, SimulatedOutcome)
        assert outcome.plus_names == ("Alice - Education", "Bob - Taxes")
        mock_gateway.fetch_candidate.assert_not_called()

    async def test_fallback_disabled(self, container, voter, deriver):
        container.fallback_resolver.override(StaticFallbackResolver(enabled=False))
        with pytest.raises(PollNotFoundError):
            await container.ballot_service().cast_ballot(1, str(voter), [str(deriver.candidate_address(1, "Alice - Taxes"))], [])


@pytest.mark.asyncio
class TestSubmitBallot:

    async def test_forwards_raw_bytes(self, container, mock_gateway):
        raw = b"\x01" + bytes(64) + b"signed-message"

        signature = await container.submit_ballot_use_case().execute(base64.b64encode(raw).decode())

        assert signature == mock_gateway.send_transaction.return_value
        mock_gateway.send_transaction.assert_awaited_once_with(raw)

    @pytest.mark.parametrize("payload", ["", "***", "YWJj=x"])
    async def test_malformed_payload(self, container, mock_gateway, payload):
        with pytest.raises(MalformedTransactionError):
            await container.submit_ballot_use_case().execute(payload)
        mock_gateway.send_transaction.assert_not_called()


@pytest.mark.asyncio
class TestReclaimVoterRecord:

    async def test_builds_close_transaction(self, container, mock_gateway, voter, deriver):
        mock_gateway.fetch_voter_record.return_value = VoterRecord(has_voted=True)

        unsigned = await container.reclaim_voter_record_use_case().execute(3, str(voter))

        message = decode_transaction(unsigned.transaction).message
        instruction = message.instructions[0]
        assert bytes(instruction.data) == codec.CLOSE_VOTER_RECORD_DISCRIMINATOR
        accounts = [message.account_keys[i] for i in instruction.accounts]
        assert accounts == [deriver.voter_record_address(3, voter), voter]
        mock_gateway.fetch_voter_record.assert_awaited_once_with(deriver.voter_record_address(3, voter))

    async def test_no_record(self, container, voter):
        with pytest.raises(VoterRecordNotFoundError):
            await container.reclaim_voter_record_use_case().execute(3, str(voter))


@pytest.mark.asyncio
class TestDiagnosePoll:

    async def test_reports_expected_addresses(self, container, mock_gateway, deriver):
        seeded = deriver.candidate_address(2, "Balanced Approach")
        mock_gateway.list_candidates.return_value = [CandidateAccount(address=seeded, name="Balanced Approach")]

        result = await container.diagnose_poll_use_case().execute(2)

        assert result.poll_address == deriver.poll_address(2)
        assert result.poll_exists is False
        assert len(result.candidate_checks) == 5
        found = [c.name for c in result.candidate_checks if c.found]
        assert found == ["Balanced Approach"]

    async def test_ledger_error_is_reported(self, container, mock_gateway):
        mock_gateway.fetch_poll.side_effect = LedgerUnavailableError("node down")

        result = await container.diagnose_poll_use_case().execute(1)

        assert result.ledger_error == "node down"
        assert result.poll_exists is False
        assert all(not c.found for c in result.candidate_checks)

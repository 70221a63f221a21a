# tests/adapters/test_api_endpoints.py
import base64

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from solders.pubkey import Pubkey

from ballot_engine.adapters.api.main import create_app
from ballot_engine.adapters.fallback.static_resolver import StaticFallbackResolver
from ballot_engine.core.domain.exceptions import AlreadyVotedError, LedgerUnavailableError
from ballot_engine.core.domain.models import VoterRecord
from tests.conftest import LEDGER_POLL_ID


@pytest.fixture
def client(container):
    """
    Returns a FastAPI TestClient.

    The 'container' fixture (from conftest.py) has already overridden
    the ledger gateway and fallback resolver.
    """
    app = create_app()
    with TestClient(app) as c:
        yield c


class TestDescribePoll:

    def test_ledger_poll(self, client, seeded_gateway):
        response = client.get("/api/vote", params={"pollId": LEDGER_POLL_ID})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["mode"] == "ledger"
        assert data["title"] == "Poll 7: Board Election"
        assert data["label"] == "Vote"
        assert data["plusVotesAllowed"] == 3
        assert data["minusVotesAllowed"] == 1
        assert len(data["candidates"]) == 6
        assert set(data["candidates"][0]) == {"publicKey", "name", "plusVotes", "minusVotes"}
        assert data["links"]["actions"][0]["href"] == "/api/vote?pollId=7"

    def test_defaults_to_poll_one_demo(self, client):
        response = client.get("/api/vote")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["mode"] == "simulated"
        assert data["pollId"] == 1
        assert data["label"] == "Vote (Demo Mode)"
        assert len(data["candidates"]) == 10

    def test_unknown_poll(self, client):
        response = client.get("/api/vote", params={"pollId": 77})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "PollNotFound"

    @pytest.mark.parametrize("poll_id", ["abc", "-1", "4294967296"])
    def test_invalid_poll_id(self, client, poll_id):
        response = client.get("/api/vote", params={"pollId": poll_id})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "InvalidPollId"
        assert body["code"] == 7000


class TestCastBallot:

    def test_returns_unsigned_transaction(self, client, seeded_gateway, voter, pick):
        response = client.post(
            "/api/vote",
            params={"pollId": LEDGER_POLL_ID},
            json={
                "voterIdentity": str(voter),
                "positiveCandidateAddresses": pick("Ada", "Linus"),
                "negativeCandidateAddresses": pick("Ken"),
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["type"] == "transaction"
        assert data["mode"] == "ledger"
        assert data["feePayer"] == str(voter)
        assert data["message"] == "Submitting 2 positive and 1 negative votes to poll 7"
        assert data["summary"] == {"pollId": 7, "positiveVotes": 2, "negativeVotes": 1}
        assert base64.b64decode(data["transaction"])

    def test_ledger_lost_after_poll_read(self, client, seeded_gateway, voter, pick):
        seeded_gateway.get_latest_checkpoint.side_effect = LedgerUnavailableError("blockhash timeout")

        response = client.post(
            f"/api/vote?pollId={LEDGER_POLL_ID}",
            json={"voterIdentity": str(voter), "positiveCandidateAddresses": pick("Ada", "Grace")},
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"] == "LedgerUnavailable"

    def test_demo_poll_is_simulated(self, client, voter, deriver):
        response = client.post(
            "/api/vote?pollId=1",
            json={
                "voterIdentity": str(voter),
                "positiveCandidateAddresses": [str(deriver.candidate_address(1, "Alice - Education"))],
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["mode"] == "simulated"
        assert "transaction" not in data
        assert data["votes"]["plus"][0]["name"] == "Alice - Education"
        assert data["votes"]["minus"] == []

    def test_rule_violation(self, client, seeded_gateway, voter, pick):
        response = client.post(
            f"/api/vote?pollId={LEDGER_POLL_ID}",
            json={
                "voterIdentity": str(voter),
                "positiveCandidateAddresses": pick("Ada"),
                "negativeCandidateAddresses": pick("Ken"),
            },
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {
            "status": "error",
            "code": 6004,
            "error": "MinusRequiresTwoPlus",
            "message": "At least 2 positive votes required to cast negative votes",
            "source": "local",
        }

    def test_empty_ballot(self, client, voter):
        response = client.post("/api/vote?pollId=2", json={"voterIdentity": str(voter)})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "EmptyBallot"

    def test_already_voted(self, client, seeded_gateway, voter, pick):
        seeded_gateway.fetch_voter_record.return_value = VoterRecord(has_voted=True)

        response = client.post(
            f"/api/vote?pollId={LEDGER_POLL_ID}",
            json={"voterIdentity": str(voter), "positiveCandidateAddresses": pick("Ada")},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "AlreadyVoted"

    def test_invalid_voter(self, client):
        response = client.post("/api/vote", json={"voterIdentity": "nope"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "InvalidVoterIdentity"

    def test_missing_body_fields(self, client):
        response = client.post("/api/vote", json={"positiveCandidateAddresses": []})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestSubmitAndReclaim:

    def test_submit(self, client, mock_gateway):
        signed = base64.b64encode(b"\x01" + bytes(64) + b"msg").decode()

        response = client.post("/api/vote/submit", json={"signedTransaction": signed})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"signature": mock_gateway.send_transaction.return_value}

    def test_submit_ledger_rejection(self, client, mock_gateway):
        mock_gateway.send_transaction.side_effect = AlreadyVotedError(source="ledger")
        signed = base64.b64encode(b"\x01" + bytes(64) + b"msg").decode()

        response = client.post("/api/vote/submit", json={"signedTransaction": signed})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert (body["code"], body["source"]) == (6000, "ledger")

    def test_submit_malformed(self, client):
        response = client.post("/api/vote/submit", json={"signedTransaction": "%%%"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "MalformedTransaction"

    def test_submit_ledger_down(self, client, mock_gateway):
        mock_gateway.send_transaction.side_effect = LedgerUnavailableError()
        signed = base64.b64encode(b"tx").decode()

        response = client.post("/api/vote/submit", json={"signedTransaction": signed})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_reclaim(self, client, mock_gateway, voter):
        mock_gateway.fetch_voter_record.return_value = VoterRecord(has_voted=True, plus_used=2)

        response = client.post("/api/vote/reclaim?pollId=3", json={"voterIdentity": str(voter)})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["feePayer"] == str(voter)
        assert data["summary"]["pollId"] == 3

    def test_reclaim_without_record(self, client, voter):
        response = client.post("/api/vote/reclaim?pollId=3", json={"voterIdentity": str(voter)})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "VoterRecordNotFound"


class TestDebugPoll:

    def test_reports_candidate_checks(self, client, deriver):
        response = client.get("/api/vote/debug-poll", params={"pollId": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["pollPda"] == str(deriver.poll_address(2))
        assert data["pollExists"] is False
        assert data["pollData"] is None
        assert [c["name"] for c in data["candidateChecks"]][0] == "Tech Innovation Focus"
        assert data["candidateChecks"][0]["expectedPda"] == str(deriver.candidate_address(2, "Tech Innovation Focus"))

    def test_ledger_poll_data(self, client, seeded_gateway):
        data = client.get("/api/vote/debug-poll", params={"pollId": LEDGER_POLL_ID}).json()

        assert data["pollExists"] is True
        assert data["pollData"]["pollDescription"] == "Board Election"
        assert data["pollData"]["candidateCount"] == "6"
        assert data["totalCandidates"] == 6
        assert data["candidateChecks"] == []


class TestHealth:

    def test_live(self, client):
        response = client.get("/health/live")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ok"

    def test_ready(self, client, mock_gateway):
        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["ledger"] == "up"

    def test_ledger_down_with_fallback_still_ready(self, client, mock_gateway):
        mock_gateway.health_check.return_value = False

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"ledger": "down", "fallback": "enabled"}

    def test_ledger_down_without_fallback_not_ready(self, client, container, mock_gateway):
        container.fallback_resolver.override(StaticFallbackResolver(enabled=False))
        mock_gateway.health_check.return_value = False

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json() == {"ledger": "down", "fallback": "disabled"}

    def test_shutdown_closes_ledger_gateway(self, container, mock_gateway):
        with TestClient(create_app()):
            mock_gateway.close.assert_not_awaited()

        mock_gateway.close.assert_awaited_once()


class TestCors:

    def test_preflight_allowed_from_any_origin(self, client):
        response = client.options(
            "/api/vote",
            headers={
                "Origin": "https://wallet.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["access-control-allow-origin"] == "*"

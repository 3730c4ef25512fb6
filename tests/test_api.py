import pytest
from fastapi.testclient import TestClient

from claimledger.core.container import build_container
from claimledger.core.security import create_access_token
from claimledger.main import create_app

from conftest import StaticLedgerVerifier


@pytest.fixture
def client(settings):
    container = build_container(settings, ledger_verifier=StaticLedgerVerifier(subject="0xaaa"))
    with TestClient(create_app(container)) as client:
        yield client


@pytest.fixture
def auth(settings):
    def headers(subject, role="subject"):
        return {"Authorization": f"Bearer {create_access_token(subject, role, settings)}"}

    return headers


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_claim_lifecycle(client, auth):
    issued = client.post(
        "/api/claims",
        json={"subject": "0xAAA", "purpose": "daily_reward", "context": {"level": 5}},
        headers=auth("game-server", "issuer"),
    )
    assert issued.status_code == 201
    signed = issued.json()
    assert signed["payload"]["subject"] == "0xaaa"
    assert signed["payload"]["amount"] == "150"
    assert signed["signature"].startswith("ed25519:")

    verified = client.post("/api/claims/verify", json=signed)
    assert verified.status_code == 200
    assert verified.json() == {"valid": True, "subject": "0xaaa"}

    submitted = client.post("/api/claims/submit", json=signed)
    assert submitted.status_code == 200
    assert submitted.json()["amount"] == "150"

    replayed = client.post("/api/claims/submit", json=signed)
    assert replayed.status_code == 409
    assert replayed.json()["detail"]["code"] == "CLAIM_ALREADY_USED"

    balance = client.get("/api/balances/me", headers=auth("0xaaa"))
    assert balance.status_code == 200
    assert balance.json()["balance"] == "150"


def test_tampered_claim_is_unauthorized(client, auth):
    signed = client.post(
        "/api/claims",
        json={"subject": "0xaaa", "purpose": "achievement"},
        headers=auth("game-server", "issuer"),
    ).json()
    signed["payload"]["amount"] = "5000"

    response = client.post("/api/claims/submit", json=signed)
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "INVALID_SIGNATURE"


def test_subjects_cannot_issue_claims(client, auth):
    response = client.post(
        "/api/claims",
        json={"subject": "0xaaa", "purpose": "achievement"},
        headers=auth("0xaaa"),
    )
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "FORBIDDEN"


def test_requests_without_a_valid_token_are_refused(client):
    assert client.get("/api/balances/me").status_code in (401, 403)

    response = client.get("/api/balances/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "INVALID_TOKEN"


def test_subjects_cannot_mint_credit_actions(client, auth):
    refused = client.post(
        "/api/actions",
        json={"action_type": "credit", "payload": {"amount": "1000000000"}},
        headers=auth("0xaaa"),
    )
    assert refused.status_code == 403
    assert refused.json()["detail"]["code"] == "FORBIDDEN"

    elsewhere = client.post(
        "/api/actions",
        json={"action_type": "upgrade", "subject": "0xbbb"},
        headers=auth("0xaaa"),
    )
    assert elsewhere.status_code == 403

    own = client.post("/api/actions", json={"action_type": "upgrade"}, headers=auth("0xaaa"))
    assert own.status_code == 201
    assert own.json()["subject"] == "0xaaa"

    assert client.get("/api/actions", headers=auth("0xaaa")).json()["actions"][0]["action_type"] == "upgrade"
    assert client.get("/api/balances/me", headers=auth("0xaaa")).json()["balance"] == "0"


def test_action_runs_once(client, auth):
    created = client.post(
        "/api/actions",
        json={"action_type": "credit", "subject": "0xAAA", "payload": {"amount": 5}},
        headers=auth("game-server", "issuer"),
    )
    assert created.status_code == 201
    action_id = created.json()["id"]
    assert created.json()["subject"] == "0xaaa"
    assert created.json()["status"] == "pending"

    assert client.get(f"/api/actions/{action_id}", headers=auth("0xbbb")).status_code == 404

    executed = client.post(f"/api/actions/{action_id}/execute", headers=auth("0xaaa"))
    assert executed.status_code == 200
    assert executed.json()["status"] == "executed"

    again = client.post(f"/api/actions/{action_id}/execute", headers=auth("0xaaa"))
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ACTION_CONFLICT"

    listed = client.get("/api/actions", headers=auth("0xaaa")).json()
    assert [action["id"] for action in listed["actions"]] == [action_id]


def test_reference_is_recorded_once(client, auth):
    first = client.post(
        "/api/references",
        json={"tx_hash": "0xdead111", "metadata": {"amount": 1000, "memo": "top-up"}},
        headers=auth("0xaaa"),
    )
    assert first.status_code == 201
    body = first.json()
    assert body["tx_hash"] == "0xdead111"
    # only issuers may state amounts
    assert body["metadata"] == {"memo": "top-up"}

    second = client.post("/api/references", json={"tx_hash": "0xDEAD111"}, headers=auth("0xaaa"))
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "DUPLICATE_REFERENCE"

    balance = client.get("/api/balances/me", headers=auth("0xaaa")).json()
    assert balance["balance"] == "0"


def test_reference_for_another_subject_needs_issuer(client, auth):
    response = client.post(
        "/api/references",
        json={"tx_hash": "0xbeef", "subject": "0xaaa"},
        headers=auth("0xbbb"),
    )
    assert response.status_code == 403

    mismatch = client.post("/api/references", json={"tx_hash": "0xbeef"}, headers=auth("0xbbb"))
    assert mismatch.status_code == 403
    assert mismatch.json()["detail"]["code"] == "REFERENCE_MISMATCH"

    issued = client.post(
        "/api/references",
        json={"tx_hash": "0xbeef", "subject": "0xaaa", "metadata": {"amount": 25}},
        headers=auth("game-server", "issuer"),
    )
    assert issued.status_code == 201
    assert issued.json()["effect_applied"] is True

    detail = client.get("/api/balances/0xaaa", headers=auth("ops", "operator"))
    assert detail.status_code == 200
    assert detail.json()["balance"] == "25"
    assert [entry["source"] for entry in detail.json()["entries"]] == ["reference"]


def test_operator_views(client, auth):
    client.post(
        "/api/claims",
        json={"subject": "0xaaa", "purpose": "achievement"},
        headers=auth("game-server", "issuer"),
    )

    assert client.get("/api/admin/stats", headers=auth("game-server", "issuer")).status_code == 403

    stats = client.get("/api/admin/stats", headers=auth("ops", "operator"))
    assert stats.status_code == 200
    assert stats.json()["total"] == 1
    assert stats.json()["live_unused"] == 1

    queue = client.get("/api/admin/reconciliation", headers=auth("ops", "operator"))
    assert queue.status_code == 200
    assert queue.json() == {"claims": [], "actions": []}

    claims = client.get("/api/claims", headers=auth("ops", "operator")).json()["claims"]
    assert len(claims) == 1
    assert claims[0]["purpose"] == "achievement"

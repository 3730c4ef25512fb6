import time

import pytest

from claimledger.core.crypto import Ed25519KeyManager, domain_digest
from claimledger.modules.claims import (
    ClaimExpiredError,
    ClaimPayload,
    ClaimPurpose,
    ClaimVerifier,
    InvalidAmountError,
    InvalidSignatureError,
)
from claimledger.modules.common.exceptions import ValidationError

from conftest import OTHER_SEED


@pytest.mark.asyncio
async def test_issued_claim_recovers_authorized_signer(container):
    signed = await container.signer.issue_claim("0xAAA", ClaimPurpose.DAILY_REWARD)

    assert signed.payload.subject == "0xaaa"
    assert signed.payload.amount == "100"
    assert container.verifier.recover(signed.payload, signed.signature) == container.key_manager.public_key_hex
    assert container.verifier.verify(signed.payload.as_message(), signed.signature) == "0xaaa"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value",
    [
        ("amount", "1000"),
        ("subject", "0xbbb"),
        ("claim_id", "00000000-0000-0000-0000-000000000000"),
        ("expires_at", None),
    ],
)
async def test_any_altered_field_is_an_invalid_signature(container, field, value):
    signed = await container.signer.issue_claim("0xaaa", ClaimPurpose.DAILY_REWARD)
    message = signed.payload.as_message()
    message[field] = value if value is not None else message["expires_at"] + 3600

    with pytest.raises(InvalidSignatureError):
        container.verifier.verify(message, signed.signature)


@pytest.mark.asyncio
async def test_signature_from_unauthorized_key_is_rejected(container, settings):
    signed = await container.signer.issue_claim("0xaaa", ClaimPurpose.ACHIEVEMENT)
    rogue = Ed25519KeyManager.from_seed_hex(OTHER_SEED)
    forged = rogue.sign_digest(domain_digest(settings.signing_domain, signed.payload.as_message()))

    with pytest.raises(InvalidSignatureError):
        container.verifier.verify(signed.payload, forged)


@pytest.mark.asyncio
async def test_signature_for_another_network_is_rejected(container, settings):
    signed = await container.signer.issue_claim("0xaaa", ClaimPurpose.ACHIEVEMENT)
    mainnet = ClaimVerifier(
        domain=dict(settings.signing_domain, network="mainnet"),
        authorized_signer=container.key_manager.public_key_hex,
    )

    with pytest.raises(InvalidSignatureError):
        mainnet.verify(signed.payload, signed.signature)


def _signed_payload(manager, domain, expires_at):
    payload = ClaimPayload(claim_id="c-1", subject="0xaaa", amount="100", expires_at=expires_at)
    return payload, manager.sign_digest(domain_digest(domain, payload.as_message()))


def test_expiry_allows_bounded_clock_skew():
    manager = Ed25519KeyManager.generate()
    domain = {"name": "claim-ledger", "version": "1", "network": "testnet"}
    now = 1_700_000_000
    verifier = ClaimVerifier(domain, manager.public_key_hex, clock_skew_seconds=30, clock=lambda: now)

    payload, signature = _signed_payload(manager, domain, now - 10)
    assert verifier.verify(payload, signature) == "0xaaa"

    payload, signature = _signed_payload(manager, domain, now - 31)
    with pytest.raises(ClaimExpiredError):
        verifier.verify(payload, signature)


def test_tampering_wins_over_expiry():
    manager = Ed25519KeyManager.generate()
    domain = {"name": "claim-ledger", "version": "1", "network": "testnet"}
    verifier = ClaimVerifier(domain, manager.public_key_hex, clock=time.time)
    payload, signature = _signed_payload(manager, domain, 1000)
    message = dict(payload.as_message(), amount="101")

    with pytest.raises(InvalidSignatureError):
        verifier.verify(message, signature)


@pytest.mark.parametrize("amount", ["-1", "01", "1.5", "1e3", "", 100])
def test_non_canonical_amounts_are_rejected(amount):
    verifier = ClaimVerifier({"name": "x", "version": "1", "network": "n"}, "00" * 32)
    message = {"claim_id": "c-1", "subject": "0xaaa", "amount": amount, "expires_at": 1}

    with pytest.raises(InvalidAmountError):
        verifier.verify(message, "ed25519:00:00")


def test_missing_fields_are_a_payload_error():
    verifier = ClaimVerifier({"name": "x", "version": "1", "network": "n"}, "00" * 32)

    with pytest.raises(ValidationError):
        verifier.verify({"claim_id": "c-1", "subject": "0xaaa"}, "ed25519:00:00")

import pytest

from claimledger.core.crypto import (
    Ed25519KeyManager,
    SignatureFormatError,
    canonicalize,
    domain_digest,
    recover_signer,
)

DOMAIN = {"name": "claim-ledger", "version": "1", "network": "testnet"}
MESSAGE = {"claim_id": "c-1", "subject": "0xaaa", "amount": "100", "expires_at": 1700000000}


def test_canonical_encoding_ignores_key_order():
    reordered = dict(reversed(list(MESSAGE.items())))
    assert canonicalize(MESSAGE) == canonicalize(reordered)
    assert canonicalize({"b": 1, "a": "x"}) == b'{"a":"x","b":1}'


def test_digest_depends_on_domain():
    other = dict(DOMAIN, network="mainnet")
    assert domain_digest(DOMAIN, MESSAGE) != domain_digest(other, MESSAGE)


def test_sign_and_recover_round_trip():
    manager = Ed25519KeyManager.generate()
    digest = domain_digest(DOMAIN, MESSAGE)
    signature = manager.sign_digest(digest)

    assert signature.startswith(f"ed25519:{manager.public_key_hex}:")
    assert recover_signer(digest, signature) == manager.public_key_hex


def test_signature_over_other_message_does_not_recover():
    manager = Ed25519KeyManager.generate()
    signature = manager.sign_digest(domain_digest(DOMAIN, MESSAGE))
    tampered = domain_digest(DOMAIN, dict(MESSAGE, amount="1000"))

    assert recover_signer(tampered, signature) is None


def test_swapping_the_embedded_key_does_not_recover():
    manager = Ed25519KeyManager.generate()
    impostor = Ed25519KeyManager.generate()
    digest = domain_digest(DOMAIN, MESSAGE)
    _, _, raw = manager.sign_digest(digest).split(":")

    assert recover_signer(digest, f"ed25519:{impostor.public_key_hex}:{raw}") is None


@pytest.mark.parametrize(
    "signature",
    ["", "not-a-signature", "rsa:00:abc", "ed25519:zz:abc", "ed25519:" + "00" * 5 + ":abc", None],
)
def test_malformed_signatures_raise(signature):
    with pytest.raises(SignatureFormatError):
        recover_signer(domain_digest(DOMAIN, MESSAGE), signature)


def test_key_file_round_trip(tmp_path):
    manager = Ed25519KeyManager.generate()
    path = tmp_path / "keys" / "signer.pem"
    manager.save(path)

    loaded = Ed25519KeyManager.from_file(path)
    assert loaded.public_key_hex == manager.public_key_hex


def test_seed_is_deterministic_and_checked():
    assert Ed25519KeyManager.from_seed_hex("11" * 32).public_key_hex == Ed25519KeyManager.from_seed_hex("11" * 32).public_key_hex
    with pytest.raises(ValueError):
        Ed25519KeyManager.from_seed_hex("11" * 16)

import asyncio

import pytest

from claimledger.core.container import build_container
from claimledger.modules.references import (
    DuplicateReferenceError,
    InvalidReferenceError,
    ReferenceMismatchError,
    ReplayGuard,
    normalize_tx_hash,
)

from conftest import StaticLedgerVerifier, balance_of


@pytest.mark.asyncio
async def test_reference_is_accepted_once(container, ledger):
    accepted = await container.replay_guard.record_and_check("0xdead111", "0xAAA")
    assert accepted.record.tx_hash == "0xdead111"
    assert accepted.record.subject == "0xaaa"
    assert accepted.effect.applied is True
    assert await balance_of(container, "0xaaa") == 50

    with pytest.raises(DuplicateReferenceError):
        await container.replay_guard.record_and_check("0xdead111", "0xaaa")
    with pytest.raises(DuplicateReferenceError):
        await container.replay_guard.record_and_check("  0xDEAD111 ", "0xaaa")

    assert await balance_of(container, "0xaaa") == 50
    # duplicates never reach the ledger
    assert ledger.calls == ["0xdead111"]


@pytest.mark.asyncio
@pytest.mark.parametrize("replayed", ["dead111", "DEAD111", "0Xdead111"])
async def test_hash_without_prefix_is_the_same_reference(container, replayed):
    await container.replay_guard.record_and_check("0xdead111", "0xaaa")

    with pytest.raises(DuplicateReferenceError):
        await container.replay_guard.record_and_check(replayed, "0xaaa")
    assert await balance_of(container, "0xaaa") == 50


@pytest.mark.parametrize(
    "raw, expected",
    [("0xDEAD111", "0xdead111"), ("dead111", "0xdead111"), (" 0XAb01 ", "0xab01")],
)
def test_hashes_have_one_stored_form(raw, expected):
    assert normalize_tx_hash(raw) == expected


@pytest.mark.asyncio
async def test_duplicate_detected_after_restart(settings, ledger, container):
    await container.replay_guard.record_and_check("0xdead111", "0xaaa")
    await container.dispose()

    restarted = build_container(settings, ledger_verifier=ledger)
    try:
        with pytest.raises(DuplicateReferenceError):
            await restarted.replay_guard.record_and_check("0xdead111", "0xaaa")
        assert await balance_of(restarted, "0xaaa") == 50
    finally:
        await restarted.dispose()


@pytest.mark.asyncio
async def test_racing_inserts_let_the_store_decide(container):
    results = await asyncio.gather(
        *(container.replay_guard.record_and_check("0xbeef", "0xaaa") for _ in range(5)),
        return_exceptions=True,
    )

    accepted = [result for result in results if not isinstance(result, Exception)]
    assert len(accepted) == 1
    assert all(isinstance(result, DuplicateReferenceError) for result in results if isinstance(result, Exception))
    assert await balance_of(container, "0xaaa") == 50


@pytest.mark.asyncio
async def test_unconfirmed_reference_is_not_recorded(container, ledger):
    ledger.rejected.add("0xbad")

    with pytest.raises(InvalidReferenceError):
        await container.replay_guard.record_and_check("0xbad", "0xaaa")

    ledger.rejected.clear()
    accepted = await container.replay_guard.record_and_check("0xbad", "0xaaa")
    assert accepted.record.tx_hash == "0xbad"


@pytest.mark.asyncio
async def test_reference_sent_by_someone_else_is_refused(container):
    with pytest.raises(ReferenceMismatchError):
        await container.replay_guard.record_and_check("0xcafe", "0xbbb")
    assert await balance_of(container, "0xbbb") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("tx_hash", ["", "0x", "0xnothex", "deadbeef; drop table"])
async def test_malformed_hashes_are_invalid(container, tx_hash):
    with pytest.raises(InvalidReferenceError):
        await container.replay_guard.record_and_check(tx_hash, "0xaaa")


@pytest.mark.asyncio
async def test_ledger_metadata_overrides_caller_metadata(container):
    accepted = await container.replay_guard.record_and_check("0xf00d", "0xaaa", {"amount": 10_000, "memo": "hi"})

    assert accepted.record.metadata == {"amount": 50, "memo": "hi"}
    assert await balance_of(container, "0xaaa") == 50


@pytest.mark.asyncio
async def test_reference_without_amount_is_recorded_without_credit(container):
    guard = ReplayGuard(
        session_factory=container.session_factory,
        mutator=container.mutator,
        verifier=StaticLedgerVerifier(subject=None),
    )

    accepted = await guard.record_and_check("0xabc123", "0xccc")
    assert accepted.effect.applied is True
    assert accepted.effect.reference is None
    assert await balance_of(container, "0xccc") == 0


@pytest.mark.asyncio
async def test_guard_without_ledger_rejects_everything(container):
    guard = ReplayGuard(session_factory=container.session_factory, mutator=container.mutator)

    with pytest.raises(InvalidReferenceError):
        await guard.record_and_check("0xabc", "0xaaa")

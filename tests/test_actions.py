import asyncio

import pytest

from claimledger.core.container import build_container
from claimledger.infrastructure.database.session import init_db
from claimledger.modules.actions import (
    ActionAlreadyResolvedError,
    ActionConflictError,
    ActionEffectFailedError,
    ActionNotFoundError,
    ActionStatus,
)
from claimledger.modules.common.exceptions import ValidationError
from claimledger.modules.references import DuplicateReferenceError

from conftest import DecliningMutator, balance_of, make_settings


@pytest.mark.asyncio
async def test_concurrent_executions_have_exactly_one_winner(container):
    action = await container.action_service.create_action("0xaaa", "credit", {"amount": "5"})

    results = await asyncio.gather(
        *(container.action_service.execute(action.id, "0xaaa") for _ in range(10)),
        return_exceptions=True,
    )

    winners = [result for result in results if not isinstance(result, Exception)]
    conflicts = [result for result in results if isinstance(result, ActionConflictError)]
    assert len(winners) == 1
    assert len(conflicts) == 9
    assert winners[0].status == ActionStatus.EXECUTED.value
    assert await balance_of(container, "0xaaa") == 5

    stored = await container.action_service.get_action(action.id)
    assert stored.status == ActionStatus.EXECUTED.value
    assert stored.execution_token == winners[0].execution_token


@pytest.mark.asyncio
async def test_executed_action_is_terminal(container):
    action = await container.action_service.create_action("0xaaa", "credit", {"amount": 7})
    await container.action_service.execute(action.id, "0xAAA")

    with pytest.raises(ActionConflictError):
        await container.action_service.execute(action.id, "0xaaa")
    assert await balance_of(container, "0xaaa") == 7


@pytest.mark.asyncio
async def test_other_subjects_cannot_see_or_run_an_action(container):
    action = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})

    with pytest.raises(ActionNotFoundError):
        await container.action_service.execute(action.id, "0xbbb")
    with pytest.raises(ActionNotFoundError):
        await container.action_service.execute("no-such-action", "0xaaa")
    with pytest.raises(ActionNotFoundError):
        await container.action_service.get_action(action.id, "0xbbb")

    stored = await container.action_service.get_action(action.id, "0xaaa")
    assert stored.status == ActionStatus.PENDING.value
    assert stored.execution_token is None


@pytest.mark.asyncio
@pytest.mark.parametrize("action_type, payload", [("Credit!", {}), ("", {}), ("credit", {"amount": object()})])
async def test_invalid_actions_are_rejected(container, action_type, payload):
    with pytest.raises(ValidationError):
        await container.action_service.create_action("0xaaa", action_type, payload)


@pytest.mark.asyncio
async def test_failed_effect_is_never_reopened(container):
    action = await container.action_service.create_action("0xaaa", "upgrade_submarine", {"tier": 2})

    with pytest.raises(ActionEffectFailedError) as excinfo:
        await container.action_service.execute(action.id, "0xaaa")
    assert excinfo.value.details["action_id"] == action.id

    stored = await container.action_service.get_action(action.id)
    assert stored.status == ActionStatus.FAILED.value
    assert stored.execution_token is not None
    assert "unsupported action type" in stored.error_message

    with pytest.raises(ActionConflictError):
        await container.action_service.execute(action.id, "0xaaa")

    queue = await container.action_service.list_needing_reconciliation()
    assert [item.id for item in queue] == [action.id]

    resolved = await container.action_service.resolve_action(
        action.id,
        operator="ops@example",
        resolution="manually_applied",
        note="upgraded by hand",
    )
    assert resolved.resolution == "manually_applied"
    assert resolved.resolved_by == "ops@example"
    assert await container.action_service.list_needing_reconciliation() == []

    with pytest.raises(ActionAlreadyResolvedError):
        await container.action_service.resolve_action(action.id, operator="ops", resolution="written_off")
    with pytest.raises(ValidationError):
        await container.action_service.resolve_action(action.id, operator="ops", resolution="reissued")


@pytest.mark.asyncio
async def test_declined_effect_fails_the_action(tmp_path, ledger):
    container = build_container(make_settings(tmp_path), mutator=DecliningMutator(), ledger_verifier=ledger)
    await init_db(container.engine)
    try:
        action = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})
        with pytest.raises(ActionEffectFailedError):
            await container.action_service.execute(action.id, "0xaaa")

        stored = await container.action_service.get_action(action.id)
        assert stored.status == ActionStatus.FAILED.value
        assert stored.error_message == "upgrade slot locked"
    finally:
        await container.dispose()


@pytest.mark.asyncio
async def test_attached_reference_is_recorded_with_the_effect(container):
    action = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})
    attached = await container.action_service.attach_reference(action.id, "0xaaa", "0xAB01")
    assert attached.tx_hash == "0xab01"

    with pytest.raises(ActionConflictError):
        await container.action_service.attach_reference(action.id, "0xaaa", "0xab02")

    await container.action_service.execute(action.id, "0xaaa")

    # the hash paid for the action; it cannot pay for anything else
    with pytest.raises(DuplicateReferenceError):
        await container.replay_guard.record_and_check("0xab01", "0xaaa")
    assert await balance_of(container, "0xaaa") == 5


@pytest.mark.asyncio
async def test_one_reference_cannot_pay_for_two_actions(container):
    first = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})
    second = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})
    await container.action_service.attach_reference(first.id, "0xaaa", "0xab03")
    await container.action_service.attach_reference(second.id, "0xaaa", "0xab03")

    await container.action_service.execute(first.id, "0xaaa")
    with pytest.raises(ActionEffectFailedError):
        await container.action_service.execute(second.id, "0xaaa")

    assert await balance_of(container, "0xaaa") == 5
    stored = await container.action_service.get_action(second.id)
    assert stored.status == ActionStatus.FAILED.value


@pytest.mark.asyncio
async def test_reference_cannot_be_attached_after_execution_started(container):
    action = await container.action_service.create_action("0xaaa", "credit", {"amount": 5})
    await container.action_service.execute(action.id, "0xaaa")

    with pytest.raises(ActionConflictError):
        await container.action_service.attach_reference(action.id, "0xaaa", "0xab04")
    with pytest.raises(ActionNotFoundError):
        await container.action_service.attach_reference(action.id, "0xbbb", "0xab05")

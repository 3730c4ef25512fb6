"""Execution coordinator for pending actions."""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimledger.infrastructure.database.repositories.action_repository import SqlPendingActionRepository
from claimledger.modules.common.effects import StateMutator
from claimledger.modules.common.exceptions import EffectFailedError, ValidationError
from claimledger.modules.common.subjects import normalize_subject, utcnow
from claimledger.modules.references.service import ReplayGuard, normalize_tx_hash

from .exceptions import (
    ActionAlreadyResolvedError,
    ActionConflictError,
    ActionEffectFailedError,
    ActionNotFoundError,
)
from .models import ActionResolution, ActionStatus, PendingActionRecord

logger = logging.getLogger(__name__)

_ACTION_TYPE_RE = re.compile(r"^[a-z][a-z0-9_.]{0,49}$")


@dataclass(slots=True)
class PendingActionService:
    session_factory: async_sessionmaker[AsyncSession]
    mutator: StateMutator
    replay_guard: ReplayGuard | None = None
    stalled_after_seconds: int = 300

    async def create_action(
        self,
        subject: str,
        action_type: str,
        payload: Mapping[str, Any] | None = None,
    ) -> PendingActionRecord:
        subject = normalize_subject(subject)
        if not isinstance(action_type, str) or not _ACTION_TYPE_RE.match(action_type):
            raise ValidationError(f"invalid action type: {action_type!r}")
        payload = dict(payload or {})
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"action payload is not JSON serialisable: {exc}") from exc

        async with self.session_factory() as session:
            action = await SqlPendingActionRepository(session).create(
                subject=subject,
                action_type=action_type,
                payload=payload,
            )
            await session.commit()
        logger.info("Created %s action %s for %s", action_type, action.id, subject)
        return action

    async def get_action(self, action_id: str, subject: str | None = None) -> PendingActionRecord:
        async with self.session_factory() as session:
            action = await SqlPendingActionRepository(session).get(action_id)
        if action is None or (subject is not None and action.subject != normalize_subject(subject)):
            raise ActionNotFoundError(f"action {action_id} not found", action_id=action_id)
        return action

    async def list_actions(self, subject: str, limit: int = 50, offset: int = 0) -> Sequence[PendingActionRecord]:
        async with self.session_factory() as session:
            return await SqlPendingActionRepository(session).list_for_subject(normalize_subject(subject), limit, offset)

    async def attach_reference(self, action_id: str, subject: str, tx_hash: str) -> PendingActionRecord:
        """Bind an external payment reference to a still-pending action.

        The reference is checked against the replay guard and the ledger
        now, but only recorded when the action executes.
        """
        subject = normalize_subject(subject)
        tx_hash = normalize_tx_hash(tx_hash)
        if self.replay_guard is None:
            raise ValidationError("external references are not enabled")
        await self.replay_guard.confirm(tx_hash, subject)

        async with self.session_factory() as session:
            repo = SqlPendingActionRepository(session)
            action = await repo.attach_reference(action_id, subject=subject, tx_hash=tx_hash)
            if action is None:
                existing = await repo.get(action_id)
                if existing is None or existing.subject != subject:
                    raise ActionNotFoundError(f"action {action_id} not found", action_id=action_id)
                raise ActionConflictError(
                    f"action {action_id} is no longer pending or already has a reference",
                    action_id=action_id,
                )
            await session.commit()
        logger.info("Attached reference %s to action %s", tx_hash, action_id)
        return action

    async def execute(self, action_id: str, subject: str) -> PendingActionRecord:
        """Run a pending action at most once.

        The pending -> executing flip and the token are one conditional
        update; every concurrent loser gets ``ActionConflictError``. A
        failed effect leaves the token in place and marks the action
        failed for reconciliation.
        """
        subject = normalize_subject(subject)
        token = str(uuid.uuid4())

        async with self.session_factory() as session:
            repo = SqlPendingActionRepository(session)
            action = await repo.claim_execution(action_id, subject=subject, token=token, started_at=utcnow())
            if action is None:
                existing = await repo.get(action_id)
                if existing is None or existing.subject != subject:
                    logger.warning("Execute of unknown action %s by %s", action_id, subject)
                    raise ActionNotFoundError(f"action {action_id} not found", action_id=action_id)
                logger.warning("Action %s already %s; execute by %s refused", action_id, existing.status, subject)
                raise ActionConflictError(f"action {action_id} is already {existing.status}", action_id=action_id)
            await session.commit()

        try:
            async with self.session_factory() as session:
                if action.tx_hash:
                    if self.replay_guard is None:
                        raise EffectFailedError("action carries a reference but no replay guard is configured")
                    await self.replay_guard.record_in_session(
                        session,
                        action.tx_hash,
                        action.subject,
                        {"action_type": action.action_type},
                        action_id=action.id,
                    )
                result = await self.mutator.apply_action(session, action)
                if not result.applied:
                    raise EffectFailedError(result.detail.get("reason", "state mutator declined the action"))
                finished_at = utcnow()
                if not await SqlPendingActionRepository(session).finish(
                    action.id,
                    token=token,
                    status=ActionStatus.EXECUTED.value,
                    error=None,
                    finished_at=finished_at,
                ):
                    raise EffectFailedError("execution token no longer matches")
                await session.commit()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error(
                "Action %s (%s) for %s failed after it was taken for execution: %s",
                action.id,
                action.action_type,
                action.subject,
                exc,
            )
            await self._mark_failed(action.id, token, str(exc))
            raise ActionEffectFailedError(
                f"action {action.id} failed; awaiting reconciliation",
                action_id=action.id,
            ) from exc

        action.status = ActionStatus.EXECUTED.value
        action.execution_token = token
        action.executed_at = finished_at
        logger.info("Executed %s action %s for %s", action.action_type, action.id, action.subject)
        return action

    async def _mark_failed(self, action_id: str, token: str, error: str) -> None:
        # the token stays set; an action left executing is picked up as stalled
        try:
            async with self.session_factory() as session:
                await SqlPendingActionRepository(session).finish(
                    action_id,
                    token=token,
                    status=ActionStatus.FAILED.value,
                    error=error[:2000],
                    finished_at=utcnow(),
                )
                await session.commit()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Could not record failure for action %s", action_id)

    async def list_needing_reconciliation(self) -> Sequence[PendingActionRecord]:
        async with self.session_factory() as session:
            return await SqlPendingActionRepository(session).list_needing_reconciliation(self._stalled_before())

    async def resolve_action(
        self,
        action_id: str,
        *,
        operator: str,
        resolution: str | ActionResolution,
        note: str | None = None,
    ) -> PendingActionRecord:
        try:
            resolution = ActionResolution(resolution)
        except ValueError as exc:
            raise ValidationError(f"unknown resolution {resolution!r}") from exc

        async with self.session_factory() as session:
            repo = SqlPendingActionRepository(session)
            action = await repo.resolve(
                action_id,
                resolution=resolution.value,
                resolved_by=operator,
                note=note,
                resolved_at=utcnow(),
                stalled_before=self._stalled_before(),
            )
            if action is None:
                if await repo.get(action_id) is None:
                    raise ActionNotFoundError(f"action {action_id} not found", action_id=action_id)
                raise ActionAlreadyResolvedError(
                    f"action {action_id} is not awaiting reconciliation",
                    action_id=action_id,
                )
            await session.commit()
        logger.info("Action %s resolved as %s by %s", action_id, resolution.value, operator)
        return action

    def _stalled_before(self):
        return utcnow() - timedelta(seconds=self.stalled_after_seconds)

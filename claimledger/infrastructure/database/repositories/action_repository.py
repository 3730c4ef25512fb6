"""SQLAlchemy repository implementation for pending actions."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, desc, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from claimledger.db.models import PendingAction as PendingActionModel
from claimledger.modules.actions.models import ActionStatus, PendingActionRecord


class SqlPendingActionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, subject: str, action_type: str, payload: dict[str, Any]) -> PendingActionRecord:
        model = PendingActionModel(
            subject=subject,
            action_type=action_type,
            payload=json.dumps(payload or {}, sort_keys=True),
            status=ActionStatus.PENDING.value,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def get(self, action_id: str) -> PendingActionRecord | None:
        stmt = select(PendingActionModel).where(PendingActionModel.id == action_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def attach_reference(self, action_id: str, *, subject: str, tx_hash: str) -> PendingActionRecord | None:
        stmt = (
            update(PendingActionModel)
            .where(
                PendingActionModel.id == action_id,
                PendingActionModel.subject == subject,
                PendingActionModel.status == ActionStatus.PENDING.value,
                PendingActionModel.execution_token.is_(None),
                PendingActionModel.tx_hash.is_(None),
            )
            .values(tx_hash=tx_hash)
            .execution_options(synchronize_session="fetch")
            .returning(PendingActionModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def claim_execution(
        self,
        action_id: str,
        *,
        subject: str,
        token: str,
        started_at: datetime,
    ) -> PendingActionRecord | None:
        """pending -> executing in one conditional statement; ``None`` if the race was lost."""
        stmt = (
            update(PendingActionModel)
            .where(
                PendingActionModel.id == action_id,
                PendingActionModel.subject == subject,
                PendingActionModel.status == ActionStatus.PENDING.value,
                PendingActionModel.execution_token.is_(None),
            )
            .values(
                status=ActionStatus.EXECUTING.value,
                execution_token=token,
                started_at=started_at,
            )
            .execution_options(synchronize_session="fetch")
            .returning(PendingActionModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def finish(
        self,
        action_id: str,
        *,
        token: str,
        status: str,
        error: str | None,
        finished_at: datetime,
    ) -> bool:
        stmt = (
            update(PendingActionModel)
            .where(
                PendingActionModel.id == action_id,
                PendingActionModel.execution_token == token,
                PendingActionModel.status == ActionStatus.EXECUTING.value,
            )
            .values(status=status, error_message=error, executed_at=finished_at)
            .execution_options(synchronize_session="fetch")
            .returning(PendingActionModel.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first() is not None

    async def list_for_subject(self, subject: str, limit: int, offset: int) -> Sequence[PendingActionRecord]:
        stmt = (
            select(PendingActionModel)
            .where(PendingActionModel.subject == subject)
            .order_by(desc(PendingActionModel.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def list_needing_reconciliation(self, stalled_before: datetime) -> Sequence[PendingActionRecord]:
        stmt = (
            select(PendingActionModel)
            .where(PendingActionModel.resolution.is_(None), self._needs_reconciliation(stalled_before))
            .order_by(PendingActionModel.started_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def resolve(
        self,
        action_id: str,
        *,
        resolution: str,
        resolved_by: str,
        note: str | None,
        resolved_at: datetime,
        stalled_before: datetime,
    ) -> PendingActionRecord | None:
        stmt = (
            update(PendingActionModel)
            .where(
                PendingActionModel.id == action_id,
                PendingActionModel.resolution.is_(None),
                self._needs_reconciliation(stalled_before),
            )
            .values(
                resolution=resolution,
                resolved_by=resolved_by,
                resolved_at=resolved_at,
                resolution_note=note,
            )
            .execution_options(synchronize_session="fetch")
            .returning(PendingActionModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    @staticmethod
    def _needs_reconciliation(stalled_before: datetime):
        return or_(
            PendingActionModel.status == ActionStatus.FAILED.value,
            and_(
                PendingActionModel.status == ActionStatus.EXECUTING.value,
                PendingActionModel.started_at < stalled_before,
            ),
        )

    @staticmethod
    def _to_domain(model: PendingActionModel) -> PendingActionRecord:
        return PendingActionRecord(
            id=model.id,
            subject=model.subject,
            action_type=model.action_type,
            status=model.status,
            payload=json.loads(model.payload) if model.payload else {},
            execution_token=model.execution_token,
            tx_hash=model.tx_hash,
            error_message=model.error_message,
            created_at=model.created_at,
            started_at=model.started_at,
            executed_at=model.executed_at,
            resolution=model.resolution,
            resolved_by=model.resolved_by,
            resolved_at=model.resolved_at,
            resolution_note=model.resolution_note,
        )

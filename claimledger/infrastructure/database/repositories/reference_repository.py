"""SQLAlchemy implementation for recorded external references"""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from claimledger.db.models import ExternalTransaction
from claimledger.modules.references.models import ExternalTxRecord


class SqlReferenceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, tx_hash: str) -> ExternalTxRecord | None:
        stmt = select(ExternalTransaction).where(ExternalTransaction.tx_hash == tx_hash)
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def insert(
        self,
        *,
        tx_hash: str,
        subject: str,
        metadata: dict[str, Any],
        action_id: str | None,
    ) -> ExternalTxRecord:
        """Insert the reference; raises ``IntegrityError`` when it already exists."""
        model = ExternalTransaction(
            tx_hash=tx_hash,
            subject=subject,
            meta=json.dumps(metadata or {}, sort_keys=True, default=str),
            action_id=action_id,
        )
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: ExternalTransaction) -> ExternalTxRecord:
        return ExternalTxRecord(
            tx_hash=model.tx_hash,
            subject=model.subject,
            metadata=json.loads(model.meta) if model.meta else {},
            action_id=model.action_id,
            recorded_at=model.recorded_at,
        )

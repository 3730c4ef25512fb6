"""SQLAlchemy implementation of the claim ledger."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, delete, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from claimledger.db.models import ClaimAttempt, ClaimRecord as ClaimModel
from claimledger.modules.claims.models import ClaimRecord, EffectStatus
from claimledger.modules.claims.repository import ClaimRepository

ALREADY_USED_OUTCOME = "CLAIM_ALREADY_USED"


class SqlClaimRepository(ClaimRepository):
    """Claim repository backed by SQLAlchemy models."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        subject: str,
        amount: int,
        purpose: str,
        signer: str,
        expires_at: int,
        metadata: dict[str, Any],
    ) -> ClaimRecord:
        model = ClaimModel(
            subject=subject,
            amount=str(amount),
            purpose=purpose,
            signer=signer,
            expires_at=expires_at,
            meta=json.dumps(metadata or {}, sort_keys=True),
            used=False,
            effect_status=EffectStatus.UNCONSUMED.value,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def get(self, claim_id: str) -> ClaimRecord | None:
        stmt = select(ClaimModel).where(ClaimModel.claim_id == claim_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def mark_used(
        self,
        claim_id: str,
        *,
        subject: str,
        amount: int,
        not_expired_at: int,
        used_at: datetime,
    ) -> ClaimRecord | None:
        """Flip ``used`` false -> true in one conditional statement.

        Returns ``None`` when no row matched: the claim is missing, already
        consumed, expired, or does not match the presented subject/amount.
        """
        stmt = (
            update(ClaimModel)
            .where(
                ClaimModel.claim_id == claim_id,
                ClaimModel.used == False,  # noqa: E712
                ClaimModel.subject == subject,
                ClaimModel.amount == str(amount),
                ClaimModel.expires_at >= not_expired_at,
            )
            .values(
                used=True,
                used_at=used_at,
                effect_status=EffectStatus.APPLYING.value,
                effect_updated_at=used_at,
            )
            .execution_options(synchronize_session="fetch")
            .returning(ClaimModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def set_effect_status(
        self,
        claim_id: str,
        *,
        status: str,
        error: str | None,
        reference: str | None,
        updated_at: datetime,
    ) -> None:
        stmt = (
            update(ClaimModel)
            .where(
                ClaimModel.claim_id == claim_id,
                ClaimModel.used == True,  # noqa: E712
                ClaimModel.effect_status == EffectStatus.APPLYING.value,
            )
            .values(
                effect_status=status,
                effect_error=error,
                effect_reference=reference,
                effect_updated_at=updated_at,
            )
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)

    async def resolve(
        self,
        claim_id: str,
        *,
        resolution: str,
        resolved_by: str,
        note: str | None,
        resolved_at: datetime,
        stalled_before: datetime,
    ) -> ClaimRecord | None:
        stmt = (
            update(ClaimModel)
            .where(
                ClaimModel.claim_id == claim_id,
                ClaimModel.used == True,  # noqa: E712
                ClaimModel.resolution.is_(None),
                self._needs_reconciliation(stalled_before),
            )
            .values(
                resolution=resolution,
                resolved_by=resolved_by,
                resolved_at=resolved_at,
                resolution_note=note,
            )
            .execution_options(synchronize_session="fetch")
            .returning(ClaimModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def link_reissue(self, claim_id: str, reissued_claim_id: str) -> None:
        stmt = (
            update(ClaimModel)
            .where(ClaimModel.claim_id == claim_id)
            .values(reissued_claim_id=reissued_claim_id)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)

    async def list_claims(
        self,
        subject: str | None,
        only_unused: bool,
        limit: int,
        offset: int,
    ) -> Sequence[ClaimRecord]:
        stmt = select(ClaimModel)
        if subject:
            stmt = stmt.where(ClaimModel.subject == subject)
        if only_unused:
            stmt = stmt.where(ClaimModel.used == False)  # noqa: E712
        stmt = stmt.order_by(desc(ClaimModel.created_at)).offset(offset).limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def list_needing_reconciliation(self, stalled_before: datetime) -> Sequence[ClaimRecord]:
        stmt = (
            select(ClaimModel)
            .where(
                ClaimModel.used == True,  # noqa: E712
                ClaimModel.resolution.is_(None),
                self._needs_reconciliation(stalled_before),
            )
            .order_by(ClaimModel.used_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def delete_expired_unused(self, expired_before: int) -> int:
        stmt = delete(ClaimModel).where(
            ClaimModel.used == False,  # noqa: E712
            ClaimModel.expires_at < expired_before,
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def record_attempt(self, *, claim_id: str | None, subject: str | None, outcome: str) -> None:
        self._session.add(ClaimAttempt(claim_id=claim_id, subject=subject, outcome=outcome))
        await self._session.flush()

    async def delete_attempts_before(self, created_before: datetime) -> int:
        stmt = delete(ClaimAttempt).where(ClaimAttempt.created_at < created_before)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def stats(self, now: int, top: int) -> dict[str, Any]:
        count = func.count(ClaimModel.claim_id)
        stmt = select(
            count,
            count.filter(and_(ClaimModel.used == False, ClaimModel.expires_at >= now)),  # noqa: E712
            count.filter(ClaimModel.used == True),  # noqa: E712
            count.filter(and_(ClaimModel.used == False, ClaimModel.expires_at < now)),  # noqa: E712
            count.filter(ClaimModel.effect_status == EffectStatus.FAILED.value),
        )
        total, live_unused, consumed, expired_unused, failed = (await self._session.execute(stmt)).one()

        attempts = func.count(ClaimAttempt.id)
        top_stmt = (
            select(ClaimAttempt.subject, attempts)
            .where(ClaimAttempt.outcome == ALREADY_USED_OUTCOME, ClaimAttempt.subject.is_not(None))
            .group_by(ClaimAttempt.subject)
            .order_by(desc(attempts))
            .limit(top)
        )
        top_rows = (await self._session.execute(top_stmt)).all()
        return {
            "total": total,
            "live_unused": live_unused,
            "consumed": consumed,
            "expired_unused": expired_unused,
            "failed": failed,
            "top_already_used": [(subject, n) for subject, n in top_rows],
        }

    @staticmethod
    def _needs_reconciliation(stalled_before: datetime):
        return or_(
            ClaimModel.effect_status == EffectStatus.FAILED.value,
            and_(
                ClaimModel.effect_status == EffectStatus.APPLYING.value,
                ClaimModel.effect_updated_at < stalled_before,
            ),
        )

    @staticmethod
    def _to_domain(model: ClaimModel) -> ClaimRecord:
        return ClaimRecord(
            claim_id=model.claim_id,
            subject=model.subject,
            amount=int(model.amount),
            purpose=model.purpose,
            signer=model.signer,
            expires_at=int(model.expires_at),
            used=bool(model.used),
            effect_status=model.effect_status,
            metadata=json.loads(model.meta) if model.meta else {},
            used_at=model.used_at,
            created_at=model.created_at,
            effect_error=model.effect_error,
            effect_reference=model.effect_reference,
            effect_updated_at=model.effect_updated_at,
            resolution=model.resolution,
            resolved_by=model.resolved_by,
            resolved_at=model.resolved_at,
            resolution_note=model.resolution_note,
            reissued_claim_id=model.reissued_claim_id,
        )

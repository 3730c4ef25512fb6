"""Claim consumption, reconciliation and ledger maintenance."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimledger.infrastructure.database.repositories.claim_repository import SqlClaimRepository
from claimledger.modules.common.effects import StateMutator
from claimledger.modules.common.exceptions import EngineError, ValidationError
from claimledger.modules.common.subjects import normalize_subject, utcnow

from .exceptions import (
    AmountMismatchError,
    ClaimAlreadyResolvedError,
    ClaimAlreadyUsedError,
    ClaimEffectFailedError,
    ClaimError,
    ClaimExpiredError,
    ClaimNotFoundError,
    SubjectMismatchError,
)
from .models import (
    ClaimPayload,
    ClaimPurpose,
    ClaimReceipt,
    ClaimRecord,
    ClaimResolution,
    ClaimStats,
    EffectStatus,
    SignedClaim,
)
from .signer import ClaimSigner
from .verifier import ClaimVerifier, coerce_payload, parse_amount

logger = logging.getLogger(__name__)

CONSUMED_OUTCOME = "CONSUMED"


@dataclass(slots=True)
class ResolutionOutcome:
    claim: ClaimRecord
    reissued: SignedClaim | None = None


@dataclass(slots=True)
class ClaimService:
    session_factory: async_sessionmaker[AsyncSession]
    verifier: ClaimVerifier
    mutator: StateMutator
    signer: ClaimSigner | None = None
    gc_grace_seconds: int = 60 * 60 * 24
    stalled_after_seconds: int = 300
    clock: Callable[[], float] = field(default=time.time)

    async def submit_claim(self, payload: Mapping[str, Any] | ClaimPayload, signature: str) -> ClaimReceipt:
        """Consume a signed claim exactly once and apply its credit."""
        payload = coerce_payload(payload)
        try:
            self.verifier.verify(payload, signature)
        except ClaimError as exc:
            logger.warning("Claim %s rejected before ledger: %s", payload.claim_id, exc.code)
            await self._record_attempt(payload.claim_id, payload.subject, exc.code)
            raise

        amount = parse_amount(payload.amount)
        record = await self._consume(payload, amount)
        return await self._apply_credit(record)

    async def _consume(self, payload: ClaimPayload, amount: int) -> ClaimRecord:
        now_ts = int(self.clock())
        async with self.session_factory() as session:
            repo = SqlClaimRepository(session)
            record = await repo.mark_used(
                payload.claim_id,
                subject=payload.subject,
                amount=amount,
                not_expired_at=now_ts,
                used_at=utcnow(),
            )
            if record is None:
                error = self._classify(await repo.get(payload.claim_id), payload, amount, now_ts)
                await repo.record_attempt(claim_id=payload.claim_id, subject=payload.subject, outcome=error.code)
                await session.commit()
                logger.warning("Claim %s not consumed for %s: %s", payload.claim_id, payload.subject, error.code)
                raise error

            # unreachable while mark_used filters on subject and amount
            if record.amount != amount or record.subject != payload.subject:
                await repo.set_effect_status(
                    record.claim_id,
                    status=EffectStatus.FAILED.value,
                    error="recorded subject/amount differ from payload",
                    reference=None,
                    updated_at=utcnow(),
                )
                await repo.record_attempt(claim_id=record.claim_id, subject=payload.subject, outcome=AmountMismatchError.code)
                await session.commit()
                logger.error("Claim %s consumed with mismatching payload; marked failed", record.claim_id)
                raise AmountMismatchError(claim_id=record.claim_id)

            await repo.record_attempt(claim_id=record.claim_id, subject=record.subject, outcome=CONSUMED_OUTCOME)
            await session.commit()
        return record

    async def _apply_credit(self, record: ClaimRecord) -> ClaimReceipt:
        try:
            async with self.session_factory() as session:
                result = await self.mutator.credit(
                    session,
                    subject=record.subject,
                    amount=record.amount,
                    source="claim",
                    reference=record.claim_id,
                )
                if not result.applied:
                    raise RuntimeError(result.detail.get("reason", "state mutator declined the credit"))
                await SqlClaimRepository(session).set_effect_status(
                    record.claim_id,
                    status=EffectStatus.APPLIED.value,
                    error=None,
                    reference=result.reference,
                    updated_at=utcnow(),
                )
                await session.commit()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error(
                "Credit failed for consumed claim %s (subject=%s amount=%s): %s",
                record.claim_id,
                record.subject,
                record.amount,
                exc,
            )
            await self._mark_effect_failed(record.claim_id, str(exc))
            raise ClaimEffectFailedError(
                f"claim {record.claim_id} consumed but credit failed; awaiting reconciliation",
                claim_id=record.claim_id,
            ) from exc

        logger.info("Claim %s consumed by %s, credited %s", record.claim_id, record.subject, record.amount)
        return ClaimReceipt(
            claim_id=record.claim_id,
            subject=record.subject,
            amount=record.amount,
            effect_reference=result.reference,
            used_at=record.used_at or utcnow(),
        )

    async def _mark_effect_failed(self, claim_id: str, error: str) -> None:
        # the claim stays used; an unwritten status is picked up as stalled
        try:
            async with self.session_factory() as session:
                await SqlClaimRepository(session).set_effect_status(
                    claim_id,
                    status=EffectStatus.FAILED.value,
                    error=error[:2000],
                    reference=None,
                    updated_at=utcnow(),
                )
                await session.commit()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Could not record effect failure for claim %s", claim_id)

    async def _record_attempt(self, claim_id: str | None, subject: str | None, outcome: str) -> None:
        async with self.session_factory() as session:
            await SqlClaimRepository(session).record_attempt(claim_id=claim_id, subject=subject, outcome=outcome)
            await session.commit()

    @staticmethod
    def _classify(record: ClaimRecord | None, payload: ClaimPayload, amount: int, now_ts: int) -> ClaimError:
        if record is None:
            return ClaimNotFoundError(f"claim {payload.claim_id} not found", claim_id=payload.claim_id)
        if record.used:
            return ClaimAlreadyUsedError(f"claim {record.claim_id} already used", claim_id=record.claim_id)
        if record.subject != payload.subject:
            return SubjectMismatchError(claim_id=record.claim_id)
        if record.amount != amount:
            return AmountMismatchError(claim_id=record.claim_id)
        if record.expires_at < now_ts:
            return ClaimExpiredError(f"claim {record.claim_id} expired at {record.expires_at}", claim_id=record.claim_id)
        return ClaimAlreadyUsedError(f"claim {record.claim_id} already used", claim_id=record.claim_id)

    async def get_claim(self, claim_id: str) -> ClaimRecord:
        async with self.session_factory() as session:
            record = await SqlClaimRepository(session).get(claim_id)
        if record is None:
            raise ClaimNotFoundError(f"claim {claim_id} not found", claim_id=claim_id)
        return record

    async def list_claims(
        self,
        subject: str | None = None,
        only_unused: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ClaimRecord]:
        if subject is not None:
            subject = normalize_subject(subject)
        async with self.session_factory() as session:
            return await SqlClaimRepository(session).list_claims(subject, only_unused, limit, offset)

    async def list_needing_reconciliation(self) -> Sequence[ClaimRecord]:
        async with self.session_factory() as session:
            return await SqlClaimRepository(session).list_needing_reconciliation(self._stalled_before())

    async def resolve_claim(
        self,
        claim_id: str,
        *,
        operator: str,
        resolution: str | ClaimResolution,
        note: str | None = None,
    ) -> ResolutionOutcome:
        """Close out a consumed claim whose credit failed or stalled.

        The resolution is written with a conditional update, so only one
        operator can resolve a claim and only one reissue is ever minted.
        """
        try:
            resolution = ClaimResolution(resolution)
        except ValueError as exc:
            raise ValidationError(f"unknown resolution {resolution!r}") from exc
        if resolution is ClaimResolution.REISSUED and self.signer is None:
            raise EngineError("claim reissue requires a signer")

        async with self.session_factory() as session:
            repo = SqlClaimRepository(session)
            record = await repo.resolve(
                claim_id,
                resolution=resolution.value,
                resolved_by=operator,
                note=note,
                resolved_at=utcnow(),
                stalled_before=self._stalled_before(),
            )
            if record is None:
                existing = await repo.get(claim_id)
                if existing is None:
                    raise ClaimNotFoundError(f"claim {claim_id} not found", claim_id=claim_id)
                raise ClaimAlreadyResolvedError(
                    f"claim {claim_id} is not awaiting reconciliation",
                    claim_id=claim_id,
                )
            await session.commit()

        logger.info("Claim %s resolved as %s by %s", claim_id, resolution.value, operator)
        if resolution is not ClaimResolution.REISSUED:
            return ResolutionOutcome(claim=record)

        reissued = await self.signer.issue_for_amount(
            record.subject,
            record.amount,
            ClaimPurpose.RECONCILIATION,
            metadata={"reissue_of": record.claim_id},
        )
        async with self.session_factory() as session:
            await SqlClaimRepository(session).link_reissue(record.claim_id, reissued.payload.claim_id)
            await session.commit()
        record.reissued_claim_id = reissued.payload.claim_id
        return ResolutionOutcome(claim=record, reissued=reissued)

    async def cleanup_expired(self) -> int:
        """Delete unused claims past expiry plus the grace window.

        Submission attempts older than the grace window go too; the
        attempts table is an audit trail for recent abuse, not history.
        """
        expired_before = int(self.clock()) - self.gc_grace_seconds
        attempts_before = utcnow() - timedelta(seconds=self.gc_grace_seconds)
        async with self.session_factory() as session:
            repo = SqlClaimRepository(session)
            removed = await repo.delete_expired_unused(expired_before)
            purged = await repo.delete_attempts_before(attempts_before)
            await session.commit()
        if removed:
            logger.info("Removed %d expired unused claims", removed)
        if purged:
            logger.info("Purged %d claim attempts older than %s", purged, attempts_before.isoformat())
        return removed

    async def stats(self, top: int = 5) -> ClaimStats:
        async with self.session_factory() as session:
            data = await SqlClaimRepository(session).stats(int(self.clock()), top)
        return ClaimStats(**data)

    def _stalled_before(self):
        return utcnow() - timedelta(seconds=self.stalled_after_seconds)

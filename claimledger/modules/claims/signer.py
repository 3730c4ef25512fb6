"""Claim issuance: compute, persist, then sign."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimledger.core.crypto import Ed25519KeyManager, domain_digest
from claimledger.infrastructure.database.repositories.claim_repository import SqlClaimRepository
from claimledger.modules.common.exceptions import ValidationError
from claimledger.modules.common.subjects import normalize_subject

from .calculator import AmountCalculator
from .exceptions import ClaimPersistenceError, ComputationError
from .models import ClaimPayload, ClaimPurpose, ClaimRecord, SignedClaim

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClaimSigner:
    session_factory: async_sessionmaker[AsyncSession]
    key_manager: Ed25519KeyManager
    calculator: AmountCalculator
    domain: Mapping[str, str]
    ttl_seconds: int = 300
    persist_timeout_seconds: float = 5.0
    clock: Callable[[], float] = field(default=time.time)

    async def issue_claim(
        self,
        subject: str,
        purpose: str | ClaimPurpose,
        context: Mapping[str, Any] | None = None,
        *,
        expires_in: int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SignedClaim:
        subject = normalize_subject(subject)
        try:
            purpose = ClaimPurpose(purpose)
        except ValueError as exc:
            raise ValidationError(f"unknown claim purpose: {purpose!r}") from exc
        if purpose is ClaimPurpose.RECONCILIATION:
            raise ValidationError("reconciliation claims are only issued by operators")

        try:
            amount = await self.calculator.compute_amount(subject, purpose, dict(context or {}))
        except ComputationError:
            raise
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise ComputationError(f"amount computation failed: {exc}") from exc
        return await self.issue_for_amount(
            subject,
            amount,
            purpose,
            expires_in=expires_in,
            metadata=metadata,
        )

    async def issue_for_amount(
        self,
        subject: str,
        amount: int,
        purpose: ClaimPurpose,
        *,
        expires_in: int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SignedClaim:
        """Persist a claim for an already-authoritative amount and sign it."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ComputationError(f"amount must be a positive integer, got {amount!r}")

        ttl = self.ttl_seconds if expires_in is None else expires_in
        expires_at = int(self.clock()) + ttl
        record = await self._persist(
            subject=subject,
            amount=amount,
            purpose=purpose.value,
            expires_at=expires_at,
            metadata=dict(metadata or {}),
        )

        payload = ClaimPayload(
            claim_id=record.claim_id,
            subject=record.subject,
            amount=str(record.amount),
            expires_at=record.expires_at,
        )
        signature = self.key_manager.sign_digest(domain_digest(self.domain, payload.as_message()))
        logger.info(
            "Issued claim %s for %s: amount=%s purpose=%s expires_at=%s",
            record.claim_id,
            subject,
            amount,
            purpose.value,
            expires_at,
        )
        return SignedClaim(payload=payload, signature=signature)

    async def _persist(self, **fields: Any) -> ClaimRecord:
        async def write() -> ClaimRecord:
            async with self.session_factory() as session:
                record = await SqlClaimRepository(session).create(signer=self.key_manager.public_key_hex, **fields)
                await session.commit()
                return record

        try:
            return await asyncio.wait_for(write(), timeout=self.persist_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("Claim persistence timed out for %s after %.1fs", fields["subject"], self.persist_timeout_seconds)
            raise ClaimPersistenceError("claim ledger write was not confirmed in time") from exc
        except SQLAlchemyError as exc:
            logger.error("Claim persistence failed for %s: %s", fields["subject"], exc)
            raise ClaimPersistenceError("claim ledger write failed") from exc

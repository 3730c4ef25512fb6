"""Replay guard for external ledger references.

A transaction hash may pay for exactly one effect. The guarantee lives in
the ``external_transactions`` primary key: the pre-check only saves a
ledger round trip, and a racing insert that loses gets an
``IntegrityError`` from the store. Nothing here is cached in process
memory, so restarts and extra instances see the same history.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimledger.infrastructure.database.repositories.reference_repository import SqlReferenceRepository
from claimledger.modules.common.effects import StateMutator
from claimledger.modules.common.exceptions import EffectFailedError
from claimledger.modules.common.subjects import normalize_subject

from .exceptions import (
    DuplicateReferenceError,
    InvalidReferenceError,
    ReferenceEffectFailedError,
    ReferenceMismatchError,
)
from .models import ExternalTxRecord, LedgerVerification, ReferenceAcceptance
from .verifier import LedgerVerifier

logger = logging.getLogger(__name__)

_TX_HASH_RE = re.compile(r"^[0-9a-f]{1,128}$")


def normalize_tx_hash(tx_hash: str) -> str:
    """Return the one stored form of a hash: lower-case hex behind a single ``0x``."""
    if not isinstance(tx_hash, str):
        raise InvalidReferenceError("transaction hash must be a string")
    value = tx_hash.strip().lower()
    digits = value[2:] if value.startswith("0x") else value
    if not _TX_HASH_RE.match(digits):
        raise InvalidReferenceError(f"invalid transaction hash: {tx_hash!r}")
    return "0x" + digits


@dataclass(slots=True)
class ReplayGuard:
    session_factory: async_sessionmaker[AsyncSession]
    mutator: StateMutator
    verifier: LedgerVerifier | None = None

    async def record_and_check(
        self,
        tx_hash: str,
        subject: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ReferenceAcceptance:
        """Record ``tx_hash`` once and apply its effect in the same transaction."""
        tx_hash = normalize_tx_hash(tx_hash)
        subject = normalize_subject(subject)

        verification = await self.confirm(tx_hash, subject)
        merged = dict(metadata or {})
        # ledger facts win over caller-supplied values
        merged.update(verification.metadata)

        try:
            async with self.session_factory() as session:
                record = await self.record_in_session(session, tx_hash, subject, merged)
                effect = await self.mutator.apply_reference(session, record)
                if not effect.applied:
                    raise ReferenceEffectFailedError(f"effect for {tx_hash} was not applied", tx_hash=tx_hash)
                await session.commit()
        except EffectFailedError as exc:
            logger.error("Effect for reference %s (subject=%s) failed, not recorded: %s", tx_hash, subject, exc)
            if isinstance(exc, ReferenceEffectFailedError):
                raise
            raise ReferenceEffectFailedError(str(exc), tx_hash=tx_hash) from exc

        logger.info("Accepted reference %s for %s", tx_hash, subject)
        return ReferenceAcceptance(record=record, effect=effect)

    async def confirm(self, tx_hash: str, subject: str) -> LedgerVerification:
        """Reject known references, then ask the ledger about the rest."""
        tx_hash = normalize_tx_hash(tx_hash)
        async with self.session_factory() as session:
            existing = await SqlReferenceRepository(session).get(tx_hash)
        if existing is not None:
            logger.warning("Reference %s replayed by %s", tx_hash, subject)
            raise DuplicateReferenceError(f"reference {tx_hash} already recorded", tx_hash=tx_hash)

        if self.verifier is None:
            raise InvalidReferenceError("no ledger verifier is configured")
        # outside any transaction; the ledger call may be slow
        verification = await self.verifier.verify_reference(tx_hash)
        if not verification.valid:
            logger.warning("Ledger rejected reference %s: %s", tx_hash, verification.reason)
            raise InvalidReferenceError(verification.reason or f"reference {tx_hash} not confirmed", tx_hash=tx_hash)
        if verification.subject is not None and normalize_subject(verification.subject) != subject:
            logger.warning("Reference %s belongs to %s, presented by %s", tx_hash, verification.subject, subject)
            raise ReferenceMismatchError(f"reference {tx_hash} was not sent by {subject}", tx_hash=tx_hash)
        return verification

    async def record_in_session(
        self,
        session: AsyncSession,
        tx_hash: str,
        subject: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        action_id: str | None = None,
    ) -> ExternalTxRecord:
        """Insert the reference inside the caller's transaction.

        The caller owns the commit; the insert must precede the effect it
        pays for so a rollback drops both.
        """
        try:
            return await SqlReferenceRepository(session).insert(
                tx_hash=normalize_tx_hash(tx_hash),
                subject=subject,
                metadata=dict(metadata or {}),
                action_id=action_id,
            )
        except IntegrityError as exc:
            logger.warning("Reference %s lost an insert race for %s", tx_hash, subject)
            raise DuplicateReferenceError(f"reference {tx_hash} already recorded", tx_hash=tx_hash) from exc

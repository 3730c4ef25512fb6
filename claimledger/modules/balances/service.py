"""Balance service and the default state mutator.

Balances are an append-only list of signed decimal entries; the balance is
their sum. Crediting is therefore an INSERT, never a read-modify-write, and
the ``(source, reference)`` unique constraint refuses a second credit for
the same claim, action or transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from claimledger.db.models import BalanceEntry as BalanceEntryModel
from claimledger.infrastructure.database.repositories.balance_repository import SqlBalanceRepository
from claimledger.modules.actions.models import PendingActionRecord
from claimledger.modules.common.effects import EffectResult
from claimledger.modules.common.exceptions import EffectFailedError
from claimledger.modules.common.subjects import normalize_subject
from claimledger.modules.references.models import ExternalTxRecord

from .models import BalanceEntryRecord, BalanceSnapshot
from .repository import BalanceRepository

logger = logging.getLogger(__name__)


class UnsupportedActionError(EffectFailedError):
    """No handler for this action type."""


@dataclass(slots=True)
class BalanceService:
    repository: BalanceRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "BalanceService":
        return cls(SqlBalanceRepository(session))

    async def get_balance(self, subject: str) -> BalanceSnapshot:
        subject = normalize_subject(subject)
        amounts = await self.repository.amounts(subject)
        entries = await self.repository.list_entries(subject, 1, 0)
        return BalanceSnapshot(
            subject=subject,
            balance=sum(int(amount) for amount in amounts),
            entry_count=len(amounts),
            updated_at=entries[0].created_at if entries else None,
        )

    async def list_entries(self, subject: str, limit: int = 50, offset: int = 0) -> list[BalanceEntryRecord]:
        rows = await self.repository.list_entries(normalize_subject(subject), limit, offset)
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(model: BalanceEntryModel) -> BalanceEntryRecord:
        return BalanceEntryRecord(
            id=model.id,
            subject=model.subject,
            amount=int(model.amount),
            source=model.source,
            reference=model.reference,
            description=model.description,
            created_at=model.created_at,
        )


class SqlBalanceMutator:
    """Default ``StateMutator`` crediting the local balance ledger."""

    async def credit(
        self,
        session: AsyncSession,
        *,
        subject: str,
        amount: int,
        source: str,
        reference: str,
    ) -> EffectResult:
        if amount <= 0:
            raise EffectFailedError(f"refusing to credit non-positive amount {amount}")
        repository = SqlBalanceRepository(session)
        try:
            entry = await repository.add_entry(
                subject=subject,
                amount=amount,
                source=source,
                reference=reference,
                description=f"{source} credit",
            )
        except IntegrityError as exc:
            raise EffectFailedError(f"{source} {reference} was already credited") from exc
        logger.info("Credited %s to %s from %s %s", amount, subject, source, reference)
        return EffectResult(applied=True, reference=entry.id, detail={"amount": str(amount)})

    async def apply_action(self, session: AsyncSession, action: PendingActionRecord) -> EffectResult:
        if action.action_type != "credit":
            raise UnsupportedActionError(f"unsupported action type {action.action_type!r}")
        amount = action.payload.get("amount")
        try:
            amount = int(amount)
        except (TypeError, ValueError) as exc:
            raise EffectFailedError(f"credit action {action.id} has no valid amount") from exc
        return await self.credit(
            session,
            subject=action.subject,
            amount=amount,
            source="action",
            reference=action.id,
        )

    async def apply_reference(self, session: AsyncSession, record: ExternalTxRecord) -> EffectResult:
        amount = record.metadata.get("amount")
        if amount is None:
            return EffectResult(applied=True, reference=None, detail={"credited": False})
        try:
            amount = int(amount)
        except (TypeError, ValueError) as exc:
            raise EffectFailedError(f"transaction {record.tx_hash} carries an invalid amount") from exc
        return await self.credit(
            session,
            subject=record.subject,
            amount=amount,
            source="reference",
            reference=record.tx_hash,
        )

"""SQLAlchemy implementation for balance entries"""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from claimledger.db.models import BalanceEntry


class SqlBalanceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_entry(
        self,
        *,
        subject: str,
        amount: int,
        source: str,
        reference: str | None,
        description: str | None,
    ) -> BalanceEntry:
        entry = BalanceEntry(
            subject=subject,
            amount=str(amount),
            source=source,
            reference=reference,
            description=description,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_entries(self, subject: str, limit: int | None, offset: int) -> list[BalanceEntry]:
        stmt = (
            select(BalanceEntry)
            .where(BalanceEntry.subject == subject)
            .order_by(desc(BalanceEntry.created_at))
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def amounts(self, subject: str) -> list[str]:
        stmt = select(BalanceEntry.amount).where(BalanceEntry.subject == subject)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

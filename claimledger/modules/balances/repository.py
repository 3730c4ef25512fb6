"""Repository protocol for balance entries."""

from __future__ import annotations

from typing import Protocol, Sequence

from claimledger.db.models import BalanceEntry as BalanceEntryModel


class BalanceRepository(Protocol):
    async def add_entry(
        self,
        *,
        subject: str,
        amount: int,
        source: str,
        reference: str | None,
        description: str | None,
    ) -> BalanceEntryModel:
        ...

    async def list_entries(self, subject: str, limit: int | None, offset: int) -> Sequence[BalanceEntryModel]:
        ...

    async def amounts(self, subject: str) -> Sequence[str]:
        ...

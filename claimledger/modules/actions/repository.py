"""Repository protocol for pending actions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from .models import PendingActionRecord


class PendingActionRepository(Protocol):
    async def create(self, *, subject: str, action_type: str, payload: dict[str, Any]) -> PendingActionRecord:
        ...

    async def get(self, action_id: str) -> PendingActionRecord | None:
        ...

    async def attach_reference(self, action_id: str, *, subject: str, tx_hash: str) -> PendingActionRecord | None:
        ...

    async def claim_execution(
        self,
        action_id: str,
        *,
        subject: str,
        token: str,
        started_at: datetime,
    ) -> PendingActionRecord | None:
        ...

    async def finish(
        self,
        action_id: str,
        *,
        token: str,
        status: str,
        error: str | None,
        finished_at: datetime,
    ) -> bool:
        ...

    async def list_for_subject(self, subject: str, limit: int, offset: int) -> Sequence[PendingActionRecord]:
        ...

    async def list_needing_reconciliation(self, stalled_before: datetime) -> Sequence[PendingActionRecord]:
        ...

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
        ...

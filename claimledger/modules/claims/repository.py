"""Repository protocol for the claim ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from .models import ClaimRecord


class ClaimRepository(Protocol):
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
        ...

    async def get(self, claim_id: str) -> ClaimRecord | None:
        ...

    async def mark_used(
        self,
        claim_id: str,
        *,
        subject: str,
        amount: int,
        not_expired_at: int,
        used_at: datetime,
    ) -> ClaimRecord | None:
        ...

    async def set_effect_status(
        self,
        claim_id: str,
        *,
        status: str,
        error: str | None,
        reference: str | None,
        updated_at: datetime,
    ) -> None:
        ...

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
        ...

    async def link_reissue(self, claim_id: str, reissued_claim_id: str) -> None:
        ...

    async def list_claims(self, subject: str | None, only_unused: bool, limit: int, offset: int) -> Sequence[ClaimRecord]:
        ...

    async def list_needing_reconciliation(self, stalled_before: datetime) -> Sequence[ClaimRecord]:
        ...

    async def delete_expired_unused(self, expired_before: int) -> int:
        ...

    async def record_attempt(self, *, claim_id: str | None, subject: str | None, outcome: str) -> None:
        ...

    async def delete_attempts_before(self, created_before: datetime) -> int:
        ...

    async def stats(self, now: int, top: int) -> dict[str, Any]:
        ...

"""Repository protocol for recorded external references."""

from __future__ import annotations

from typing import Any, Protocol

from .models import ExternalTxRecord


class ReferenceRepository(Protocol):
    async def get(self, tx_hash: str) -> ExternalTxRecord | None:
        ...

    async def insert(
        self,
        *,
        tx_hash: str,
        subject: str,
        metadata: dict[str, Any],
        action_id: str | None,
    ) -> ExternalTxRecord:
        ...
"""State mutator contract.

The engine never applies value-bearing changes itself; it hands them to a
``StateMutator`` while holding the caller's session, so the host decides
what "credit" or "execute" means and the engine decides when and how often.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

if TYPE_CHECKING:
    from claimledger.modules.actions.models import PendingActionRecord
    from claimledger.modules.references.models import ExternalTxRecord


@dataclass(slots=True)
class EffectResult:
    applied: bool
    reference: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)


class StateMutator(Protocol):
    async def credit(
        self,
        session: AsyncSession,
        *,
        subject: str,
        amount: int,
        source: str,
        reference: str,
    ) -> EffectResult:
        ...

    async def apply_action(self, session: AsyncSession, action: "PendingActionRecord") -> EffectResult:
        ...

    async def apply_reference(self, session: AsyncSession, record: "ExternalTxRecord") -> EffectResult:
        ...

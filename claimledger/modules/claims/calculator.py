"""Authoritative amount computation.

The client never proposes an amount. Whatever it sends is ignored; the
calculator derives the amount from server-held context.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from .exceptions import ComputationError
from .models import ClaimPurpose


class AmountCalculator(Protocol):
    async def compute_amount(self, subject: str, purpose: ClaimPurpose, context: Mapping[str, Any]) -> int:
        ...


def _non_negative_int(context: Mapping[str, Any], key: str, default: int) -> int:
    value = context.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ComputationError(f"context field {key!r} must be a non-negative integer")
    return value


@dataclass(slots=True)
class RewardScheduleCalculator:
    """Default reward schedule.

    daily_reward   base * (10 + level) / 10
    mining_payout  base * mining_power
    achievement    fixed achievement reward
    """

    base_reward: int
    achievement_reward: int

    async def compute_amount(self, subject: str, purpose: ClaimPurpose, context: Mapping[str, Any]) -> int:
        context = context or {}
        if purpose is ClaimPurpose.DAILY_REWARD:
            level = _non_negative_int(context, "level", 0)
            amount = self.base_reward * (10 + level) // 10
        elif purpose is ClaimPurpose.MINING_PAYOUT:
            mining_power = _non_negative_int(context, "mining_power", 1)
            amount = self.base_reward * mining_power
        elif purpose is ClaimPurpose.ACHIEVEMENT:
            amount = self.achievement_reward
        else:
            raise ComputationError(f"purpose {purpose.value!r} has no reward schedule")

        if amount <= 0:
            raise ComputationError(f"computed amount {amount} for {subject} is not positive")
        return amount

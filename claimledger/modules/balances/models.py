"""Domain models for subject balances."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class BalanceSnapshot:
    subject: str
    balance: int
    entry_count: int
    updated_at: Optional[datetime]


@dataclass(slots=True)
class BalanceEntryRecord:
    id: str
    subject: str
    amount: int
    source: str
    reference: Optional[str]
    description: Optional[str]
    created_at: Optional[datetime]

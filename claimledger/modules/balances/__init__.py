"""Append-only subject balances and the default state mutator."""

from .models import BalanceEntryRecord, BalanceSnapshot
from .service import BalanceService, SqlBalanceMutator, UnsupportedActionError

__all__ = [
    "BalanceEntryRecord",
    "BalanceSnapshot",
    "BalanceService",
    "SqlBalanceMutator",
    "UnsupportedActionError",
]

"""Ledger verifier contract."""

from __future__ import annotations

from typing import Protocol

from .models import LedgerVerification


class LedgerVerifier(Protocol):
    async def verify_reference(self, tx_hash: str) -> LedgerVerification:
        ...

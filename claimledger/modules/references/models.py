"""Domain models for external ledger references."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from claimledger.modules.common.effects import EffectResult


@dataclass(slots=True)
class ExternalTxRecord:
    tx_hash: str
    subject: str
    metadata: dict[str, Any] = field(default_factory=dict)
    action_id: Optional[str] = None
    recorded_at: Optional[datetime] = None


@dataclass(slots=True)
class LedgerVerification:
    """What the external ledger says about a transaction reference."""

    valid: bool
    subject: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None


@dataclass(slots=True)
class ReferenceAcceptance:
    record: ExternalTxRecord
    effect: EffectResult

"""Domain models for signed claims."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ClaimPurpose(str, Enum):
    DAILY_REWARD = "daily_reward"
    MINING_PAYOUT = "mining_payout"
    ACHIEVEMENT = "achievement"
    # only produced by operator reissues
    RECONCILIATION = "reconciliation"


class EffectStatus(str, Enum):
    UNCONSUMED = "unconsumed"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class ClaimResolution(str, Enum):
    REISSUED = "reissued"
    MANUALLY_APPLIED = "manually_applied"
    WRITTEN_OFF = "written_off"


@dataclass(slots=True, frozen=True)
class ClaimPayload:
    """The exact message a client carries back; every field is signed."""

    claim_id: str
    subject: str
    amount: str
    expires_at: int

    def as_message(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "subject": self.subject,
            "amount": self.amount,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ClaimPayload":
        return cls(
            claim_id=data["claim_id"],
            subject=data["subject"],
            amount=data["amount"],
            expires_at=data["expires_at"],
        )


@dataclass(slots=True, frozen=True)
class SignedClaim:
    payload: ClaimPayload
    signature: str


@dataclass(slots=True)
class ClaimRecord:
    claim_id: str
    subject: str
    amount: int
    purpose: str
    signer: str
    expires_at: int
    used: bool
    effect_status: str
    metadata: dict[str, Any] = field(default_factory=dict)
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    effect_error: Optional[str] = None
    effect_reference: Optional[str] = None
    effect_updated_at: Optional[datetime] = None
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
    reissued_claim_id: Optional[str] = None


@dataclass(slots=True)
class ClaimReceipt:
    claim_id: str
    subject: str
    amount: int
    effect_reference: Optional[str]
    used_at: datetime


@dataclass(slots=True)
class ClaimStats:
    total: int
    live_unused: int
    consumed: int
    expired_unused: int
    failed: int
    top_already_used: list[tuple[str, int]] = field(default_factory=list)

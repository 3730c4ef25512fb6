"""Pydantic schemas used across the HTTP API."""
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _decimal_text(value: Any) -> Any:
    # ints become decimal strings; bools are not amounts
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


DecimalStr = Annotated[str, BeforeValidator(_decimal_text)]


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ClaimPayloadSchema(BaseModel):
    claim_id: str = Field(..., min_length=1, max_length=64)
    subject: str = Field(..., min_length=1, max_length=128)
    amount: str = Field(..., min_length=1, max_length=80)
    expires_at: int

    model_config = ConfigDict(from_attributes=True)


class IssueClaimRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=128)
    purpose: str
    context: dict[str, Any] = Field(default_factory=dict)
    expires_in: Optional[int] = Field(default=None, gt=0, le=60 * 60 * 24)
    metadata: dict[str, Any] = Field(default_factory=dict)


class SignedClaimResponse(BaseModel):
    payload: ClaimPayloadSchema
    signature: str

    model_config = ConfigDict(from_attributes=True)


class SubmitClaimRequest(BaseModel):
    payload: ClaimPayloadSchema
    signature: str = Field(..., min_length=1, max_length=512)


class VerifyClaimResponse(BaseModel):
    valid: bool = True
    subject: str


class ClaimReceiptResponse(BaseModel):
    claim_id: str
    subject: str
    amount: DecimalStr
    effect_reference: Optional[str] = None
    used_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClaimRecordResponse(BaseModel):
    claim_id: str
    subject: str
    amount: DecimalStr
    purpose: str
    expires_at: int
    used: bool
    effect_status: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    effect_error: Optional[str] = None
    effect_reference: Optional[str] = None
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
    reissued_claim_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ClaimListResponse(BaseModel):
    claims: list[ClaimRecordResponse] = Field(default_factory=list)


class ActionCreateRequest(BaseModel):
    action_type: str = Field(..., min_length=1, max_length=50)
    subject: Optional[str] = Field(default=None, max_length=128)
    payload: dict[str, Any] = Field(default_factory=dict)


class AttachReferenceRequest(BaseModel):
    tx_hash: str = Field(..., min_length=1, max_length=130)


class ActionResponse(BaseModel):
    id: str
    subject: str
    action_type: str
    status: str
    payload: dict[str, Any] = Field(default_factory=dict)
    tx_hash: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ActionListResponse(BaseModel):
    actions: list[ActionResponse] = Field(default_factory=list)


class ReferenceRequest(BaseModel):
    tx_hash: str = Field(..., min_length=1, max_length=130)
    subject: Optional[str] = Field(default=None, max_length=128)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReferenceResponse(BaseModel):
    tx_hash: str
    subject: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    recorded_at: Optional[datetime] = None
    effect_applied: bool
    effect_reference: Optional[str] = None


class BalanceResponse(BaseModel):
    subject: str
    balance: DecimalStr
    entry_count: int
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceEntryResponse(BaseModel):
    id: str
    amount: DecimalStr
    source: str
    reference: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceDetailResponse(BalanceResponse):
    entries: list[BalanceEntryResponse] = Field(default_factory=list)


class SubjectAttempts(BaseModel):
    subject: str
    attempts: int


class ClaimStatsResponse(BaseModel):
    total: int
    live_unused: int
    consumed: int
    expired_unused: int
    failed: int
    top_already_used: list[SubjectAttempts] = Field(default_factory=list)


class ReconciliationResponse(BaseModel):
    claims: list[ClaimRecordResponse] = Field(default_factory=list)
    actions: list[ActionResponse] = Field(default_factory=list)


class ResolveRequest(BaseModel):
    resolution: str
    note: Optional[str] = Field(default=None, max_length=2000)


class ResolveClaimResponse(BaseModel):
    claim: ClaimRecordResponse
    reissued: Optional[SignedClaimResponse] = None


class CleanupResponse(BaseModel):
    removed: int

"""Claim issuance, verification and submission endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import ROLE_ISSUER, ROLE_OPERATOR, Principal
from claimledger.interfaces.http.deps import get_container, require_role
from claimledger.interfaces.http.errors import http_error
from claimledger.modules.common.exceptions import EngineError
from claimledger.schemas import (
    ClaimListResponse,
    ClaimReceiptResponse,
    ClaimRecordResponse,
    IssueClaimRequest,
    SignedClaimResponse,
    SubmitClaimRequest,
    VerifyClaimResponse,
)

router = APIRouter()


@router.post("", response_model=SignedClaimResponse, status_code=status.HTTP_201_CREATED, summary="Issue a signed claim")
async def issue_claim(
    body: IssueClaimRequest,
    _: Principal = Depends(require_role(ROLE_ISSUER)),
    container: ApplicationContainer = Depends(get_container),
) -> SignedClaimResponse:
    try:
        signed = await container.signer.issue_claim(
            body.subject,
            body.purpose,
            body.context,
            expires_in=body.expires_in,
            metadata=body.metadata,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return SignedClaimResponse.model_validate(signed)


@router.post("/verify", response_model=VerifyClaimResponse, summary="Check a claim signature without consuming it")
async def verify_claim(
    body: SubmitClaimRequest,
    container: ApplicationContainer = Depends(get_container),
) -> VerifyClaimResponse:
    try:
        subject = container.verifier.verify(body.payload.model_dump(), body.signature)
    except EngineError as exc:
        raise http_error(exc) from exc
    return VerifyClaimResponse(subject=subject)


@router.post("/submit", response_model=ClaimReceiptResponse, summary="Consume a signed claim")
async def submit_claim(
    body: SubmitClaimRequest,
    container: ApplicationContainer = Depends(get_container),
) -> ClaimReceiptResponse:
    try:
        receipt = await container.claim_service.submit_claim(body.payload.model_dump(), body.signature)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ClaimReceiptResponse.model_validate(receipt)


@router.get("", response_model=ClaimListResponse, summary="List claims")
async def list_claims(
    subject: Optional[str] = Query(default=None),
    only_unused: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> ClaimListResponse:
    try:
        claims = await container.claim_service.list_claims(subject, only_unused, limit, offset)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ClaimListResponse(claims=[ClaimRecordResponse.model_validate(claim) for claim in claims])

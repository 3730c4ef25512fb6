"""Operator endpoints: ledger statistics and reconciliation."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import ROLE_OPERATOR, Principal
from claimledger.interfaces.http.deps import get_container, require_role
from claimledger.interfaces.http.errors import http_error
from claimledger.modules.common.exceptions import EngineError
from claimledger.schemas import (
    ActionResponse,
    ClaimRecordResponse,
    ClaimStatsResponse,
    CleanupResponse,
    ReconciliationResponse,
    ResolveClaimResponse,
    ResolveRequest,
    SignedClaimResponse,
    SubjectAttempts,
)

router = APIRouter()


@router.get("/stats", response_model=ClaimStatsResponse, summary="Claim ledger statistics")
async def claim_stats(
    top: int = Query(default=5, ge=1, le=100),
    _: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> ClaimStatsResponse:
    stats = await container.claim_service.stats(top)
    return ClaimStatsResponse(
        total=stats.total,
        live_unused=stats.live_unused,
        consumed=stats.consumed,
        expired_unused=stats.expired_unused,
        failed=stats.failed,
        top_already_used=[SubjectAttempts(subject=subject, attempts=count) for subject, count in stats.top_already_used],
    )


@router.get("/reconciliation", response_model=ReconciliationResponse, summary="Records whose effect failed or stalled")
async def reconciliation_queue(
    _: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> ReconciliationResponse:
    claims = await container.claim_service.list_needing_reconciliation()
    actions = await container.action_service.list_needing_reconciliation()
    return ReconciliationResponse(
        claims=[ClaimRecordResponse.model_validate(claim) for claim in claims],
        actions=[ActionResponse.model_validate(action) for action in actions],
    )


@router.post("/claims/{claim_id}/resolve", response_model=ResolveClaimResponse, summary="Resolve a failed claim")
async def resolve_claim(
    claim_id: str,
    body: ResolveRequest,
    principal: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> ResolveClaimResponse:
    try:
        outcome = await container.claim_service.resolve_claim(
            claim_id,
            operator=principal.subject,
            resolution=body.resolution,
            note=body.note,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return ResolveClaimResponse(
        claim=ClaimRecordResponse.model_validate(outcome.claim),
        reissued=SignedClaimResponse.model_validate(outcome.reissued) if outcome.reissued else None,
    )


@router.post("/actions/{action_id}/resolve", response_model=ActionResponse, summary="Resolve a failed action")
async def resolve_action(
    action_id: str,
    body: ResolveRequest,
    principal: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionResponse:
    try:
        action = await container.action_service.resolve_action(
            action_id,
            operator=principal.subject,
            resolution=body.resolution,
            note=body.note,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionResponse.model_validate(action)


@router.post("/claims/cleanup", response_model=CleanupResponse, summary="Delete expired unused claims")
async def cleanup_claims(
    _: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> CleanupResponse:
    removed = await container.claim_service.cleanup_expired()
    return CleanupResponse(removed=removed)

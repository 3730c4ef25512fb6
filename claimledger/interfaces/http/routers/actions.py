"""Pending action endpoints for the owning subject."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import ROLE_ISSUER, ROLE_SUBJECT, Principal
from claimledger.interfaces.http.deps import get_container, require_role
from claimledger.interfaces.http.errors import http_error
from claimledger.modules.common.exceptions import EngineError
from claimledger.modules.common.subjects import normalize_subject
from claimledger.schemas import ActionCreateRequest, ActionListResponse, ActionResponse, AttachReferenceRequest

router = APIRouter()

# action types whose payload carries an amount; only issuers may create them
ISSUER_ACTION_TYPES = {"credit"}


@router.post("", response_model=ActionResponse, status_code=status.HTTP_201_CREATED, summary="Create a pending action")
async def create_action(
    body: ActionCreateRequest,
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionResponse:
    is_issuer = principal.has_role(ROLE_ISSUER)
    if body.action_type in ISSUER_ACTION_TYPES and not is_issuer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": f"{body.action_type} actions are created by issuers"},
        )
    try:
        subject = normalize_subject(body.subject or principal.subject)
        if subject != normalize_subject(principal.subject) and not is_issuer:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "FORBIDDEN", "message": "only issuers may create actions for another subject"},
            )
        action = await container.action_service.create_action(subject, body.action_type, body.payload)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionResponse.model_validate(action)


@router.get("", response_model=ActionListResponse, summary="List own actions")
async def list_actions(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionListResponse:
    try:
        actions = await container.action_service.list_actions(principal.subject, limit, offset)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionListResponse(actions=[ActionResponse.model_validate(action) for action in actions])


@router.get("/{action_id}", response_model=ActionResponse, summary="Get one action")
async def get_action(
    action_id: str,
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionResponse:
    try:
        action = await container.action_service.get_action(action_id, principal.subject)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionResponse.model_validate(action)


@router.post("/{action_id}/reference", response_model=ActionResponse, summary="Attach a ledger reference")
async def attach_reference(
    action_id: str,
    body: AttachReferenceRequest,
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionResponse:
    try:
        action = await container.action_service.attach_reference(action_id, principal.subject, body.tx_hash)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionResponse.model_validate(action)


@router.post("/{action_id}/execute", response_model=ActionResponse, summary="Execute a pending action once")
async def execute_action(
    action_id: str,
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ActionResponse:
    try:
        action = await container.action_service.execute(action_id, principal.subject)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ActionResponse.model_validate(action)

"""Balance lookup endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import ROLE_OPERATOR, ROLE_SUBJECT, Principal
from claimledger.interfaces.http.deps import get_container, require_role
from claimledger.interfaces.http.errors import http_error
from claimledger.modules.balances import BalanceService
from claimledger.modules.common.exceptions import EngineError
from claimledger.schemas import BalanceDetailResponse, BalanceEntryResponse, BalanceResponse

router = APIRouter()


@router.get("/me", response_model=BalanceResponse, summary="Own balance")
async def my_balance(
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> BalanceResponse:
    try:
        async with container.session_factory() as session:
            snapshot = await BalanceService.with_session(session).get_balance(principal.subject)
    except EngineError as exc:
        raise http_error(exc) from exc
    return BalanceResponse.model_validate(snapshot)


@router.get("/{subject}", response_model=BalanceDetailResponse, summary="Balance and entries of any subject")
async def subject_balance(
    subject: str,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_role(ROLE_OPERATOR)),
    container: ApplicationContainer = Depends(get_container),
) -> BalanceDetailResponse:
    try:
        async with container.session_factory() as session:
            service = BalanceService.with_session(session)
            snapshot = await service.get_balance(subject)
            entries = await service.list_entries(subject, limit, offset)
    except EngineError as exc:
        raise http_error(exc) from exc
    return BalanceDetailResponse(
        subject=snapshot.subject,
        balance=snapshot.balance,
        entry_count=snapshot.entry_count,
        updated_at=snapshot.updated_at,
        entries=[BalanceEntryResponse.model_validate(entry) for entry in entries],
    )

"""External transaction reference intake."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import ROLE_ISSUER, ROLE_SUBJECT, Principal
from claimledger.interfaces.http.deps import get_container, require_role
from claimledger.interfaces.http.errors import http_error
from claimledger.modules.common.exceptions import EngineError
from claimledger.modules.common.subjects import normalize_subject
from claimledger.schemas import ReferenceRequest, ReferenceResponse

router = APIRouter()

# fields only a trusted issuer may set; the ledger fills the rest
TRUSTED_METADATA_FIELDS = {"amount"}


@router.post("", response_model=ReferenceResponse, status_code=status.HTTP_201_CREATED, summary="Record a ledger reference once")
async def record_reference(
    body: ReferenceRequest,
    principal: Principal = Depends(require_role(ROLE_SUBJECT)),
    container: ApplicationContainer = Depends(get_container),
) -> ReferenceResponse:
    is_issuer = principal.has_role(ROLE_ISSUER)
    try:
        subject = normalize_subject(body.subject or principal.subject)
        if subject != normalize_subject(principal.subject) and not is_issuer:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "FORBIDDEN", "message": "only issuers may record references for another subject"},
            )
        metadata = dict(body.metadata)
        if not is_issuer:
            metadata = {key: value for key, value in metadata.items() if key not in TRUSTED_METADATA_FIELDS}
        accepted = await container.replay_guard.record_and_check(body.tx_hash, subject, metadata)
    except EngineError as exc:
        raise http_error(exc) from exc
    return ReferenceResponse(
        tx_hash=accepted.record.tx_hash,
        subject=accepted.record.subject,
        metadata=accepted.record.metadata,
        recorded_at=accepted.record.recorded_at,
        effect_applied=accepted.effect.applied,
        effect_reference=accepted.effect.reference,
    )

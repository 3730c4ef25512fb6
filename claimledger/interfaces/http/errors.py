"""Translate engine errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from claimledger.modules.common.exceptions import EffectFailedError, EngineError

logger = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    "INVALID_PAYLOAD": status.HTTP_400_BAD_REQUEST,
    "INVALID_AMOUNT": status.HTTP_400_BAD_REQUEST,
    "INVALID_SUBJECT": status.HTTP_400_BAD_REQUEST,
    "COMPUTATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVALID_REFERENCE": status.HTTP_400_BAD_REQUEST,
    "INVALID_SIGNATURE": status.HTTP_401_UNAUTHORIZED,
    "UNAUTHORIZED_SUBJECT": status.HTTP_403_FORBIDDEN,
    "REFERENCE_MISMATCH": status.HTTP_403_FORBIDDEN,
    "CLAIM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ACTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CLAIM_ALREADY_USED": status.HTTP_409_CONFLICT,
    "ACTION_CONFLICT": status.HTTP_409_CONFLICT,
    "DUPLICATE_REFERENCE": status.HTTP_409_CONFLICT,
    "AMOUNT_MISMATCH": status.HTTP_409_CONFLICT,
    "ALREADY_RESOLVED": status.HTTP_409_CONFLICT,
    "SIGNATURE_EXPIRED": status.HTTP_410_GONE,
    "PERSISTENCE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "EFFECT_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error(exc: EngineError) -> HTTPException:
    status_code = _STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {"code": exc.code, "message": exc.message}
    # the consumed record id is what an operator reconciles against
    if isinstance(exc, EffectFailedError) or exc.details:
        detail["details"] = {key: value for key, value in exc.details.items() if value is not None}
    if status_code >= 500:
        logger.error("Request failed with %s: %s", exc.code, exc.message)
    return HTTPException(status_code=status_code, detail=detail)


__all__ = ["http_error"]

"""Principal resolution from bearer tokens."""

from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from claimledger.core.container import ApplicationContainer
from claimledger.core.security import Principal, TokenError, decode_access_token

from .container import get_container

security = HTTPBearer()


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    container: ApplicationContainer = Depends(get_container),
) -> Principal:
    try:
        return decode_access_token(credentials.credentials, container.settings)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_TOKEN", "message": str(exc)},
        ) from exc


def require_role(role: str) -> Callable[..., Principal]:
    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "FORBIDDEN", "message": f"{role} role required"},
            )
        return principal

    return dependency


__all__ = ["get_current_principal", "require_role"]

from fastapi import APIRouter

from claimledger.interfaces.http.routers import actions, admin, balances, claims, references


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(claims.router, prefix="/claims", tags=["claims"])
    router.include_router(actions.router, prefix="/actions", tags=["actions"])
    router.include_router(references.router, prefix="/references", tags=["references"])
    router.include_router(balances.router, prefix="/balances", tags=["balances"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    return router


__all__ = [
    "create_api_router",
]

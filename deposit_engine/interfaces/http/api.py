from fastapi import APIRouter

from deposit_engine.interfaces.http.routers import deposits, monitor


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(deposits.router, prefix="/deposits", tags=["deposits"])
    router.include_router(monitor.router, prefix="/monitor", tags=["monitor"])
    return router


__all__ = [
    "create_api_router",
]

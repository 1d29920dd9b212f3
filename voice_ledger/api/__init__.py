from fastapi import APIRouter

from voice_ledger.api.routers import accounts, admin, pricing, webhooks


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
    router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    return router


__all__ = [
    "create_api_router",
]

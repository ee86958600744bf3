from fastapi import APIRouter

from .endpoints import backup, children, health, records, settings

api_router = APIRouter()

api_router.include_router(children.router, prefix="/children", tags=["children"])
api_router.include_router(records.router, prefix="/children", tags=["records"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(backup.router, prefix="/backup", tags=["backup"])
api_router.include_router(health.router, prefix="/health", tags=["health"])

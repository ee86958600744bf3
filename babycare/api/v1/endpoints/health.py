"""
Health Check Endpoints
Report whether the local store is ready
"""

from fastapi import APIRouter, Depends

from babycare.api.deps import get_session
from babycare.core.config import settings
from babycare.services.session import CareSession

router = APIRouter()

@router.get("")
async def health_check(session: CareSession = Depends(get_session)):
    """
    Basic health check endpoint
    """
    return {
        "service": "babycare",
        "version": settings.VERSION,
        "store": session.store.state.value,
        "status": "healthy" if session.store.is_ready else "unhealthy",
    }

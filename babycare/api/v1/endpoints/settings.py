from fastapi import APIRouter, Depends

from babycare.api.deps import get_session, to_http_exception
from babycare.schemas.settings import TimezoneResponse, TimezoneUpdate
from babycare.services.session import CareSession

router = APIRouter()

@router.get("/timezone", response_model=TimezoneResponse)
async def get_timezone(session: CareSession = Depends(get_session)):
    try:
        timezone = await session.get_timezone()
        return TimezoneResponse(timezone=timezone, default_timezone=session.normalizer.default_timezone)
    except Exception as e:
        raise to_http_exception(e, "fetching timezone")

@router.put("/timezone", response_model=TimezoneResponse)
async def update_timezone(update: TimezoneUpdate, session: CareSession = Depends(get_session)):
    """
    Change the display timezone. Stored instants are unchanged; only how they are shown and edited.
    """
    try:
        timezone = await session.set_timezone(update.timezone)
        return TimezoneResponse(timezone=timezone, default_timezone=session.normalizer.default_timezone)
    except Exception as e:
        raise to_http_exception(e, "updating timezone")

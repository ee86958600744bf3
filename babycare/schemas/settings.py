from pydantic import BaseModel, Field

class TimezoneUpdate(BaseModel):
    timezone: str = Field(..., min_length=1, description="IANA timezone identifier")

class TimezoneResponse(BaseModel):
    timezone: str
    default_timezone: str

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

class DailySummary(BaseModel):
    child_id: str
    day: str  # Local calendar date in YYYY-MM-DD format
    timezone: str
    feeding_count: int = 0
    diaper_count: int = 0
    sleep_hours: float = 0.0
    record_counts: Dict[str, int] = Field(default_factory=dict)

class TrendDay(BaseModel):
    day: str  # Local calendar date in YYYY-MM-DD format
    feeding_count: int = 0
    sleep_hours: float = 0.0

class WeeklyTrend(BaseModel):
    """One entry per local day, oldest first."""
    child_id: str
    timezone: str
    days: List[TrendDay] = Field(default_factory=list)

class WeightPoint(BaseModel):
    timestamp: str  # Canonical UTC instant
    day: str  # Localized display date
    weight: float

class RangeStatistics(BaseModel):
    child_id: str
    range: str
    timezone: str
    start_day: str
    end_day: str
    feeding_by_type: Dict[str, int] = Field(default_factory=dict)
    sleep_hours_by_day: Dict[str, float] = Field(default_factory=dict)
    diaper_by_category: Dict[str, int] = Field(default_factory=dict)
    weight_trend: List[WeightPoint] = Field(default_factory=list)
    total_feedings: int = 0
    total_sleep_hours: float = 0.0
    average_sleep_hours: Optional[float] = None

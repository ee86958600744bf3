"""
Record models for the seven care-event collections.

Every instant is validated into the canonical UTC string form, so a model
instance can only ever hold storage-safe timestamps. Durations are derived
from start and end on read and are never part of the stored document.
"""

from typing import Dict, Literal, Optional, Tuple, Type
from pydantic import Field, field_validator, model_validator

from babycare.core.timezone import minutes_between, now_canonical
from babycare.schemas.base import DocumentSchema, canonical_instant, optional_canonical_instant

# Fields the form layer sends as local wall-clock input values
LOCAL_TIME_FIELDS: Tuple[str, ...] = ("timestamp", "start_time", "end_time", "completed_at")

class RecordBase(DocumentSchema):
    id: Optional[int] = None
    child_id: str = Field(..., min_length=1)
    notes: str = ""
    created_at: str = Field(default_factory=now_canonical)

    @field_validator('child_id', mode='before')
    @classmethod
    def child_id_to_str(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('created_at', mode='before')
    @classmethod
    def created_at_canonical(cls, v):
        return canonical_instant(v)

class PointRecord(RecordBase):
    timestamp: str

    @field_validator('timestamp', mode='before')
    @classmethod
    def timestamp_canonical(cls, v):
        return canonical_instant(v)

class DurationRecord(RecordBase):
    start_time: str
    end_time: Optional[str] = None

    @field_validator('start_time', mode='before')
    @classmethod
    def start_canonical(cls, v):
        return canonical_instant(v)

    @field_validator('end_time', mode='before')
    @classmethod
    def end_canonical(cls, v):
        return optional_canonical_instant(v)

    @model_validator(mode='after')
    def check_order(self):
        # Canonical instants are fixed-width UTC, so string order is time order
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError('end_time must not be before start_time')
        return self

    @property
    def duration_minutes(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return minutes_between(self.start_time, self.end_time)

class FeedingRecord(DurationRecord):
    feeding_type: Literal["breast", "formula", "solid"]
    side: Optional[Literal["left", "right", "both"]] = None
    amount: Optional[float] = Field(None, ge=0)
    unit: Optional[Literal["ml", "oz", "g"]] = None

class SleepRecord(DurationRecord):
    quality: Optional[Literal["excellent", "good", "fair", "poor"]] = None

class DiaperRecord(PointRecord):
    category: Literal["wet", "dirty", "mixed", "dry"]

class HealthRecord(PointRecord):
    health_type: Literal["vaccination", "medication", "illness", "checkup", "temperature", "other"]
    temperature: Optional[float] = Field(None, ge=30, le=45, description="Degrees Celsius")
    temperature_method: Optional[Literal["oral", "rectal", "armpit", "ear", "forehead"]] = None
    weight: Optional[float] = Field(None, gt=0, description="Kilograms")
    height: Optional[float] = Field(None, gt=0, description="Centimetres")
    details: str = ""

class MilestoneRecord(PointRecord):
    category: Literal["motor", "language", "social", "cognitive", "self_care"]
    title: str = Field(..., min_length=1)
    description: str = ""
    age_months: Optional[float] = Field(None, ge=0, description="Typical age in months")
    completed: bool = False
    completed_at: Optional[str] = None

    @field_validator('completed_at', mode='before')
    @classmethod
    def completed_canonical(cls, v):
        return optional_canonical_instant(v)

class InteractionRecord(PointRecord):
    interaction_type: str = Field(..., min_length=1)
    mood: Optional[str] = None
    participant: Optional[str] = None

ActivityType = Literal[
    "bath", "massage", "changing", "tummy_time", "sensory_play",
    "reading", "music", "walk", "sunbathe", "social", "custom",
]

class ActivityRecord(DurationRecord):
    activity_type: ActivityType
    custom_name: Optional[str] = None

    @model_validator(mode='after')
    def custom_needs_name(self):
        if self.activity_type == "custom" and not self.custom_name:
            raise ValueError('custom activities need a custom_name')
        return self

RECORD_MODELS: Dict[str, Type[RecordBase]] = {
    "feeding": FeedingRecord,
    "sleep": SleepRecord,
    "diaper": DiaperRecord,
    "health": HealthRecord,
    "milestones": MilestoneRecord,
    "interactions": InteractionRecord,
    "activities": ActivityRecord,
}

def get_record_model(collection: str) -> Type[RecordBase]:
    try:
        return RECORD_MODELS[collection]
    except KeyError:
        raise ValueError(f"'{collection}' is not a record collection")

from typing import Any, Dict
from pydantic import BaseModel

from babycare.core.timezone import to_canonical

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    class Config:
        from_attributes = True
        arbitrary_types_allowed = True

class DocumentSchema(BaseSchema):
    """Base for models persisted as store documents."""

    class Config:
        from_attributes = True
        extra = "allow"

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready document; an unassigned auto key is left out so storage assigns it."""
        document = self.model_dump(mode="json")
        if document.get("id") is None:
            document.pop("id", None)
        return document

def canonical_instant(value: Any) -> str:
    """Validator helper: coerce any instant to the canonical UTC string."""
    if value is None:
        raise ValueError("Instant is required")
    return to_canonical(value)

def optional_canonical_instant(value: Any):
    if value is None or value == "":
        return None
    return to_canonical(value)

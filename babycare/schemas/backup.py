from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import Field

from babycare.schemas.base import BaseSchema

EXPORTED_AT_KEY = "exported_at"
SCHEMA_VERSION_KEY = "schema_version"

class Snapshot(BaseSchema):
    """Full export of every collection at one point in time."""

    exported_at: str
    schema_version: str
    collections: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Flatten into the export file shape: collection names at the top level."""
        document: Dict[str, Any] = dict(self.collections)
        document[EXPORTED_AT_KEY] = self.exported_at
        document[SCHEMA_VERSION_KEY] = self.schema_version
        return document

    def record_count(self) -> int:
        return sum(len(records) for records in self.collections.values())

class ImportStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

class ImportReport(BaseSchema):
    status: ImportStatus
    imported: Dict[str, int] = Field(default_factory=dict)
    failed: Dict[str, int] = Field(default_factory=dict)
    skipped_collections: List[str] = Field(default_factory=list)
    schema_version: Optional[str] = None
    error: Optional[str] = None

    @property
    def total_imported(self) -> int:
        return sum(self.imported.values())

    @property
    def total_failed(self) -> int:
        return sum(self.failed.values())

class ClearReport(BaseSchema):
    cleared: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

"""
Collection schema registry.

Every collection is an independent key space of JSON documents. The registry
names each collection's primary-key field, whether that key is assigned by the
caller or by storage, and the fields projected into indexed columns.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Optional, Tuple

import sqlalchemy

from babycare.core.exceptions import SchemaError

@dataclass(frozen=True)
class CollectionSchema:
    name: str
    key_field: str = "id"
    auto_key: bool = True
    indexes: Tuple[str, ...] = ()
    temporal_field: Optional[str] = None

    def has_index(self, index_name: str) -> bool:
        return index_name in self.indexes

def _record_collection(name: str, temporal_field: str, *extra_indexes: str) -> CollectionSchema:
    return CollectionSchema(
        name=name,
        key_field="id",
        auto_key=True,
        indexes=("child_id", temporal_field) + extra_indexes,
        temporal_field=temporal_field,
    )

# Children carry their own stable identifier, so it doubles as the owner key
CHILDREN = CollectionSchema(name="children", key_field="id", auto_key=False, indexes=("name",))

RECORD_COLLECTIONS: Tuple[CollectionSchema, ...] = (
    _record_collection("feeding", "start_time"),
    _record_collection("sleep", "start_time"),
    _record_collection("diaper", "timestamp"),
    _record_collection("health", "timestamp"),
    _record_collection("milestones", "timestamp", "category"),
    _record_collection("interactions", "timestamp"),
    _record_collection("activities", "start_time"),
)

COLLECTIONS = MappingProxyType({
    schema.name: schema for schema in (CHILDREN,) + RECORD_COLLECTIONS
})

RECORD_COLLECTION_NAMES: Tuple[str, ...] = tuple(schema.name for schema in RECORD_COLLECTIONS)

# Side table for user preferences; not part of any snapshot
PREFERENCES_TABLE = "preferences"

def get_schema(collection: str) -> CollectionSchema:
    """Look up a collection, raising SchemaError for unknown names."""
    try:
        return COLLECTIONS[collection]
    except (KeyError, TypeError):
        raise SchemaError(
            f"Unknown collection '{collection}'",
            details={"collection": collection, "known": list(COLLECTIONS)},
        )

def is_known_collection(collection: str) -> bool:
    return isinstance(collection, str) and collection in COLLECTIONS

def build_tables(metadata: sqlalchemy.MetaData) -> Dict[str, sqlalchemy.Table]:
    """Create one table per registered collection plus the preferences table on ``metadata``."""
    tables = {}
    for schema in COLLECTIONS.values():
        if schema.auto_key:
            key_column = sqlalchemy.Column(schema.key_field, sqlalchemy.Integer, primary_key=True, autoincrement=True)
        else:
            key_column = sqlalchemy.Column(schema.key_field, sqlalchemy.String(64), primary_key=True)

        columns = [key_column]
        for index_name in schema.indexes:
            columns.append(sqlalchemy.Column(index_name, sqlalchemy.String, nullable=True, index=True))
        columns.append(sqlalchemy.Column("document", sqlalchemy.Text, nullable=False))

        tables[schema.name] = sqlalchemy.Table(
            schema.name,
            metadata,
            *columns,
            # Auto-assigned keys are never reused, even after deletes
            sqlite_autoincrement=schema.auto_key,
        )

    tables[PREFERENCES_TABLE] = sqlalchemy.Table(
        PREFERENCES_TABLE,
        metadata,
        sqlalchemy.Column("key", sqlalchemy.String(64), primary_key=True),
        sqlalchemy.Column("value", sqlalchemy.Text, nullable=True),
    )
    return tables

"""
Async key-collection store.

Each registered collection is a table of JSON documents whose primary key and
indexed fields are projected into columns. Every public operation runs against
exactly one collection; every write is a single autocommitted statement, so
it is atomic and durable before the coroutine returns. There is no cross-collection
atomicity, no retrying and no queuing: an engine that is not READY rejects
work immediately with ``NotInitialized``.
"""

import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, List, Optional

import sqlalchemy
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.schema import CreateIndex, CreateTable

from babycare.core.database import create_database
from babycare.core.exceptions import (
    BabyCareError,
    DuplicateKeyError,
    NotInitialized,
    SchemaError,
    TransactionFailed,
)
from babycare.db.models import PREFERENCES_TABLE, CollectionSchema, build_tables, get_schema

logger = logging.getLogger(__name__)

class _NotFound:
    """Sentinel returned by ``get`` when a key is absent."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"

NOT_FOUND = _NotFound()

class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"

def _index_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

class StoreEngine:
    """Generic async CRUD and index queries over the registered collections."""

    def __init__(self, database_url: str = None, database=None):
        self.database = database if database is not None else create_database(database_url)
        self.metadata = sqlalchemy.MetaData()
        self.tables = build_tables(self.metadata)
        self.state = StoreState.UNINITIALIZED

    @property
    def is_ready(self) -> bool:
        return self.state is StoreState.READY

    async def initialize(self) -> None:
        """Connect and create any missing tables and indexes."""
        if self.state is StoreState.READY:
            return
        if self.state is StoreState.INITIALIZING:
            raise NotInitialized("Store engine is already initializing")

        self.state = StoreState.INITIALIZING
        logger.info("Initializing store engine...")
        try:
            if not self.database.is_connected:
                await self.database.connect()
            for table in self.metadata.sorted_tables:
                await self.database.execute(CreateTable(table, if_not_exists=True))
                for index in table.indexes:
                    await self.database.execute(CreateIndex(index, if_not_exists=True))
        except Exception as e:
            self.state = StoreState.UNINITIALIZED
            logger.error(f"Store initialization failed: {type(e).__name__}: {e}")
            raise TransactionFailed("Store initialization failed", cause=e) from e

        self.state = StoreState.READY
        logger.info(f"Store engine ready with {len(self.tables) - 1} collections")

    async def close(self) -> None:
        if self.database.is_connected:
            await self.database.disconnect()
        self.state = StoreState.UNINITIALIZED
        logger.info("Store engine closed")

    # Internal helpers

    def _require_ready(self) -> None:
        if self.state is not StoreState.READY:
            raise NotInitialized(
                f"Store engine is {self.state.value}, not ready",
                details={"state": self.state.value},
            )

    def _resolve(self, collection: str):
        self._require_ready()
        schema = get_schema(collection)
        return schema, self.tables[schema.name]

    @staticmethod
    def _coerce_key(schema: CollectionSchema, key: Any):
        """Normalize a key to its column type, raising ValueError if it cannot be."""
        if key is None or isinstance(key, bool):
            raise ValueError(f"Invalid key {key!r} for collection '{schema.name}'")
        if schema.auto_key:
            return int(key)
        key = str(key)
        if not key:
            raise ValueError(f"Empty key for collection '{schema.name}'")
        return key

    def _split(self, schema: CollectionSchema, record: Dict[str, Any]):
        """Separate the primary key from the stored document."""
        if not isinstance(record, dict):
            raise TransactionFailed(
                f"Record for '{schema.name}' must be a mapping, got {type(record).__name__}",
                collection=schema.name,
                cause=TypeError(type(record).__name__),
            )
        document = dict(record)
        key = document.pop(schema.key_field, None)
        return key, document

    def _row_values(self, schema: CollectionSchema, document: Dict[str, Any]) -> Dict[str, Any]:
        values = {index_name: _index_value(document.get(index_name)) for index_name in schema.indexes}
        values["document"] = json.dumps(document, ensure_ascii=False, sort_keys=True)
        return values

    @staticmethod
    def _row_to_record(schema: CollectionSchema, row) -> Dict[str, Any]:
        record = json.loads(row["document"])
        record[schema.key_field] = row[schema.key_field]
        return record

    @asynccontextmanager
    async def _guard(self, collection: str, operation: str):
        """Map driver failures onto TransactionFailed, keeping typed errors intact."""
        try:
            yield
        except BabyCareError:
            raise
        except Exception as e:
            logger.error(f"{operation} on '{collection}' failed: {type(e).__name__}: {e}")
            raise TransactionFailed(f"{operation} on '{collection}' failed", collection=collection, cause=e) from e

    async def _insert(self, table: sqlalchemy.Table, schema: CollectionSchema, values: Dict[str, Any], key=None):
        if key is not None:
            values = dict(values, **{schema.key_field: key})
        try:
            new_id = await self.database.execute(table.insert().values(**values))
        except sqlite3.IntegrityError:
            raise DuplicateKeyError(schema.name, key)
        return key if key is not None else new_id

    def _write_key(self, schema: CollectionSchema, key):
        """Validate the key of a record about to be written; bad keys are caller errors, not storage failures."""
        if key is None:
            if not schema.auto_key:
                raise ValueError(f"Collection '{schema.name}' requires a caller-assigned '{schema.key_field}'")
            return None
        try:
            return self._coerce_key(schema, key)
        except TypeError:
            raise ValueError(f"Invalid key {key!r} for collection '{schema.name}'")

    # Public operations

    async def add(self, collection: str, record: Dict[str, Any]):
        """
        Insert a new record and return its key.

        Auto-key collections assign the key unless one is supplied; a supplied
        or caller-assigned key that already exists raises DuplicateKeyError.
        A missing or malformed key raises ValueError before anything is written.
        """
        schema, table = self._resolve(collection)
        key, document = self._split(schema, record)
        key = self._write_key(schema, key)

        async with self._guard(collection, "add"):
            values = self._row_values(schema, document)
            key = await self._insert(table, schema, values, key)

        logger.debug(f"Added {collection}/{key}")
        return key

    async def put(self, collection: str, record: Dict[str, Any]):
        """Insert or replace a record by primary key and return the key."""
        schema, table = self._resolve(collection)
        key, document = self._split(schema, record)
        key = self._write_key(schema, key)

        async with self._guard(collection, "put"):
            values = self._row_values(schema, document)
            if key is None:
                key = await self._insert(table, schema, values)
            else:
                # Single upsert statement: one atomic write, no read-then-write window
                query = sqlite_insert(table).values(**values, **{schema.key_field: key})
                query = query.on_conflict_do_update(index_elements=[table.c[schema.key_field]], set_=values)
                await self.database.execute(query)

        logger.debug(f"Put {collection}/{key}")
        return key

    async def get(self, collection: str, key):
        """Return the record stored under ``key`` or NOT_FOUND."""
        schema, table = self._resolve(collection)
        try:
            key = self._coerce_key(schema, key)
        except (TypeError, ValueError):
            return NOT_FOUND

        async with self._guard(collection, "get"):
            row = await self.database.fetch_one(table.select().where(table.c[schema.key_field] == key))
        if row is None:
            return NOT_FOUND
        return self._row_to_record(schema, row)

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        schema, table = self._resolve(collection)
        async with self._guard(collection, "get_all"):
            rows = await self.database.fetch_all(table.select())
        return [self._row_to_record(schema, row) for row in rows]

    async def get_by_index(self, collection: str, index_name: str, value) -> List[Dict[str, Any]]:
        """Return every record whose indexed field equals ``value``."""
        schema, table = self._resolve(collection)
        if not schema.has_index(index_name):
            raise SchemaError(
                f"Collection '{collection}' has no index '{index_name}'",
                details={"collection": collection, "index": index_name, "indexes": list(schema.indexes)},
            )

        column = table.c[index_name]
        indexed = _index_value(value)
        condition = column.is_(None) if indexed is None else column == indexed
        async with self._guard(collection, "get_by_index"):
            rows = await self.database.fetch_all(table.select().where(condition))
        return [self._row_to_record(schema, row) for row in rows]

    async def get_by_index_range(self, collection: str, index_name: str, lower=None, upper=None) -> List[Dict[str, Any]]:
        """
        Return records with ``lower <= field < upper``, ordered by the field.

        Either bound may be omitted. Canonical instants are fixed-width, so
        string order is chronological order.
        """
        schema, table = self._resolve(collection)
        if not schema.has_index(index_name):
            raise SchemaError(
                f"Collection '{collection}' has no index '{index_name}'",
                details={"collection": collection, "index": index_name, "indexes": list(schema.indexes)},
            )

        column = table.c[index_name]
        conditions = [column.isnot(None)]
        if lower is not None:
            conditions.append(column >= _index_value(lower))
        if upper is not None:
            conditions.append(column < _index_value(upper))

        query = table.select().where(sqlalchemy.and_(*conditions)).order_by(column)
        async with self._guard(collection, "get_by_index_range"):
            rows = await self.database.fetch_all(query)
        return [self._row_to_record(schema, row) for row in rows]

    async def count(self, collection: str) -> int:
        schema, table = self._resolve(collection)
        async with self._guard(collection, "count"):
            total = await self.database.fetch_val(sqlalchemy.select(sqlalchemy.func.count()).select_from(table))
        return int(total or 0)

    async def delete(self, collection: str, key) -> None:
        """Delete a record; deleting an absent key is not an error."""
        schema, table = self._resolve(collection)
        try:
            key = self._coerce_key(schema, key)
        except (TypeError, ValueError):
            return

        async with self._guard(collection, "delete"):
            await self.database.execute(table.delete().where(table.c[schema.key_field] == key))
        logger.debug(f"Deleted {collection}/{key}")

    async def clear(self, collection: str) -> None:
        schema, table = self._resolve(collection)
        async with self._guard(collection, "clear"):
            await self.database.execute(table.delete())
        logger.info(f"Cleared collection '{collection}'")

    # Preferences live outside the registry and are never exported

    async def get_preference(self, key: str, default=None):
        self._require_ready()
        table = self.tables[PREFERENCES_TABLE]
        async with self._guard(PREFERENCES_TABLE, "get_preference"):
            row = await self.database.fetch_one(table.select().where(table.c.key == key))
        if row is None or row["value"] is None:
            return default
        return json.loads(row["value"])

    async def set_preference(self, key: str, value) -> None:
        self._require_ready()
        table = self.tables[PREFERENCES_TABLE]
        encoded = json.dumps(value)
        query = sqlite_insert(table).values(key=key, value=encoded)
        query = query.on_conflict_do_update(index_elements=[table.c.key], set_={"value": encoded})
        async with self._guard(PREFERENCES_TABLE, "set_preference"):
            await self.database.execute(query)
        logger.debug(f"Preference '{key}' updated")

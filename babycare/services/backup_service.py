"""
Dataset export and import.

Export reads every registered collection concurrently and fails as a whole if
any read fails. Import is best-effort: each record is validated and upserted on
its own, failures are counted, and records absent from the snapshot are left
untouched.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Tuple, Union

from pydantic import ValidationError

from babycare.core.config import settings
from babycare.core.exceptions import BabyCareError, MalformedSnapshot, NotInitialized
from babycare.core.logging import log_async_function_call
from babycare.core.timezone import now_canonical
from babycare.db.models import COLLECTIONS
from babycare.db.store import StoreEngine
from babycare.schemas.backup import (
    EXPORTED_AT_KEY,
    SCHEMA_VERSION_KEY,
    ClearReport,
    ImportReport,
    ImportStatus,
    Snapshot,
)
from babycare.schemas.child import Child
from babycare.schemas.records import RECORD_MODELS

logger = logging.getLogger(__name__)

SnapshotInput = Union[Snapshot, Mapping[str, Any], str, bytes]

def get_document_model(collection: str):
    if collection == "children":
        return Child
    return RECORD_MODELS[collection]

def dumps_snapshot(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_document(), ensure_ascii=False, indent=2)

def loads_snapshot(payload: Union[str, bytes, Mapping[str, Any]]) -> Snapshot:
    """Decode an export document, raising MalformedSnapshot if it is not one."""
    document = _decode(payload)
    collections = {}
    for name in COLLECTIONS:
        if name not in document:
            continue
        if not isinstance(document[name], list):
            raise MalformedSnapshot(f"Collection '{name}' must be a list of records")
        collections[name] = document[name]
    return Snapshot(
        exported_at=str(document.get(EXPORTED_AT_KEY) or ""),
        schema_version=str(document.get(SCHEMA_VERSION_KEY) or ""),
        collections=collections,
    )

def snapshot_filename(snapshot: Snapshot) -> str:
    return f"baby-care-backup-{snapshot.exported_at[:10]}.json"

def _decode(payload) -> Dict[str, Any]:
    if isinstance(payload, Snapshot):
        return payload.to_document()
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedSnapshot(f"Snapshot is not valid UTF-8: {e}")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedSnapshot(f"Snapshot is not valid JSON: {e}")
    if not isinstance(payload, Mapping):
        raise MalformedSnapshot(f"Snapshot must be a JSON object, got {type(payload).__name__}")
    return dict(payload)

class BackupCoordinator:
    """Whole-dataset snapshot export and best-effort restore over a store engine."""

    def __init__(self, store: StoreEngine, schema_version: str = None):
        self.store = store
        self.schema_version = schema_version or settings.SNAPSHOT_SCHEMA_VERSION

    @log_async_function_call
    async def export_snapshot(self) -> Snapshot:
        names = list(COLLECTIONS)
        # Any failed read aborts the whole export
        results = await asyncio.gather(*(self.store.get_all(name) for name in names))
        snapshot = Snapshot(
            exported_at=now_canonical(),
            schema_version=self.schema_version,
            collections=dict(zip(names, results)),
        )
        logger.info(f"Exported {snapshot.record_count()} records from {len(names)} collections")
        return snapshot

    @log_async_function_call
    async def import_snapshot(self, snapshot: SnapshotInput) -> ImportReport:
        if not self.store.is_ready:
            raise NotInitialized("Cannot import into a store that is not ready")

        try:
            document = _decode(snapshot)
        except MalformedSnapshot as e:
            logger.error(f"Import aborted: {e.message}")
            return ImportReport(status=ImportStatus.FAILED, error=e.message)

        version = document.get(SCHEMA_VERSION_KEY)
        if version is not None and str(version) != self.schema_version:
            logger.warning(f"Importing snapshot with schema version {version}, expected {self.schema_version}")

        skipped = [
            key for key in document
            if key not in COLLECTIONS and key not in (EXPORTED_AT_KEY, SCHEMA_VERSION_KEY)
        ]
        if skipped:
            logger.info(f"Ignoring unknown snapshot keys: {', '.join(skipped)}")

        names = [name for name in COLLECTIONS if name in document]
        results = await asyncio.gather(*(self._import_collection(name, document[name]) for name in names))

        imported = {name: ok for name, (ok, _) in zip(names, results)}
        failed = {name: bad for name, (_, bad) in zip(names, results) if bad}
        total_ok = sum(imported.values())
        total_failed = sum(failed.values())

        if total_failed == 0:
            status = ImportStatus.SUCCESS
        elif total_ok == 0:
            status = ImportStatus.FAILED
        else:
            status = ImportStatus.PARTIAL

        logger.info(f"Import finished ({status.value}): {total_ok} records imported, {total_failed} failed")
        return ImportReport(
            status=status,
            imported=imported,
            failed=failed,
            skipped_collections=skipped,
            schema_version=str(version) if version is not None else None,
            error=f"{total_failed} records failed to import" if total_failed else None,
        )

    async def _import_collection(self, collection: str, records: Any) -> Tuple[int, int]:
        if not isinstance(records, list):
            logger.error(f"Collection '{collection}' in snapshot is not a list; skipping it")
            return 0, 1

        model = get_document_model(collection)
        imported = 0
        failed = 0
        for position, record in enumerate(records):
            try:
                document = model.model_validate(record).to_document()
                await self.store.put(collection, document)
                imported += 1
            except ValidationError as e:
                failed += 1
                logger.warning(f"Invalid {collection} record at position {position}: {e.error_count()} errors")
            except ValueError as e:
                failed += 1
                logger.warning(f"Invalid {collection} record at position {position}: {e}")
            except BabyCareError as e:
                failed += 1
                logger.error(f"Failed to import {collection} record at position {position}: {e.message}")
        return imported, failed

    async def clear_all(self) -> ClearReport:
        """Delete every record in every collection; each collection is cleared independently."""
        names = list(COLLECTIONS)
        results = await asyncio.gather(*(self.store.clear(name) for name in names), return_exceptions=True)
        report = ClearReport()
        for name, result in zip(names, results):
            if isinstance(result, BabyCareError):
                logger.error(f"Failed to clear '{name}': {result.message}")
                report.failed.append(name)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.cleared.append(name)
        return report

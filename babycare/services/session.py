"""
Application session: the boundary between the form/rendering layers and storage.

A ``CareSession`` owns one store engine, one timezone normalizer and one backup
coordinator, and remembers which child is currently selected. Values crossing
into the session are local wall-clock strings; values leaving it for display
are localized strings. Only canonical instants reach the store.
"""

import asyncio
import calendar
import logging
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from babycare.core.exceptions import BabyCareError, ChildNotFound, SchemaError
from babycare.core.timezone import TimezoneNormalizer, now_canonical
from babycare.db.models import RECORD_COLLECTION_NAMES, get_schema
from babycare.db.store import NOT_FOUND, StoreEngine
from babycare.schemas.backup import ClearReport, ImportReport, Snapshot
from babycare.schemas.child import Child, ChildCreate
from babycare.schemas.records import LOCAL_TIME_FIELDS, DurationRecord, RecordBase, get_record_model
from babycare.schemas.summary import DailySummary, RangeStatistics, TrendDay, WeeklyTrend, WeightPoint
from babycare.services.backup_service import BackupCoordinator, dumps_snapshot
from babycare.services.milestones import iter_default_milestones

logger = logging.getLogger(__name__)

# Set by the form layer or by storage, never by an update payload
IMMUTABLE_FIELDS = ("id", "child_id", "created_at")

# Statistics ranges as (days, months) to step back from today
STATISTICS_RANGES = {
    "week": (7, 0),
    "month": (0, 1),
    "3months": (0, 3),
    "year": (0, 12),
}

FEEDING_TYPES = ("breast", "formula", "solid")
DIAPER_CATEGORIES = ("wet", "dirty", "mixed", "dry")

def _months_before(day: date, months: int) -> date:
    """Same day-of-month ``months`` earlier, clamped to the length of the target month."""
    index = day.year * 12 + day.month - 1 - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))

class CareSession:
    def __init__(
        self,
        store: StoreEngine = None,
        normalizer: TimezoneNormalizer = None,
        backup: BackupCoordinator = None,
        database_url: str = None,
    ):
        self.store = store or StoreEngine(database_url)
        self.normalizer = normalizer or TimezoneNormalizer(preferences=self.store)
        self.backup = backup or BackupCoordinator(self.store)
        self.current_child_id: Optional[str] = None
        self._startup = None
        self._loaded = False

    async def ready(self) -> "CareSession":
        """Initialize the store if needed and load preferences, once per session."""
        if self._loaded and self.store.is_ready:
            return self
        if self._startup is None or (self._startup.done() and not self.store.is_ready):
            self._startup = asyncio.ensure_future(self._start())
        try:
            await self._startup
        except Exception:
            self._startup = None
            raise
        return self

    async def _start(self):
        # An injected store may already be initialized; preferences still need loading
        if not self.store.is_ready:
            await self.store.initialize()
        timezone = await self.normalizer.load()
        self._loaded = True
        logger.info(f"Session ready, display timezone {timezone}")

    async def close(self):
        await self.store.close()
        self._startup = None
        self._loaded = False

    # Children

    async def add_child(self, data: Union[ChildCreate, Dict[str, Any]], seed_milestones: bool = True) -> Child:
        await self.ready()
        fields = data.model_dump(exclude_none=True) if isinstance(data, ChildCreate) else dict(data)
        fields.pop("created_at", None)
        child = Child.model_validate(fields)

        await self.store.add("children", child.to_document())
        logger.info(f"Added child {child.id}")

        if seed_milestones:
            await self.seed_default_milestones(child.id)
        if self.current_child_id is None:
            self.current_child_id = child.id
        return child

    async def get_child(self, child_id: str) -> Optional[Child]:
        await self.ready()
        record = await self.store.get("children", child_id)
        if record is NOT_FOUND:
            return None
        return Child.model_validate(record)

    async def require_child(self, child_id: Optional[str]) -> Child:
        if not child_id:
            raise ChildNotFound(str(child_id))
        child = await self.get_child(child_id)
        if child is None:
            raise ChildNotFound(child_id)
        return child

    async def list_children(self) -> List[Child]:
        await self.ready()
        records = await self.store.get_all("children")
        children = [Child.model_validate(record) for record in records]
        return sorted(children, key=lambda child: (child.created_at, child.id))

    async def update_child(self, child_id: str, data: Union[ChildCreate, Dict[str, Any]]) -> Child:
        existing = await self.require_child(child_id)
        fields = data.model_dump(exclude_unset=True) if isinstance(data, ChildCreate) else dict(data)
        for field in ("id", "created_at"):
            fields.pop(field, None)

        merged = existing.model_dump(mode="json")
        merged.update(fields)
        child = Child.model_validate(merged)
        await self.store.put("children", child.to_document())
        logger.info(f"Updated child {child_id}")
        return child

    async def delete_child(self, child_id: str) -> Dict[str, int]:
        """
        Delete a child and, best-effort, every record it owns.

        Each record is deleted independently; failures are counted and the
        remaining deletes still run. The child itself is deleted last.
        """
        await self.require_child(child_id)

        owned = await asyncio.gather(
            *(self.store.get_by_index(name, "child_id", child_id) for name in RECORD_COLLECTION_NAMES)
        )
        deletes = [
            self.store.delete(name, record["id"])
            for name, records in zip(RECORD_COLLECTION_NAMES, owned)
            for record in records
        ]
        results = await asyncio.gather(*deletes, return_exceptions=True)

        failed = 0
        for result in results:
            if isinstance(result, BabyCareError):
                failed += 1
                logger.error(f"Failed to delete record of child {child_id}: {result.message}")
            elif isinstance(result, BaseException):
                raise result

        await self.store.delete("children", child_id)
        if self.current_child_id == child_id:
            self.current_child_id = None

        logger.info(f"Deleted child {child_id} with {len(results) - failed} records ({failed} failed)")
        return {"deleted_records": len(results) - failed, "failed_records": failed}

    async def select_child(self, child_id: str) -> Child:
        child = await self.require_child(child_id)
        self.current_child_id = child.id
        return child

    # Records

    def _delocalize(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Convert local input values to canonical instants."""
        converted = dict(fields)
        for field in LOCAL_TIME_FIELDS:
            if field not in converted:
                continue
            value = converted[field]
            if value is None or (isinstance(value, str) and not value.strip()):
                converted[field] = None
            elif isinstance(value, str):
                converted[field] = self.normalizer.from_local_input_value(value)
            else:
                # Epoch numbers are only accepted from imported snapshots
                raise ValueError(f"{field} must be a local time string (YYYY-MM-DDTHH:MM), got {type(value).__name__}")
        return converted

    @staticmethod
    def _record_model(collection: str):
        get_schema(collection)
        if collection not in RECORD_COLLECTION_NAMES:
            raise SchemaError(f"'{collection}' is not a record collection", details={"collection": collection})
        return get_record_model(collection)

    async def add_record(self, collection: str, fields: Dict[str, Any], child_id: str = None) -> RecordBase:
        """
        Create a record from form values for ``child_id`` (default: selected child).

        Temporal fields are local input values in the active timezone.
        """
        model = self._record_model(collection)
        child = await self.require_child(child_id or self.current_child_id)

        document = self._delocalize(fields)
        for field in IMMUTABLE_FIELDS:
            document.pop(field, None)
        document["child_id"] = child.id
        if model.model_fields.get("timestamp") is not None and document.get("timestamp") is None:
            document["timestamp"] = now_canonical()

        record = model.model_validate(document)
        record.id = await self.store.add(collection, record.to_document())
        logger.info(f"Added {collection} record {record.id} for child {child.id}")
        return record

    async def get_record(self, collection: str, record_id: int) -> Optional[RecordBase]:
        model = self._record_model(collection)
        await self.ready()
        stored = await self.store.get(collection, record_id)
        if stored is NOT_FOUND:
            return None
        return model.model_validate(stored)

    async def update_record(self, collection: str, record_id: int, fields: Dict[str, Any]) -> Optional[RecordBase]:
        model = self._record_model(collection)
        existing = await self.get_record(collection, record_id)
        if existing is None:
            return None

        changes = self._delocalize(fields)
        for field in IMMUTABLE_FIELDS:
            changes.pop(field, None)

        merged = existing.model_dump(mode="json")
        merged.update(changes)
        record = model.model_validate(merged)
        await self.store.put(collection, record.to_document())
        logger.info(f"Updated {collection} record {record_id}")
        return record

    async def delete_record(self, collection: str, record_id: int) -> None:
        self._record_model(collection)
        await self.ready()
        await self.store.delete(collection, record_id)
        logger.info(f"Deleted {collection} record {record_id}")

    async def list_records(self, collection: str, child_id: str = None, day: Union[date, str] = None) -> List[Dict[str, Any]]:
        """Localized records of one child, newest first; optionally limited to one local day."""
        self._record_model(collection)
        child = await self.require_child(child_id or self.current_child_id)
        temporal_field = get_schema(collection).temporal_field

        if day is not None:
            start, end = self.normalizer.local_day_bounds(day)
            records = await self.store.get_by_index_range(collection, temporal_field, start, end)
            records = [record for record in records if str(record.get("child_id")) == child.id]
        else:
            records = await self.store.get_by_index(collection, "child_id", child.id)

        records.sort(key=lambda record: (record.get(temporal_field) or "", record["id"]), reverse=True)
        return [self.localize_record(collection, record) for record in records]

    def localize_record(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Display-ready copy of a stored record: localized strings, derived duration."""
        model = get_record_model(collection)
        localized = dict(record)
        localized["collection"] = collection
        input_values = {}
        for field in LOCAL_TIME_FIELDS + ("created_at",):
            value = record.get(field)
            if value is None:
                continue
            localized[field] = self.normalizer.to_local_display(value)
            if field != "created_at" and localized[field]:
                input_values[field] = self.normalizer.to_local_input_value(value)
        localized["input_values"] = input_values

        if issubclass(model, DurationRecord):
            try:
                localized["duration_minutes"] = model.model_validate(record).duration_minutes
            except ValueError:
                localized["duration_minutes"] = None
        return localized

    async def seed_default_milestones(self, child_id: str) -> int:
        await self.ready()
        timestamp = now_canonical()
        seeded = 0
        for milestone in iter_default_milestones():
            record = get_record_model("milestones").model_validate(
                dict(milestone, child_id=child_id, timestamp=timestamp)
            )
            await self.store.add("milestones", record.to_document())
            seeded += 1
        logger.info(f"Seeded {seeded} default milestones for child {child_id}")
        return seeded

    # Summaries and statistics

    def _as_day(self, day: Union[date, str, None]) -> date:
        if day is None:
            return self.normalizer.local_today()
        if isinstance(day, str):
            return date.fromisoformat(day)
        return day

    def _local_day(self, instant: str) -> str:
        return self.normalizer.to_local_display(instant, include_time=False)

    async def _owned_in_window(self, collection: str, child_id: str, start: str, end: str) -> List[Dict[str, Any]]:
        """Records of one child whose temporal field falls in [start, end), oldest first."""
        temporal_field = get_schema(collection).temporal_field
        records = await self.store.get_by_index_range(collection, temporal_field, start, end)
        return [record for record in records if str(record.get("child_id")) == child_id]

    def _window(self, first_day: date, last_day: date):
        start, _ = self.normalizer.local_day_bounds(first_day)
        _, end = self.normalizer.local_day_bounds(last_day)
        return start, end

    @staticmethod
    def _sleep_minutes(record: Dict[str, Any]) -> float:
        return get_record_model("sleep").model_validate(record).duration_minutes or 0.0

    async def daily_summary(self, child_id: str = None, day: Union[date, str] = None) -> DailySummary:
        """Counts and sleep total for one local calendar day in the active timezone."""
        child = await self.require_child(child_id or self.current_child_id)
        day = self._as_day(day)
        start, end = self.normalizer.local_day_bounds(day)

        windows = await asyncio.gather(
            *(self._owned_in_window(name, child.id, start, end) for name in RECORD_COLLECTION_NAMES)
        )
        by_collection = dict(zip(RECORD_COLLECTION_NAMES, windows))
        sleep_minutes = sum(self._sleep_minutes(record) for record in by_collection["sleep"])

        return DailySummary(
            child_id=child.id,
            day=day.isoformat(),
            timezone=self.normalizer.get_timezone(),
            feeding_count=len(by_collection["feeding"]),
            diaper_count=len(by_collection["diaper"]),
            sleep_hours=round(sleep_minutes / 60.0, 1),
            record_counts={name: len(records) for name, records in by_collection.items()},
        )

    async def weekly_trend(self, child_id: str = None, end_day: Union[date, str] = None, days: int = 7) -> WeeklyTrend:
        """
        Feeding count and sleep hours per local day for the ``days`` days ending on ``end_day``.

        Records are bucketed by the local day their start falls on; days without
        records are present with zero values.
        """
        if days < 1:
            raise ValueError("days must be at least 1")
        child = await self.require_child(child_id or self.current_child_id)
        end_day = self._as_day(end_day)
        first_day = end_day - timedelta(days=days - 1)
        start, end = self._window(first_day, end_day)

        feedings, sleeps = await asyncio.gather(
            self._owned_in_window("feeding", child.id, start, end),
            self._owned_in_window("sleep", child.id, start, end),
        )
        feeding_counts = Counter(self._local_day(record["start_time"]) for record in feedings)
        sleep_minutes = defaultdict(float)
        for record in sleeps:
            sleep_minutes[self._local_day(record["start_time"])] += self._sleep_minutes(record)

        series = []
        for offset in range(days):
            day = (first_day + timedelta(days=offset)).isoformat()
            series.append(TrendDay(
                day=day,
                feeding_count=feeding_counts.get(day, 0),
                sleep_hours=round(sleep_minutes.get(day, 0.0) / 60.0, 1),
            ))
        return WeeklyTrend(child_id=child.id, timezone=self.normalizer.get_timezone(), days=series)

    async def range_statistics(self, range_name: str = "week", child_id: str = None, today: Union[date, str] = None) -> RangeStatistics:
        """
        Feeding, sleep, diaper and weight aggregates from the start of the range up to the end of ``today``.

        ``range_name`` is one of ``week``, ``month``, ``3months`` or ``year``.
        """
        if range_name not in STATISTICS_RANGES:
            raise ValueError(f"Unknown statistics range '{range_name}', expected one of {', '.join(STATISTICS_RANGES)}")
        child = await self.require_child(child_id or self.current_child_id)
        today = self._as_day(today)
        days_back, months_back = STATISTICS_RANGES[range_name]
        first_day = _months_before(today, months_back) - timedelta(days=days_back)
        start, end = self._window(first_day, today)

        feedings, sleeps, diapers, health = await asyncio.gather(
            self._owned_in_window("feeding", child.id, start, end),
            self._owned_in_window("sleep", child.id, start, end),
            self._owned_in_window("diaper", child.id, start, end),
            self._owned_in_window("health", child.id, start, end),
        )

        feeding_by_type = dict.fromkeys(FEEDING_TYPES, 0)
        for record in feedings:
            feeding_type = record.get("feeding_type")
            feeding_by_type[feeding_type] = feeding_by_type.get(feeding_type, 0) + 1

        diaper_by_category = dict.fromkeys(DIAPER_CATEGORIES, 0)
        for record in diapers:
            category = record.get("category")
            diaper_by_category[category] = diaper_by_category.get(category, 0) + 1

        # Only completed sleeps have a duration
        sleep_minutes = defaultdict(float)
        for record in sleeps:
            if record.get("end_time"):
                sleep_minutes[self._local_day(record["start_time"])] += self._sleep_minutes(record)
        sleep_hours_by_day = {day: round(minutes / 60.0, 1) for day, minutes in sorted(sleep_minutes.items())}
        total_sleep_hours = round(sum(sleep_minutes.values()) / 60.0, 1)

        weight_trend = [
            WeightPoint(timestamp=record["timestamp"], day=self._local_day(record["timestamp"]), weight=record["weight"])
            for record in health
            if record.get("health_type") == "checkup" and record.get("weight")
        ]

        return RangeStatistics(
            child_id=child.id,
            range=range_name,
            timezone=self.normalizer.get_timezone(),
            start_day=first_day.isoformat(),
            end_day=today.isoformat(),
            feeding_by_type=feeding_by_type,
            sleep_hours_by_day=sleep_hours_by_day,
            diaper_by_category=diaper_by_category,
            weight_trend=weight_trend,
            total_feedings=len(feedings),
            total_sleep_hours=total_sleep_hours,
            average_sleep_hours=round(total_sleep_hours / len(sleep_hours_by_day), 1) if sleep_hours_by_day else None,
        )

    async def recent_records(self, child_id: str = None, limit: int = 5, collection: str = "all") -> List[Dict[str, Any]]:
        """Newest localized records of one child, across every record collection or just ``collection``."""
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if collection == "all":
            names = RECORD_COLLECTION_NAMES
        else:
            self._record_model(collection)
            names = (collection,)
        child = await self.require_child(child_id or self.current_child_id)

        owned = await asyncio.gather(*(self.store.get_by_index(name, "child_id", child.id) for name in names))
        entries = []
        for name, records in zip(names, owned):
            temporal_field = get_schema(name).temporal_field
            for record in records:
                entries.append((record.get(temporal_field) or "", name, record["id"], record))

        entries.sort(key=lambda entry: entry[:3], reverse=True)
        return [self.localize_record(name, record) for _, name, _, record in entries[:limit]]

    # Settings

    async def set_timezone(self, identifier: str) -> str:
        await self.ready()
        await self.normalizer.set_timezone(identifier)
        return self.normalizer.get_timezone()

    async def get_timezone(self) -> str:
        await self.ready()
        return self.normalizer.get_timezone()

    # Backup

    async def export_snapshot(self) -> Snapshot:
        await self.ready()
        return await self.backup.export_snapshot()

    async def export_json(self) -> str:
        return dumps_snapshot(await self.export_snapshot())

    async def import_snapshot(self, snapshot) -> ImportReport:
        await self.ready()
        return await self.backup.import_snapshot(snapshot)

    async def clear_all_data(self) -> ClearReport:
        await self.ready()
        report = await self.backup.clear_all()
        self.current_child_id = None
        return report

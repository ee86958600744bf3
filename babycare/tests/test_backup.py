"""
Tests for snapshot export and import
"""

import asyncio
import json

import pytest

from babycare.core.exceptions import MalformedSnapshot, NotInitialized, TransactionFailed
from babycare.db.models import COLLECTIONS
from babycare.db.store import NOT_FOUND, StoreEngine
from babycare.schemas.backup import ImportStatus, Snapshot
from babycare.services.backup_service import BackupCoordinator, dumps_snapshot, loads_snapshot, snapshot_filename
from babycare.services.session import CareSession


def run(*sessions, scenario):
    async def wrapper():
        try:
            return await scenario()
        finally:
            for session in sessions:
                await session.close()
    return asyncio.run(wrapper())


CHILD = {"id": "c1", "name": "Mei", "date_of_birth": "2024-01-15", "created_at": "2024-01-16T02:00:00Z"}


def diaper(category="wet", timestamp="2024-06-01T00:30:00Z", **extra):
    return dict({"child_id": "c1", "timestamp": timestamp, "category": category}, **extra)


async def populate(session):
    await session.add_child({"id": "c1", "name": "Mei", "date_of_birth": "2024-01-15"}, seed_milestones=False)
    await session.add_record("feeding", {"start_time": "2024-06-01T08:30", "end_time": "2024-06-01T08:50", "feeding_type": "breast", "side": "left"})
    await session.add_record("sleep", {"start_time": "2024-06-01T13:00", "end_time": "2024-06-01T14:30", "quality": "good"})
    await session.add_record("diaper", {"timestamp": "2024-06-01T09:00", "category": "wet"})
    await session.add_record("activities", {"start_time": "2024-06-01T10:00", "activity_type": "custom", "custom_name": "Swimming"})


def by_key(collections):
    return {name: sorted(records, key=lambda record: str(record["id"])) for name, records in collections.items()}


class FailingReadStore(StoreEngine):
    """Store whose reads of one collection are rejected by storage."""

    def __init__(self, database_url, failing_collection):
        super().__init__(database_url)
        self.failing_collection = failing_collection

    async def get_all(self, collection):
        if collection == self.failing_collection:
            raise TransactionFailed(f"get_all on '{collection}' failed", collection=collection, cause=OSError("disk I/O error"))
        return await super().get_all(collection)


class TestSnapshotDocument:
    def test_document_flattens_collections(self):
        snapshot = Snapshot(exported_at="2024-06-01T00:30:00Z", schema_version="1.0", collections={"children": [CHILD]})
        document = snapshot.to_document()
        assert document["children"] == [CHILD]
        assert document["exported_at"] == "2024-06-01T00:30:00Z"
        assert document["schema_version"] == "1.0"
        assert snapshot_filename(snapshot) == "baby-care-backup-2024-06-01.json"

    def test_loads_rejects_non_objects(self):
        with pytest.raises(MalformedSnapshot):
            loads_snapshot("{not json")
        with pytest.raises(MalformedSnapshot):
            loads_snapshot("[1, 2, 3]")
        with pytest.raises(MalformedSnapshot):
            loads_snapshot({"children": "Mei"})

    def test_loads_ignores_unknown_keys(self):
        snapshot = loads_snapshot(json.dumps({"children": [CHILD], "naps": [], "schema_version": "1.0"}))
        assert list(snapshot.collections) == ["children"]
        assert snapshot.record_count() == 1


class TestExportImport:
    def test_export_then_import_into_empty_store_reproduces_data(self, session, second_database_url):
        restored = CareSession(database_url=second_database_url)

        async def scenario():
            await populate(session)
            exported = await session.export_json()
            report = await restored.import_snapshot(exported)
            return json.loads(exported), report, await restored.export_snapshot()

        exported, report, snapshot = run(session, restored, scenario=scenario)
        assert report.status is ImportStatus.SUCCESS
        assert report.total_imported == 5
        assert report.total_failed == 0
        assert set(exported) == set(COLLECTIONS) | {"exported_at", "schema_version"}
        exported_collections = {name: exported[name] for name in COLLECTIONS}
        assert by_key(snapshot.collections) == by_key(exported_collections)

    def test_one_bad_record_fails_alone(self, session):
        async def scenario():
            await session.ready()
            payload = {
                "children": [CHILD],
                "diaper": [diaper(), diaper("dirty"), diaper("purple"), diaper("dry")],
            }
            report = await session.import_snapshot(payload)
            return report, await session.store.count("diaper")

        report, stored = run(session, scenario=scenario)
        assert report.status is ImportStatus.PARTIAL
        assert report.imported == {"children": 1, "diaper": 3}
        assert report.failed == {"diaper": 1}
        assert stored == 3

    def test_unknown_collections_are_skipped(self, session):
        async def scenario():
            report = await session.import_snapshot({"children": [CHILD], "naps": [{"id": 1}], "exported_at": "x"})
            return report, await session.store.get_all("children")

        report, children = run(session, scenario=scenario)
        assert report.status is ImportStatus.SUCCESS
        assert report.skipped_collections == ["naps"]
        assert [child["id"] for child in children] == ["c1"]

    def test_malformed_payload_writes_nothing(self, session):
        async def scenario():
            report = await session.import_snapshot(b"{not json")
            return report, await session.store.count("children")

        report, total = run(session, scenario=scenario)
        assert report.status is ImportStatus.FAILED
        assert report.error
        assert total == 0

    def test_non_list_collection_counts_as_failure(self, session):
        async def scenario():
            return await session.import_snapshot({"diaper": {"id": 1}})

        report = run(session, scenario=scenario)
        assert report.status is ImportStatus.FAILED
        assert report.failed == {"diaper": 1}

    def test_import_overwrites_matching_keys_and_keeps_the_rest(self, session):
        async def scenario():
            await session.ready()
            await session.store.add("children", dict(CHILD, id="c2", name="Kai"))
            first = await session.store.add("diaper", diaper())
            await session.store.add("diaper", diaper("dry"))
            await session.import_snapshot({"children": [CHILD], "diaper": [diaper("dirty", id=first)]})
            return await session.store.get("diaper", first), await session.store.count("diaper"), await session.store.count("children")

        record, diapers, children = run(session, scenario=scenario)
        assert record["category"] == "dirty"
        assert diapers == 2
        assert children == 2

    def test_legacy_values_are_normalized(self, session):
        async def scenario():
            await session.import_snapshot({
                "children": [dict(CHILD, id=7)],
                "diaper": [{"id": 3, "child_id": 7, "timestamp": 1717201800000, "category": "wet"}],
            })
            return await session.store.get("diaper", 3)

        record = run(session, scenario=scenario)
        assert record["child_id"] == "7"
        assert record["timestamp"] == "2024-06-01T00:30:00Z"

    def test_version_mismatch_is_still_imported(self, session):
        async def scenario():
            return await session.import_snapshot({"schema_version": "0.9", "children": [CHILD]})

        report = run(session, scenario=scenario)
        assert report.status is ImportStatus.SUCCESS
        assert report.schema_version == "0.9"

    def test_import_requires_ready_store(self, database_url):
        coordinator = BackupCoordinator(StoreEngine(database_url))
        with pytest.raises(NotInitialized):
            asyncio.run(coordinator.import_snapshot({"children": [CHILD]}))

    def test_export_requires_ready_store(self, database_url):
        coordinator = BackupCoordinator(StoreEngine(database_url))
        with pytest.raises(NotInitialized):
            asyncio.run(coordinator.export_snapshot())

    def test_export_fails_whole_when_one_collection_read_fails(self, database_url):
        store = FailingReadStore(database_url, "sleep")
        session = CareSession(store=store)
        exported = []

        async def scenario():
            await populate(session)
            with pytest.raises(TransactionFailed) as exc_info:
                exported.append(await session.export_snapshot())
            assert await store.count("sleep") == 1
            return exc_info.value

        error = run(session, scenario=scenario)
        assert error.collection == "sleep"
        assert exported == []

    def test_clear_all_keeps_preferences(self, session):
        async def scenario():
            await populate(session)
            await session.set_timezone("UTC")
            report = await session.clear_all_data()
            counts = [await session.store.count(name) for name in COLLECTIONS]
            return report, counts, await session.store.get_preference("timezone"), await session.store.get("children", "c1")

        report, counts, timezone, child = run(session, scenario=scenario)
        assert report.cleared == list(COLLECTIONS)
        assert report.failed == []
        assert counts == [0] * len(COLLECTIONS)
        assert timezone == "UTC"
        assert child is NOT_FOUND

    def test_dumps_snapshot_is_json(self):
        snapshot = Snapshot(exported_at="2024-06-01T00:30:00Z", schema_version="1.0", collections={"children": [CHILD]})
        assert json.loads(dumps_snapshot(snapshot))["children"][0]["name"] == "Mei"

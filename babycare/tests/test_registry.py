"""
Tests for the collection schema registry
"""

import pytest
import sqlalchemy

from babycare.core.exceptions import SchemaError
from babycare.db.models import (
    COLLECTIONS,
    PREFERENCES_TABLE,
    RECORD_COLLECTION_NAMES,
    build_tables,
    get_schema,
    is_known_collection,
)


def test_registry_lists_children_and_seven_record_collections():
    assert list(COLLECTIONS)[0] == "children"
    assert set(RECORD_COLLECTION_NAMES) == {
        "feeding", "sleep", "diaper", "health", "milestones", "interactions", "activities",
    }


def test_children_use_caller_assigned_keys():
    children = get_schema("children")
    assert children.auto_key is False
    assert children.key_field == "id"


@pytest.mark.parametrize("collection", RECORD_COLLECTION_NAMES)
def test_record_collections_index_owner_and_time(collection):
    schema = get_schema(collection)
    assert schema.auto_key is True
    assert schema.has_index("child_id")
    assert schema.temporal_field is not None
    assert schema.has_index(schema.temporal_field)


def test_milestones_also_index_category():
    assert get_schema("milestones").has_index("category")
    assert not get_schema("diaper").has_index("category")


def test_unknown_collection_raises_schema_error():
    with pytest.raises(SchemaError):
        get_schema("naps")
    assert not is_known_collection("naps")
    assert not is_known_collection(None)


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        COLLECTIONS["naps"] = get_schema("sleep")


def test_build_tables_projects_indexes_into_columns():
    tables = build_tables(sqlalchemy.MetaData())
    assert set(tables) == set(COLLECTIONS) | {PREFERENCES_TABLE}

    feeding = tables["feeding"]
    assert {"id", "child_id", "start_time", "document"} <= set(feeding.c.keys())
    assert {index.columns.keys()[0] for index in feeding.indexes} == {"child_id", "start_time"}
    assert isinstance(tables["children"].c.id.type, sqlalchemy.String)

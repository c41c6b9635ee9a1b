"""
Tests for the draft_data column migration.
"""
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool
from easysplit.db.migrations.add_draft_data_to_splits import migrate


def memory_engine():
    return create_engine("sqlite://", poolclass=StaticPool)


def test_adds_missing_column_once():
    engine = memory_engine()
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE bill_splits (id INTEGER PRIMARY KEY, code VARCHAR(8), people JSON)"
        ))

    assert migrate(engine) is True
    assert "draft_data" in {c["name"] for c in inspect(engine).get_columns("bill_splits")}
    assert migrate(engine) is False


def test_no_table_is_a_no_op():
    assert migrate(memory_engine()) is False

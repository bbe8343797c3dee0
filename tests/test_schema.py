"""
Tests for local schema initialisation.
"""

from __future__ import annotations

import pytest

from crm_portal.database import DatabaseManager
from crm_portal.schema import CURRENT_SCHEMA_VERSION, initialize_schema

pytestmark = pytest.mark.unit


def _tables(db: DatabaseManager) -> set[str]:
    rows = db.sqlite.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).fetchall()
    return {row["name"] for row in rows}


class TestInitializeSchema:
    def test_fresh_database(self, logger):
        db = DatabaseManager(sqlite_path=":memory:", logger=logger)
        try:
            initialize_schema(db.sqlite, logger)

            assert {"local_storage", "cookies", "schema_version"} <= _tables(db)
            version = db.sqlite.execute(
                "SELECT version FROM schema_version WHERE id = 1"
            ).fetchone()[0]
            assert version == CURRENT_SCHEMA_VERSION
        finally:
            db.close()

    def test_idempotent_and_preserves_data(self, db, logger):
        db.sqlite.execute("INSERT INTO local_storage (key, value) VALUES ('ts-token', 'abc')")
        db.sqlite.commit()

        initialize_schema(db.sqlite, logger)

        row = db.sqlite.execute(
            "SELECT value FROM local_storage WHERE key = 'ts-token'"
        ).fetchone()
        assert row["value"] == "abc"

    def test_logs_json(self, logger, log_stream):
        db = DatabaseManager(sqlite_path=":memory:", logger=logger)
        try:
            initialize_schema(db.sqlite, logger)
        finally:
            db.close()

        assert '"message": "Schema initialised at version 1."' in log_stream.getvalue()

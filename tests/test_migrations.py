"""Tests for the schema migration."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

MIGRATION = (
    Path(__file__).parent.parent / "migrations" / "versions" / "001_create_budget_tables.py"
)


@pytest.fixture
def migration():
    spec = importlib.util.spec_from_file_location("migration_001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run(migration, step):
    engine = create_engine("sqlite:///:memory:")
    conn = engine.connect()
    context = MigrationContext.configure(conn)
    with Operations.context(context):
        getattr(migration, step)()
    return conn


class TestInitialMigration:
    """Tests for revision 001."""

    def test_upgrade_creates_tables(self, migration):
        conn = run(migration, "upgrade")

        tables = set(inspect(conn).get_table_names())
        assert {
            "transactions",
            "recurring_transactions",
            "recurring_transaction_exceptions",
            "reconciliation_matches",
        } <= tables
        conn.close()

    def test_match_triple_unique(self, migration):
        conn = run(migration, "upgrade")

        constraints = inspect(conn).get_unique_constraints("reconciliation_matches")
        assert {
            "name": "uq_recon_match_triple",
            "column_names": [
                "imported_transaction_id",
                "recurring_transaction_id",
                "recurring_instance_date",
            ],
        } in [{"name": c["name"], "column_names": c["column_names"]} for c in constraints]
        conn.close()

    def test_matches_cascade_on_delete(self, migration):
        conn = run(migration, "upgrade")

        foreign_keys = inspect(conn).get_foreign_keys("reconciliation_matches")
        assert {fk["options"].get("ondelete") for fk in foreign_keys} == {"CASCADE"}
        conn.close()

    def test_downgrade_drops_tables(self, migration):
        conn = run(migration, "upgrade")
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            migration.downgrade()

        assert inspect(conn).get_table_names() == []
        conn.close()

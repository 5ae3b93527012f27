"""Tests for database initialization and startup behavior.

These tests verify that the application refuses to start when migrations
haven't been run.
"""

import os
import tempfile

import pytest
from sqlalchemy import create_engine, inspect

import island_rewards.main as main_module
from island_rewards.main import REQUIRED_TABLES, check_database_tables


class TestDatabaseStartup:
    """Tests for database initialization at startup."""

    def test_check_database_tables_raises_on_missing_tables(self):
        """check_database_tables() raises RuntimeError naming the fix when tables are missing."""
        with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
            empty_db_path = tmp.name

        try:
            empty_engine = create_engine(
                f"sqlite:///{empty_db_path}",
                connect_args={"check_same_thread": False},
            )
            assert len(inspect(empty_engine).get_table_names()) == 0

            original_engine = main_module.engine
            main_module.engine = empty_engine

            try:
                with pytest.raises(RuntimeError) as exc_info:
                    check_database_tables()

                error_message = str(exc_info.value)
                assert "Database tables missing" in error_message
                assert "make migrate" in error_message
                assert "reward_claims" in error_message
            finally:
                main_module.engine = original_engine
                empty_engine.dispose()

        finally:
            if os.path.exists(empty_db_path):
                os.unlink(empty_db_path)

    def test_check_database_tables_passes_with_all_tables(self, db_session):
        original_engine = main_module.engine
        main_module.engine = db_session.get_bind()

        try:
            # Should not raise any exception
            check_database_tables()
        finally:
            main_module.engine = original_engine

    def test_required_tables_exist_after_setup(self, db_session):
        tables = set(inspect(db_session.get_bind()).get_table_names())

        assert REQUIRED_TABLES == {"pow_challenges", "reward_claims", "claim_attempts"}
        assert REQUIRED_TABLES.issubset(
            tables
        ), f"Missing required tables. Expected: {REQUIRED_TABLES}, Found: {tables}"

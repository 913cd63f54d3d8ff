"""Tests for db.py — backend selection and the PostgreSQL connection path."""

import sqlite3
import pytest
from unittest.mock import MagicMock, patch

import db


@pytest.fixture
def pg_pool():
    pool = MagicMock()
    with patch.object(db, '_DATABASE_URL', 'postgresql://turf@localhost/turf'), \
         patch('db._get_pg_pool', return_value=pool):
        yield pool


class TestSqlite:
    def test_default_backend(self):
        assert db.is_postgres() is False
        assert db.get_integrity_error() is sqlite3.IntegrityError

    def test_rows_by_column_name(self, db):
        from db import get_db
        with get_db() as conn:
            conn.execute("INSERT INTO tenant_datasets (username) VALUES (?)", ('alice',))
            row = conn.execute('SELECT username, version FROM tenant_datasets').fetchone()
        assert row['username'] == 'alice'
        assert row['version'] == 0


class TestPostgres:
    def test_placeholders_converted(self, pg_pool):
        raw = pg_pool.getconn.return_value
        cursor = raw.cursor.return_value
        cursor.fetchone.return_value = {'username': 'alice'}

        with db.get_db() as conn:
            row = conn.execute('SELECT username FROM users WHERE username = ?', ('alice',)).fetchone()

        assert row['username'] == 'alice'
        cursor.execute.assert_called_once_with(
            'SELECT username FROM users WHERE username = %s', ('alice',))
        raw.commit.assert_called_once()
        pg_pool.putconn.assert_called_once_with(raw)

    def test_rollback_on_error(self, pg_pool):
        raw = pg_pool.getconn.return_value
        with pytest.raises(RuntimeError):
            with db.get_db() as conn:
                conn.execute('UPDATE users SET is_approved = 1')
                raise RuntimeError('boom')
        raw.rollback.assert_called_once()
        raw.commit.assert_not_called()
        pg_pool.putconn.assert_called_once_with(raw)

    def test_integrity_error_class(self, pg_pool):
        import psycopg2
        assert db.get_integrity_error() is psycopg2.IntegrityError

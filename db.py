"""
Database connection utilities for Turf Fertility Manager.
Supports both SQLite (local dev) and PostgreSQL (production).

When DATABASE_URL is set, uses PostgreSQL with connection pooling.
Otherwise, falls back to SQLite with WAL mode.
"""

import os
import sqlite3
import logging
from contextlib import contextmanager

from config import Config

logger = logging.getLogger(__name__)

DATA_DIR = Config.DATA_DIR
TURF_DB = os.path.join(DATA_DIR, 'turf_fertility.db')

# Detect database backend from DATABASE_URL
_DATABASE_URL = Config.DATABASE_URL
_pg_pool = None


def _get_pg_pool():
    """Lazily initialize the PostgreSQL connection pool."""
    global _pg_pool
    if _pg_pool is None and _DATABASE_URL:
        from psycopg2 import pool
        try:
            _pg_pool = pool.ThreadedConnectionPool(
                minconn=2,
                maxconn=20,
                dsn=_DATABASE_URL
            )
            logger.info("PostgreSQL connection pool initialized (2-20 connections)")
        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL pool: {e}")
            raise
    return _pg_pool


def is_postgres():
    """Check if we're using PostgreSQL."""
    return bool(_DATABASE_URL)


# ---------------------------------------------------------------------------
# SQL Conversion: SQLite → PostgreSQL
# ---------------------------------------------------------------------------

def _convert_sqlite_to_pg(sql):
    """Convert ? placeholders to psycopg2's %s."""
    return sql.replace('?', '%s')


def get_integrity_error():
    """Return the appropriate IntegrityError class for the current backend."""
    if is_postgres():
        import psycopg2
        return psycopg2.IntegrityError
    return sqlite3.IntegrityError


class _PgConnWrapper:
    """sqlite3-style conn.execute() over a pooled psycopg2 connection.

    Cursors are RealDictCursors so rows support row['column'] like sqlite3.Row.
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, sql, params=None):
        from psycopg2.extras import RealDictCursor
        cursor = self._conn.cursor(cursor_factory=RealDictCursor)
        cursor.execute(_convert_sqlite_to_pg(sql), params)
        return cursor


# ---------------------------------------------------------------------------
# Connection Management
# ---------------------------------------------------------------------------

@contextmanager
def get_db(db_path=None):
    """
    Context manager for database connections.
    Uses PostgreSQL when DATABASE_URL is set, otherwise SQLite with WAL.

    Usage:
        with get_db() as conn:
            conn.execute('SELECT ...')

    Args:
        db_path: Path to SQLite database. Ignored when using PostgreSQL.
                 Defaults to TURF_DB for SQLite.
    """
    if is_postgres():
        pool = _get_pg_pool()
        raw = pool.getconn()
        try:
            yield _PgConnWrapper(raw)
            raw.commit()
        except Exception:
            raw.rollback()
            raise
        finally:
            pool.putconn(raw)
    else:
        if db_path is None:
            db_path = TURF_DB
        conn = sqlite3.connect(db_path)
        conn.execute('PRAGMA journal_mode=WAL')
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def init_db():
    """Create the users and tenant_datasets tables if they don't exist.

    Mirrors the initial Alembic revision so a fresh SQLite file works
    without running migrations.
    """
    if not is_postgres():
        os.makedirs(DATA_DIR, exist_ok=True)
    with get_db() as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS users (
                username TEXT PRIMARY KEY,
                password_hash TEXT NOT NULL,
                golf_course TEXT NOT NULL DEFAULT '',
                is_approved INTEGER NOT NULL DEFAULT 0,
                is_admin INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                last_login TIMESTAMP
            )
        ''')
        conn.execute('''
            CREATE TABLE IF NOT EXISTS tenant_datasets (
                username TEXT PRIMARY KEY,
                logs TEXT NOT NULL DEFAULT '[]',
                fertilizers TEXT NOT NULL DEFAULT '[]',
                settings TEXT NOT NULL DEFAULT '{}',
                notification_settings TEXT NOT NULL DEFAULT '{}',
                version INTEGER NOT NULL DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')
    logger.info("Database schema ready")

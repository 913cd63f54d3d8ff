"""
Per-tenant dataset storage for Turf Fertility Manager.

Each tenant (username) owns one row holding its whole dataset: application
logs, private fertilizer catalog, settings and notification settings, each
serialized as JSON, plus a version counter. Collections are always read and
written whole. A write can carry the version the caller read; if another
writer got there first the write is refused with StaleDatasetError instead
of silently overwriting.
"""

import json
import logging

from constants import DEFAULT_NOTIFICATION_SETTINGS
from db import get_db, get_integrity_error
from fertilizer_catalog import normalize_catalog
from user_settings import normalize_settings

logger = logging.getLogger(__name__)

FIELDS = ('logs', 'fertilizers', 'settings', 'notification_settings')

_LIST_FIELDS = ('logs', 'fertilizers')


class StaleDatasetError(Exception):
    """Raised when a write was based on an outdated version of the dataset."""

    def __init__(self, username, expected_version, current_version):
        self.username = username
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Dataset for {username} changed (expected version {expected_version}, "
            f"found {current_version}); reload and try again"
        )


def _empty(field):
    return [] if field in _LIST_FIELDS else {}


def _decode(raw, field):
    if raw in (None, ''):
        return _empty(field)
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Corrupt {field} JSON in tenant dataset; treating as empty")
        return _empty(field)
    if not isinstance(value, type(_empty(field))):
        return _empty(field)
    return value


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def load_dataset(username):
    """Whole dataset for a tenant, stored shape; version 0 if none exists yet."""
    with get_db() as conn:
        row = conn.execute(
            'SELECT logs, fertilizers, settings, notification_settings, version '
            'FROM tenant_datasets WHERE username = ?',
            (username,)
        ).fetchone()
    if not row:
        dataset = {field: _empty(field) for field in FIELDS}
        dataset['version'] = 0
        return dataset
    dataset = {field: _decode(row[field], field) for field in FIELDS}
    dataset['version'] = row['version']
    return dataset


def get_logs(username):
    return load_dataset(username)['logs']


def get_fertilizers(username):
    return normalize_catalog(load_dataset(username)['fertilizers'])


def get_settings(username):
    return normalize_settings(load_dataset(username)['settings'])


def get_notification_settings(username):
    settings = dict(DEFAULT_NOTIFICATION_SETTINGS)
    settings.update(load_dataset(username)['notification_settings'])
    return settings


def list_usernames():
    with get_db() as conn:
        rows = conn.execute('SELECT username FROM tenant_datasets ORDER BY username').fetchall()
    return [row['username'] for row in rows]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_dataset(username):
    """Create an empty dataset for a new tenant (no-op if one exists)."""
    IntegrityError = get_integrity_error()
    try:
        with get_db() as conn:
            conn.execute('INSERT INTO tenant_datasets (username) VALUES (?)', (username,))
        logger.info(f"Created dataset for {username}")
    except IntegrityError:
        logger.debug(f"Dataset for {username} already exists")


def replace_field(username, field, value, expected_version=None):
    """Replace one collection of a tenant's dataset.

    Args:
        username: Tenant
        field: One of FIELDS
        value: New JSON-serializable value for the whole collection
        expected_version: Version the caller read, or None for an
            unconditional write

    Returns:
        The new version number

    Raises:
        ValueError: Unknown field
        StaleDatasetError: expected_version no longer matches
    """
    if field not in FIELDS:
        raise ValueError(f"Unknown dataset field: {field}")
    payload = json.dumps(value, ensure_ascii=False)
    IntegrityError = get_integrity_error()

    try:
        with get_db() as conn:
            row = conn.execute(
                'SELECT version FROM tenant_datasets WHERE username = ?', (username,)
            ).fetchone()

            if not row:
                if expected_version not in (None, 0):
                    raise StaleDatasetError(username, expected_version, 0)
                conn.execute(
                    f'INSERT INTO tenant_datasets (username, {field}, version) VALUES (?, ?, 1)',
                    (username, payload)
                )
                new_version = 1
            else:
                current = row['version']
                if expected_version is not None and expected_version != current:
                    raise StaleDatasetError(username, expected_version, current)
                cursor = conn.execute(
                    f'UPDATE tenant_datasets SET {field} = ?, version = version + 1, '
                    f'updated_at = CURRENT_TIMESTAMP WHERE username = ? AND version = ?',
                    (payload, username, current)
                )
                if cursor.rowcount == 0:
                    raise StaleDatasetError(username, expected_version, None)
                new_version = current + 1
    except IntegrityError:
        # Another writer created the row between our read and insert
        raise StaleDatasetError(username, expected_version, None)

    logger.info(f"Saved {field} for {username} (version {new_version})")
    return new_version


def save_logs(username, logs, expected_version=None):
    return replace_field(username, 'logs', logs, expected_version)


def save_fertilizers(username, fertilizers, expected_version=None):
    return replace_field(username, 'fertilizers', fertilizers, expected_version)


def save_settings(username, settings, expected_version=None):
    return replace_field(username, 'settings', settings, expected_version)


def save_notification_settings(username, settings, expected_version=None):
    return replace_field(username, 'notification_settings', settings, expected_version)


def delete_dataset(username):
    with get_db() as conn:
        conn.execute('DELETE FROM tenant_datasets WHERE username = ?', (username,))
    logger.info(f"Deleted dataset for {username}")

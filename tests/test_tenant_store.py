"""Tests for tenant_store.py — per-tenant datasets and version checks."""

import pytest

from tenant_store import (
    StaleDatasetError, create_dataset, delete_dataset, get_fertilizers, get_logs,
    get_notification_settings, get_settings, list_usernames, load_dataset, replace_field,
    save_fertilizers, save_logs, save_settings,
)


# ── Reads ──

class TestLoad:
    def test_missing_dataset_is_empty(self, db):
        dataset = load_dataset('nobody')
        assert dataset == {'logs': [], 'fertilizers': [], 'settings': {},
                           'notification_settings': {}, 'version': 0}

    def test_create_dataset_is_idempotent(self, db):
        create_dataset('alice')
        create_dataset('alice')
        assert list_usernames() == ['alice']
        assert load_dataset('alice')['version'] == 0

    def test_normalized_views(self, db, solid_fertilizer):
        save_fertilizers('alice', [solid_fertilizer])
        save_settings('alice', {'greenArea': '800'})
        assert get_fertilizers('alice')[0]['npk_ratio'] == '1-0-0'
        assert get_settings('alice')['green_area'] == '800'
        assert get_notification_settings('alice') == {'enabled': False, 'email': '', 'threshold': 10}

    def test_round_trip_keeps_unicode(self, db, make_entry):
        entry = make_entry('1', '2024-04-01', '그린 비료', 10.0)
        save_logs('alice', [entry])
        assert get_logs('alice') == [entry]


# ── Versioned writes ──

class TestReplaceField:
    def test_version_increments(self, db):
        assert save_logs('alice', []) == 1
        assert save_logs('alice', []) == 2
        assert load_dataset('alice')['version'] == 2

    def test_matching_version_succeeds(self, db):
        create_dataset('alice')
        assert replace_field('alice', 'logs', [{'id': 'a'}], expected_version=0) == 1
        assert replace_field('alice', 'logs', [{'id': 'b'}], expected_version=1) == 2

    def test_stale_version_rejected(self, db):
        save_logs('alice', [{'id': 'first'}])
        version = load_dataset('alice')['version']
        save_logs('alice', [{'id': 'other-tab'}], expected_version=version)

        with pytest.raises(StaleDatasetError) as exc:
            save_logs('alice', [{'id': 'lost-update'}], expected_version=version)
        assert exc.value.current_version == version + 1
        assert get_logs('alice') == [{'id': 'other-tab'}]

    def test_stale_version_on_missing_dataset(self, db):
        with pytest.raises(StaleDatasetError):
            replace_field('ghost', 'logs', [], expected_version=3)

    def test_unknown_field(self, db):
        with pytest.raises(ValueError):
            replace_field('alice', 'passwords', [])

    def test_fields_are_independent(self, db, solid_fertilizer):
        save_logs('alice', [{'id': 'a'}])
        save_fertilizers('alice', [solid_fertilizer])
        assert get_logs('alice') == [{'id': 'a'}]

    def test_delete_dataset(self, db):
        save_logs('alice', [{'id': 'a'}])
        delete_dataset('alice')
        assert load_dataset('alice')['version'] == 0
        assert list_usernames() == []

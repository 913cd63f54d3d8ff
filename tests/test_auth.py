"""Tests for auth.py — registration, approval and login."""

import pytest
from unittest.mock import patch

from auth import (
    PendingApprovalError, approve_user, authenticate_user, create_user, delete_user,
    ensure_admin_user, get_user, list_users,
)
from db import get_db
from tenant_store import list_usernames, load_dataset, save_logs


# ── Registration ──

class TestCreateUser:
    def test_new_user_is_pending(self, db):
        user = create_user('alice', 'secret-pw', 'Pine Valley')
        assert user['username'] == 'alice'
        assert user['golf_course'] == 'Pine Valley'
        assert user['is_approved'] is False
        assert user['is_admin'] is False
        assert 'alice' in list_usernames()

    def test_password_is_hashed(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        with get_db() as conn:
            stored = conn.execute('SELECT password_hash FROM users WHERE username = ?',
                                  ('alice',)).fetchone()['password_hash']
        assert stored != 'secret-pw'

    def test_duplicate(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        with pytest.raises(ValueError, match='exists'):
            create_user('alice', 'other-pw', 'Elsewhere')

    @pytest.mark.parametrize('username,password,course', [
        ('', 'secret-pw', 'Course'), ('bob', '', 'Course'), ('bob', 'secret-pw', ''),
        ('bob', 'abc', 'Course'),
    ])
    def test_invalid(self, db, username, password, course):
        with pytest.raises(ValueError, match='invalid'):
            create_user(username, password, course)

    def test_signup_notification_sent(self, db):
        with patch('notifications.send_signup_notification') as notify:
            create_user('alice', 'secret-pw', 'Pine Valley')
        notify.assert_called_once()
        assert notify.call_args[0][0]['username'] == 'alice'


# ── Login ──

class TestAuthenticate:
    def test_pending_user_refused(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        with pytest.raises(PendingApprovalError):
            authenticate_user('alice', 'secret-pw')

    def test_approved_user(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        assert approve_user('alice') is True
        user = authenticate_user('alice', 'secret-pw')
        assert user['username'] == 'alice'
        assert get_user('alice')['last_login'] is not None

    def test_wrong_password(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        approve_user('alice')
        assert authenticate_user('alice', 'wrong') is None
        assert authenticate_user('nobody', 'secret-pw') is None

    def test_approve_unknown(self, db):
        assert approve_user('nobody') is False


# ── Admin account ──

class TestAdmin:
    def test_ensure_admin_user(self, db):
        ensure_admin_user()
        ensure_admin_user()
        admin = get_user('admin')
        assert admin['is_admin'] is True
        assert authenticate_user('admin', 'admin-pass')['is_admin'] is True

    def test_admin_excluded_from_list(self, db):
        ensure_admin_user()
        create_user('alice', 'secret-pw', 'Pine Valley')
        assert [u['username'] for u in list_users()] == ['alice']
        assert len(list_users(include_admin=True)) == 2

    def test_admin_cannot_be_deleted(self, db):
        ensure_admin_user()
        with pytest.raises(ValueError):
            delete_user('admin')

    def test_delete_cascades_dataset(self, db):
        create_user('alice', 'secret-pw', 'Pine Valley')
        save_logs('alice', [{'id': 'a'}])
        assert delete_user('alice') is True
        assert get_user('alice') is None
        assert load_dataset('alice')['logs'] == []
        assert delete_user('alice') is False

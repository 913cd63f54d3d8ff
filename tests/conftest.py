"""
Pytest configuration and shared fixtures for Turf Fertility Manager tests.
"""

import os
import sys
import tempfile
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment variables before importing app modules.
# DATA_DIR is forced so tests never touch a real database.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="turf-fertility-tests-")
os.environ["DATA_DIR"] = _TEST_DATA_DIR
os.environ.setdefault("LOG_DIR", _TEST_DATA_DIR)
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret-key")
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")
os.environ.setdefault("SIGNUP_EMAIL_ENABLED", "false")
os.environ.setdefault("LOW_STOCK_EMAIL_ENABLED", "false")


@pytest.fixture
def db():
    """Fresh schema with empty tables for each test."""
    from db import get_db, init_db
    init_db()
    yield
    with get_db() as conn:
        conn.execute('DELETE FROM tenant_datasets')
        conn.execute('DELETE FROM users')


@pytest.fixture
def solid_fertilizer():
    return {
        'name': 'Green Slow 21-0-0',
        'usage': 'green',
        'type': 'slow-release',
        'N': 21, 'P': 0, 'K': 0,
        'price': 30000,
        'unit': '20kg',
        'rate': '20g/㎡',
        'stock': 5,
        'low_stock_alert_enabled': True,
    }


@pytest.fixture
def liquid_fertilizer():
    return {
        'name': 'Liquid 10-0-0',
        'usage': 'tee',
        'type': 'liquid',
        'N': 10,
        'price': 50000,
        'unit': '10L',
        'rate': '5ml/㎡',
        'density': 1.1,
        'stock': 20,
        'low_stock_alert_enabled': True,
    }


@pytest.fixture
def catalog(solid_fertilizer, liquid_fertilizer):
    from fertilizer_catalog import normalize_catalog
    return normalize_catalog([
        solid_fertilizer,
        liquid_fertilizer,
        {
            'name': 'Fairway 16-2-12', 'usage': 'fairway', 'type': 'water-soluble',
            'N': 16, 'P': 2, 'K': 12, 'price': 25000, 'unit': '25kg', 'rate': '15g/㎡',
        },
    ])


def _entry(entry_id, date, product, cost, usage='green', area=100.0, n=0.0, p=0.0, k=0.0, **extra):
    from nutrient_calculator import zero_nutrients
    nutrients = zero_nutrients()
    nutrients.update({'N': n, 'P': p, 'K': k})
    entry = {
        'id': entry_id, 'date': date, 'product': product, 'usage': usage,
        'area': area, 'application_rate': 10.0, 'application_unit': 'g/㎡',
        'total_cost': cost, 'nutrients': nutrients,
    }
    entry.update(extra)
    return entry


@pytest.fixture
def make_entry():
    return _entry


@pytest.fixture
def sample_logs():
    return [
        _entry('1', '2024-03-05', 'Green Slow 21-0-0', 100.0, n=210.0),
        _entry('2', '2024-03-20', 'Green Slow 21-0-0', 50.0, n=105.0),
        _entry('3', '2024-05-02', 'Fairway 16-2-12', 80.0, usage='fairway', area=200.0,
               n=320.0, p=40.0, k=240.0),
        _entry('4', '2023-09-10', 'Liquid 10-0-0', 30.0, usage='tee',
               application_unit='ml/㎡', n=55.0),
    ]


@pytest.fixture
def settings():
    from user_settings import normalize_settings
    return normalize_settings({
        'green_area': '1000', 'tee_area': '500', 'fairway_area': '20000',
        'selected_guide': 'cool_season_bentgrass',
    })


@pytest.fixture
def app(db):
    from app import create_app
    application = create_app()
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    # No `with` block: tests may hold several clients on one app
    return app.test_client()


@pytest.fixture
def user_client(app):
    """Test client logged in as an approved tenant."""
    from auth import approve_user, create_user
    create_user('greenkeeper', 'secret-pw', 'Pine Valley')
    approve_user('greenkeeper')
    test_client = app.test_client()
    with test_client.session_transaction() as sess:
        sess['username'] = 'greenkeeper'
        sess['golf_course'] = 'Pine Valley'
        sess['is_admin'] = False
    return test_client


@pytest.fixture
def admin_client(app):
    """Test client logged in as the bootstrap administrator."""
    test_client = app.test_client()
    with test_client.session_transaction() as sess:
        sess['username'] = 'admin'
        sess['golf_course'] = 'admin'
        sess['is_admin'] = True
    return test_client

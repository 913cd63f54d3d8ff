"""
Administrator views for Turf Fertility Manager.

Cross-tenant summaries (one UserDataSummary per non-admin account), the
approval queue, the shared master fertilizer catalog (kept in the
administrator's own dataset) and per-tenant detail statistics.
"""

import logging

from config import Config
from auth import list_users
from fertilizer_catalog import (
    bulk_update, normalize_catalog, normalize_fertilizer, resolve_catalog, validate_fertilizer,
)
from log_aggregator import (
    last_activity, monthly_cost_by_tenant, period_stats, product_stats, total_cost,
    usage_stats, zone_stats,
)
from tenant_store import get_fertilizers, load_dataset, save_fertilizers
from application_log import sort_newest_first

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Master catalog
# ---------------------------------------------------------------------------

def master_catalog():
    """The shared catalog every tenant without its own list falls back to."""
    return get_fertilizers(Config.ADMIN_USERNAME)


def catalog_for(username):
    """Catalog a tenant actually works with (own list or the master list)."""
    own = get_fertilizers(username)
    if own or username == Config.ADMIN_USERNAME:
        return own
    return resolve_catalog(own, master_catalog())


def validate_catalog(fertilizers):
    """Validate every record of a catalog being saved.

    Returns:
        dict of product index -> field errors (empty when valid)
    """
    problems = {}
    for i, form in enumerate(fertilizers or []):
        others = [f for j, f in enumerate(fertilizers) if j != i]
        errors = validate_fertilizer(form, others)
        if errors:
            problems[i] = errors
    return problems


def save_master_catalog(fertilizers, expected_version=None):
    """Replace the master catalog after validation.

    Raises:
        ValueError: with the per-record error map when any record is invalid
    """
    problems = validate_catalog(fertilizers)
    if problems:
        raise ValueError(problems)
    catalog = [normalize_fertilizer(f) for f in fertilizers]
    version = save_fertilizers(Config.ADMIN_USERNAME, catalog, expected_version)
    logger.info(f"Master catalog saved ({len(catalog)} products)")
    return {'fertilizers': catalog, 'version': version}


def bulk_edit_master(names, target, operation, value):
    """Bulk edit price/stock/alert flag on selected master products."""
    dataset = load_dataset(Config.ADMIN_USERNAME)
    catalog = bulk_update(normalize_catalog(dataset['fertilizers']), names, target, operation, value)
    version = save_fertilizers(Config.ADMIN_USERNAME, catalog, expected_version=dataset['version'])
    return {'fertilizers': catalog, 'version': version}


# ---------------------------------------------------------------------------
# Tenant summaries
# ---------------------------------------------------------------------------

def user_data_summary(user):
    """UserDataSummary for one account."""
    dataset = load_dataset(user['username'])
    logs = sort_newest_first(dataset['logs'])
    return {
        'username': user['username'],
        'golf_course': user.get('golf_course', ''),
        'is_approved': user.get('is_approved', False),
        'log_count': len(logs),
        'total_cost': round(total_cost(logs), 2),
        'last_activity': last_activity(logs),
        'logs': logs,
        'fertilizers': normalize_catalog(dataset['fertilizers']),
        'created_at': user.get('created_at'),
    }


def get_all_users_data():
    """Summaries for every non-admin account."""
    summaries = [user_data_summary(user) for user in list_users(include_admin=False)]
    logger.debug(f"Built {len(summaries)} user summaries")
    return summaries


def pending_users():
    return [u for u in list_users(include_admin=False) if not u['is_approved']]


def approved_users():
    return [u for u in list_users(include_admin=False) if u['is_approved']]


def user_detail(username, year='all'):
    """Per-tenant statistics for the admin detail page.

    Returns:
        dict with product, period, usage and zone statistics, or None when
        the tenant has no account
    """
    users = {u['username']: u for u in list_users(include_admin=True)}
    if username not in users:
        return None
    summary = user_data_summary(users[username])
    logs = summary['logs']
    return {
        'summary': {k: v for k, v in summary.items() if k not in ('logs', 'fertilizers')},
        'product_stats': product_stats(logs, year),
        'period_stats': period_stats(logs, year),
        'usage_stats': usage_stats(logs, year),
        'zone_stats': zone_stats(logs, year),
    }


def monthly_user_cost(start_date=None, end_date=None):
    """Monthly cost per tenant across all non-admin tenants."""
    return monthly_cost_by_tenant(get_all_users_data(), start_date, end_date)

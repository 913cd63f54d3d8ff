"""
Fertilizer application log for Turf Fertility Manager.

Builds log entries (running the nutrient calculator once, at write time, so
each entry keeps its own nutrient/cost snapshot) and persists a tenant's log
as a whole collection through tenant_store.
"""

import logging
import secrets
import time
from datetime import date as date_cls, datetime

from constants import ZONES
from fertilizer_catalog import find_fertilizer, normalize_usage
from nutrient_calculator import application_unit, compute_application, product_amount, _number
from tenant_store import load_dataset, save_logs
from user_settings import normalize_settings, zone_areas

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'

# Fields an administrator may correct on an existing entry
EDITABLE_FIELDS = (
    'date', 'product', 'usage', 'area', 'application_rate', 'application_unit',
    'total_cost', 'nutrients', 'amount_applied', 'amount_unit', 'topdressing',
)


def _new_id(usage):
    return f"{int(time.time() * 1000)}-{usage}-{secrets.token_hex(4)}"


def _parse_date(value):
    if isinstance(value, date_cls):
        return value.strftime(DATE_FORMAT)
    try:
        return datetime.strptime(str(value or '').strip(), DATE_FORMAT).strftime(DATE_FORMAT)
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")


def sort_newest_first(logs):
    return sorted(logs, key=lambda entry: str(entry.get('date') or ''), reverse=True)


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------

def create_log_entry(fertilizer, date, usage, area, rate, topdressing=None):
    """Validate an application and build its log entry.

    Args:
        fertilizer: Fertilizer dict from the tenant's catalog
        date: 'YYYY-MM-DD' string or date
        usage: Zone the product went on (green/tee/fairway)
        area: Treated area in m², must be > 0
        rate: Application rate per m², must be >= 0
        topdressing: Optional topdressing depth in mm

    Returns:
        LogEntry dict

    Raises:
        ValueError: Missing product or invalid date, zone, area or rate
    """
    if not fertilizer or not fertilizer.get('name'):
        raise ValueError("Select a product")
    entry_date = _parse_date(date)
    zone = normalize_usage(usage)
    if zone not in ZONES:
        raise ValueError(f"Unknown usage zone '{usage}'")
    area_m2 = _number(area)
    if area_m2 is None or area_m2 <= 0:
        raise ValueError("Area must be greater than 0")
    rate_value = _number(rate)
    if rate_value is None or rate_value < 0:
        raise ValueError("Application rate must be 0 or more")

    result = compute_application(fertilizer, area_m2, rate_value)
    amount, unit = product_amount(fertilizer, area_m2, rate_value)

    entry = {
        'id': _new_id(zone),
        'date': entry_date,
        'product': fertilizer['name'],
        'usage': zone,
        'area': area_m2,
        'application_rate': rate_value,
        'application_unit': application_unit(fertilizer),
        'total_cost': round(result['total_cost'], 2),
        'nutrients': result['nutrients'],
        'amount_applied': round(amount, 3),
        'amount_unit': unit,
    }
    depth = _number(topdressing)
    if depth is not None and depth > 0:
        entry['topdressing'] = depth
    return entry


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def add_log_entry(username, entry, expected_version=None):
    """Prepend an entry to the tenant's log and save it.

    Returns:
        dict with the saved 'entry', the 'logs' (newest first) and the new
        'version'
    """
    dataset = load_dataset(username)
    version = dataset['version'] if expected_version is None else expected_version
    logs = sort_newest_first([entry] + dataset['logs'])
    new_version = save_logs(username, logs, expected_version=version)
    logger.info(f"Logged {entry.get('product')} on {entry.get('usage')} for {username}")
    return {'entry': entry, 'logs': logs, 'version': new_version}


def delete_log_entry(username, entry_id, expected_version=None):
    """Remove an entry by id.

    Raises:
        LookupError: No entry with that id
    """
    dataset = load_dataset(username)
    version = dataset['version'] if expected_version is None else expected_version
    logs = [entry for entry in dataset['logs'] if entry.get('id') != entry_id]
    if len(logs) == len(dataset['logs']):
        raise LookupError(f"Log entry {entry_id} not found")
    new_version = save_logs(username, logs, expected_version=version)
    logger.info(f"Deleted log entry {entry_id} for {username}")
    return {'logs': logs, 'version': new_version}


def admin_edit_log_entry(username, entry_id, changes, expected_version=None):
    """Merge corrected fields into an existing entry.

    Cost and nutrients are taken as given and not recomputed; the id is
    never changed.
    """
    dataset = load_dataset(username)
    version = dataset['version'] if expected_version is None else expected_version
    updated = None
    logs = []
    for entry in dataset['logs']:
        if entry.get('id') == entry_id:
            entry = dict(entry)
            entry.update({k: v for k, v in (changes or {}).items() if k in EDITABLE_FIELDS})
            updated = entry
        logs.append(entry)
    if updated is None:
        raise LookupError(f"Log entry {entry_id} not found")
    logs = sort_newest_first(logs)
    new_version = save_logs(username, logs, expected_version=version)
    logger.info(f"Admin edited log entry {entry_id} for {username}")
    return {'entry': updated, 'logs': logs, 'version': new_version}


# ---------------------------------------------------------------------------
# Views and shortcuts
# ---------------------------------------------------------------------------

def filter_logs(logs, product=''):
    """Entries whose product contains the search text, newest first."""
    needle = (product or '').strip().lower()
    matched = [e for e in logs or [] if needle in str(e.get('product') or '').lower()]
    return sort_newest_first(matched)


def quick_add(username, catalog, product_name, rate, date=None, usage=None):
    """Log a product over its whole zone in one step.

    The area is the tenant's managed area for the zone (the product's own
    zone unless usage is given).
    """
    fertilizer = find_fertilizer(catalog, product_name)
    if fertilizer is None:
        raise LookupError(f"Product '{product_name}' is not in the catalog")
    dataset = load_dataset(username)
    zone = normalize_usage(usage or fertilizer.get('usage'))
    if zone not in ZONES:
        raise ValueError(f"Unknown usage zone '{usage or fertilizer.get('usage')}'")
    area = zone_areas(normalize_settings(dataset['settings']))[zone]
    entry = create_log_entry(fertilizer, date or date_cls.today(), zone, area, rate)
    return add_log_entry(username, entry, expected_version=dataset['version'])

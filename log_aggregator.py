"""
Log aggregation for Turf Fertility Manager.

Derives per-product, per-period, per-zone and per-month nutrient summaries from
a tenant's application log. Every function is a pure fold over the list it is
given: same input, same output, and an empty log gives empty results.

Entries carry the nutrient/cost snapshot taken when they were written, so
nothing here needs the live catalog except the views that explicitly ask for
it (those tolerate products that no longer exist).
"""

import logging
import math

from constants import NUTRIENTS, PRIMARY_NUTRIENTS, ZONES
from nutrient_calculator import has_volume_marker, nutrients_per_m2, _number

logger = logging.getLogger(__name__)

ALL_YEARS = 'all'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cost(entry):
    return _number(entry.get('total_cost')) or 0.0


def _date(entry):
    return str(entry.get('date') or '')


def _matches_year(entry, year):
    if year in (None, '', ALL_YEARS):
        return True
    return _date(entry)[:4] == str(year)


def filter_by_year(logs, year=ALL_YEARS):
    """Entries whose date falls in year ('all' keeps everything)."""
    return [entry for entry in logs or [] if _matches_year(entry, year)]


def amount_applied(entry):
    """Physical product amount for an entry (kg or L).

    Uses the amount stored at write time; entries written before that field
    existed fall back to area x rate / 1000.
    """
    stored = _number(entry.get('amount_applied'))
    if stored is not None:
        return stored
    area = _number(entry.get('area')) or 0.0
    rate = _number(entry.get('application_rate')) or 0.0
    amount = area * rate / 1000.0
    return amount if math.isfinite(amount) else 0.0


def amount_unit(entry):
    """'L' when the entry was applied by volume, 'kg' otherwise."""
    if entry.get('amount_unit') in ('L', 'kg'):
        return entry['amount_unit']
    return 'L' if has_volume_marker(entry.get('application_unit')) else 'kg'


def total_cost(logs):
    return sum(_cost(entry) for entry in logs or [])


def available_years(logs):
    """Distinct years present in the log, newest first."""
    years = {_date(entry)[:4] for entry in logs or [] if len(_date(entry)) >= 4}
    return sorted(years, reverse=True)


def last_activity(logs):
    """Most recent application date, or None for an empty log."""
    dates = [_date(entry) for entry in logs or [] if _date(entry)]
    return max(dates) if dates else None


# ---------------------------------------------------------------------------
# Product statistics
# ---------------------------------------------------------------------------

def product_stats(logs, year=ALL_YEARS):
    """Per-product count, cost and amount applied, highest cost first.

    Returns:
        list of {'product', 'count', 'total_cost', 'total_amount'}
    """
    stats = {}
    for entry in filter_by_year(logs, year):
        name = entry.get('product') or ''
        if name not in stats:
            stats[name] = {'product': name, 'count': 0, 'total_cost': 0.0, 'total_amount': 0.0}
        stats[name]['count'] += 1
        stats[name]['total_cost'] += _cost(entry)
        stats[name]['total_amount'] += amount_applied(entry)
    return sorted(stats.values(), key=lambda s: s['total_cost'], reverse=True)


def most_frequent_products(logs, limit=None, year=ALL_YEARS):
    """Same set as product_stats, ordered by application count."""
    ranked = sorted(product_stats(logs, year), key=lambda s: s['count'], reverse=True)
    return ranked[:limit] if limit else ranked


def usage_stats(logs, year=ALL_YEARS):
    """Annual physical usage per product, largest amount first.

    Returns:
        list of {'product', 'unit', 'total_amount', 'total_cost', 'count'}
    """
    stats = {}
    for entry in filter_by_year(logs, year):
        name = entry.get('product') or ''
        if name not in stats:
            stats[name] = {'product': name, 'unit': amount_unit(entry),
                           'total_amount': 0.0, 'total_cost': 0.0, 'count': 0}
        stats[name]['total_amount'] += amount_applied(entry)
        stats[name]['total_cost'] += _cost(entry)
        stats[name]['count'] += 1
    return sorted(stats.values(), key=lambda s: s['total_amount'], reverse=True)


def zone_stats(logs, year=ALL_YEARS):
    """Cost, count and amount per usage zone (green/tee/fairway)."""
    stats = {zone: {'zone': zone, 'count': 0, 'total_cost': 0.0, 'total_amount': 0.0}
             for zone in ZONES}
    for entry in filter_by_year(logs, year):
        zone = entry.get('usage')
        if zone not in stats:
            continue
        stats[zone]['count'] += 1
        stats[zone]['total_cost'] += _cost(entry)
        stats[zone]['total_amount'] += amount_applied(entry)
    return [stats[zone] for zone in ZONES]


# ---------------------------------------------------------------------------
# Period statistics
# ---------------------------------------------------------------------------

def period_stats(logs, year=ALL_YEARS):
    """Cost bucketed by day, month and year.

    Returns:
        dict with 'daily', 'monthly' and 'yearly' lists of
        {'period', 'cost'} sorted ascending by period
    """
    daily, monthly, yearly = {}, {}, {}
    for entry in filter_by_year(logs, year):
        day = _date(entry)
        if not day:
            continue
        cost = _cost(entry)
        daily[day] = daily.get(day, 0.0) + cost
        monthly[day[:7]] = monthly.get(day[:7], 0.0) + cost
        yearly[day[:4]] = yearly.get(day[:4], 0.0) + cost

    def _series(buckets):
        return [{'period': period, 'cost': buckets[period]} for period in sorted(buckets)]

    return {'daily': _series(daily), 'monthly': _series(monthly), 'yearly': _series(yearly)}


def monthly_cost_by_type(logs, catalog):
    """Monthly cost split by product type, resolved through the current catalog.

    Products missing from the catalog are counted under 'other'.
    """
    types = {fert.get('name'): fert.get('type') or 'other' for fert in catalog or []}
    months = {}
    for entry in logs or []:
        month = _date(entry)[:7]
        if not month:
            continue
        product_type = types.get(entry.get('product'), 'other')
        bucket = months.setdefault(month, {})
        bucket[product_type] = bucket.get(product_type, 0.0) + _cost(entry)
    return [dict(month=month, **months[month]) for month in sorted(months)]


def monthly_cost_by_tenant(summaries, start_date=None, end_date=None):
    """Admin chart: monthly cost per tenant across several tenants.

    Args:
        summaries: list of dicts with 'username' and 'logs'
        start_date, end_date: optional inclusive ISO date bounds
    """
    months = {}
    for summary in summaries or []:
        username = summary.get('username')
        for entry in summary.get('logs') or []:
            day = _date(entry)
            if not day:
                continue
            if start_date and day < start_date:
                continue
            if end_date and day > end_date:
                continue
            bucket = months.setdefault(day[:7], {})
            bucket[username] = bucket.get(username, 0.0) + _cost(entry)
    return [{'month': month, 'costs': months[month]} for month in sorted(months)]


# ---------------------------------------------------------------------------
# Nutrient statistics
# ---------------------------------------------------------------------------

def monthly_nutrients(logs, year, usage=None, nutrients=PRIMARY_NUTRIENTS):
    """Per-m² nutrient actuals for each month of a year.

    Each entry contributes its stored grams divided by its own treated area.
    Entries without a positive area are skipped.

    Returns:
        list of 12 dicts: {'month': 'YYYY-MM', <element>: g/m², ...}
    """
    year = str(year)
    series = [dict({'month': f'{year}-{m:02d}'}, **{n: 0.0 for n in nutrients})
              for m in range(1, 13)]
    for entry in logs or []:
        day = _date(entry)
        if day[:4] != year or len(day) < 7:
            continue
        if usage and entry.get('usage') != usage:
            continue
        area = _number(entry.get('area'))
        if not area or area <= 0:
            continue
        try:
            index = int(day[5:7]) - 1
        except ValueError:
            continue
        if not 0 <= index < 12:
            continue
        stored = entry.get('nutrients') or {}
        for n in nutrients:
            series[index][n] += (_number(stored.get(n)) or 0.0) / area
    return series


def zone_nutrients_per_m2(logs, zone_areas):
    """Element totals per zone divided by the managed area of that zone.

    Zones with no managed area stay at zero.
    """
    sums = {zone: {n: 0.0 for n in NUTRIENTS} for zone in ZONES}
    for entry in logs or []:
        zone = entry.get('usage')
        area = _number((zone_areas or {}).get(zone)) or 0.0
        if zone not in sums or area <= 0:
            continue
        stored = entry.get('nutrients') or {}
        for n in NUTRIENTS:
            grams = _number(stored.get(n))
            if grams:
                sums[zone][n] += grams / area
    return sums


def catalog_nutrients_per_m2(logs, catalog):
    """Re-derive per-m² nutrients for each entry from today's catalog.

    Entries whose product has left the catalog are zero-filled and flagged
    rather than failing the whole view.

    Returns:
        list of {'id', 'product', 'found', 'nutrients'}
    """
    by_name = {fert.get('name'): fert for fert in catalog or []}
    results = []
    for entry in logs or []:
        fert = by_name.get(entry.get('product'))
        if fert is None:
            logger.debug(f"Catalog miss for logged product {entry.get('product')!r}")
            results.append({'id': entry.get('id'), 'product': entry.get('product'),
                            'found': False, 'nutrients': {n: 0.0 for n in NUTRIENTS}})
            continue
        results.append({'id': entry.get('id'), 'product': entry.get('product'), 'found': True,
                        'nutrients': nutrients_per_m2(fert, entry.get('application_rate'))})
    return results

"""
Guideline comparison for Turf Fertility Manager.

Lines a year of actual monthly N/P/K applications (g/m²) up against the
reference plan: either a guideline's annual total split by its monthly
distribution curve, or the tenant's manual monthly target table. Unknown
guideline keys never raise; they resolve to the default guideline.
"""

import logging

from constants import DEFAULT_GUIDELINE, GUIDELINES, MONTHLY_DISTRIBUTION, PRIMARY_NUTRIENTS
from log_aggregator import monthly_nutrients
from user_settings import MONTHS, guideline_for_zone, normalize_targets

logger = logging.getLogger(__name__)

UNIFORM_SHARE = 1.0 / MONTHS

SERIES_KEYS = ('actual_n', 'actual_p', 'actual_k', 'guide_n', 'guide_p', 'guide_k')


# ---------------------------------------------------------------------------
# Reference plan
# ---------------------------------------------------------------------------

def resolve_guideline(key):
    """Annual guideline for key, or the default guideline when unknown."""
    if key in GUIDELINES:
        return GUIDELINES[key]
    logger.warning(f"Unknown guideline {key!r}, using {DEFAULT_GUIDELINE}")
    return GUIDELINES[DEFAULT_GUIDELINE]


def resolve_distribution(key):
    """Twelve monthly shares per nutrient for key.

    Falls back to the default guideline's curve, and to an even 1/12 share
    for any nutrient curve that is missing or not twelve months long.
    """
    curves = MONTHLY_DISTRIBUTION.get(key) or MONTHLY_DISTRIBUTION.get(DEFAULT_GUIDELINE) or {}
    distribution = {}
    for n in PRIMARY_NUTRIENTS:
        curve = curves.get(n)
        if not curve or len(curve) != MONTHS:
            curve = [UNIFORM_SHARE] * MONTHS
        distribution[n] = list(curve)
    return distribution


def monthly_targets(settings, usage=None):
    """Twelve {N, P, K} monthly targets in g/m² for a zone.

    Manual plan mode uses the tenant's table for the zone (green when no
    zone is selected); otherwise the guideline total times its curve.
    """
    settings = settings or {}
    if settings.get('manual_plan_mode'):
        targets = normalize_targets(settings.get('manual_targets'))
        return [dict(month) for month in targets[usage if usage in targets else 'green']]

    key = guideline_for_zone(settings, usage)
    guideline = resolve_guideline(key)
    distribution = resolve_distribution(key)
    return [
        {n: float(guideline.get(n, 0.0)) * distribution[n][i] for n in PRIMARY_NUTRIENTS}
        for i in range(MONTHS)
    ]


# ---------------------------------------------------------------------------
# Comparison series
# ---------------------------------------------------------------------------

def running_totals(series, keys=SERIES_KEYS):
    """Replace each key with its running total through that month.

    Keys are summed independently; other fields are copied unchanged.
    """
    running = {key: 0.0 for key in keys}
    result = []
    for point in series:
        point = dict(point)
        for key in keys:
            running[key] += point.get(key) or 0.0
            point[key] = round(running[key], 2)
        result.append(point)
    return result


cumulative = running_totals


def compare_with_guideline(logs, settings, year, usage=None, cumulative=False):
    """Actual vs. reference N/P/K for each month of year.

    Args:
        logs: Application log entries
        settings: Tenant settings dict
        year: Four-digit year
        usage: Optional zone filter
        cumulative: Return running totals instead of monthly values

    Returns:
        list of 12 dicts: {'month', 'actual_n', 'actual_p', 'actual_k',
        'guide_n', 'guide_p', 'guide_k'} rounded to 2 decimals
    """
    actuals = monthly_nutrients(logs, year, usage=usage)
    targets = monthly_targets(settings, usage)

    series = []
    for actual, target in zip(actuals, targets):
        series.append({
            'month': actual['month'],
            'actual_n': round(actual['N'], 2),
            'actual_p': round(actual['P'], 2),
            'actual_k': round(actual['K'], 2),
            'guide_n': round(target['N'], 2),
            'guide_p': round(target['P'], 2),
            'guide_k': round(target['K'], 2),
        })
    return running_totals(series) if cumulative else series


def variance(series):
    """Per-month actual minus guide for N, P and K."""
    return [
        {
            'month': point.get('month'),
            'N': round((point.get('actual_n') or 0.0) - (point.get('guide_n') or 0.0), 2),
            'P': round((point.get('actual_p') or 0.0) - (point.get('guide_p') or 0.0), 2),
            'K': round((point.get('actual_k') or 0.0) - (point.get('guide_k') or 0.0), 2),
        }
        for point in series
    ]

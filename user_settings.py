"""
Per-tenant settings for Turf Fertility Manager.

Zone areas, the chosen reference guideline and the optional manual monthly
target plan. Settings are stored as a dict inside the tenant dataset; this
module normalizes whatever shape was stored (including the legacy camelCase
layout) into the current one.
"""

import logging

from constants import DEFAULT_GUIDELINE, PRIMARY_NUTRIENTS, ZONES
from nutrient_calculator import parse_leading_number

logger = logging.getLogger(__name__)

MONTHS = 12

_LEGACY_KEYS = {
    'greenArea': 'green_area',
    'teeArea': 'tee_area',
    'fairwayArea': 'fairway_area',
    'selectedGuide': 'selected_guide',
    'fairwayGuideType': 'fairway_guide',
    'manualPlanMode': 'manual_plan_mode',
    'manualTargets': 'manual_targets',
}


def _zero_month():
    return {n: 0.0 for n in PRIMARY_NUTRIENTS}


def empty_targets():
    """Twelve zeroed {N, P, K} months per zone."""
    return {zone: [_zero_month() for _ in range(MONTHS)] for zone in ZONES}


def default_settings():
    return {
        'green_area': '',
        'tee_area': '',
        'fairway_area': '',
        'selected_guide': DEFAULT_GUIDELINE,
        'fairway_guide': None,
        'manual_plan_mode': False,
        'manual_targets': empty_targets(),
    }


def _normalize_month(raw):
    month = _zero_month()
    if isinstance(raw, dict):
        for n in PRIMARY_NUTRIENTS:
            value = parse_leading_number(raw.get(n))
            month[n] = value if value is not None and value >= 0 else 0.0
    return month


def _normalize_plan(raw):
    months = [_normalize_month(m) for m in (raw or [])[:MONTHS]]
    months.extend(_zero_month() for _ in range(MONTHS - len(months)))
    return months


def normalize_targets(raw):
    """Coerce a stored manual plan into {zone: [12 x {N, P, K}]}.

    A bare list is the single-plan layout from before zones had their own
    targets; it becomes the green plan.
    """
    targets = empty_targets()
    if isinstance(raw, list):
        logger.info("Migrating list-shaped manual targets to the green zone")
        targets['green'] = _normalize_plan(raw)
    elif isinstance(raw, dict):
        for zone in ZONES:
            if isinstance(raw.get(zone), list):
                targets[zone] = _normalize_plan(raw[zone])
    return targets


def normalize_settings(raw):
    """Return a complete settings dict from stored (possibly legacy) data."""
    settings = default_settings()
    if not isinstance(raw, dict):
        return settings

    data = {_LEGACY_KEYS.get(key, key): value for key, value in raw.items()}
    for key in ('green_area', 'tee_area', 'fairway_area'):
        if data.get(key) is not None:
            settings[key] = str(data[key])
    if data.get('selected_guide'):
        settings['selected_guide'] = str(data['selected_guide'])
    if data.get('fairway_guide'):
        settings['fairway_guide'] = str(data['fairway_guide'])
    settings['manual_plan_mode'] = bool(data.get('manual_plan_mode', False))
    settings['manual_targets'] = normalize_targets(data.get('manual_targets'))
    return settings


def zone_areas(settings):
    """Managed area per zone in m²; unparseable values read as 0."""
    settings = settings or {}
    areas = {}
    for zone in ZONES:
        value = parse_leading_number(settings.get(f'{zone}_area'))
        areas[zone] = value if value is not None and value > 0 else 0.0
    return areas


def total_area(settings):
    return sum(zone_areas(settings).values())


def guideline_for_zone(settings, usage=None):
    """Guideline key in force for a zone (fairways may use their own)."""
    settings = settings or {}
    if usage == 'fairway' and settings.get('fairway_guide'):
        return settings['fairway_guide']
    return settings.get('selected_guide') or DEFAULT_GUIDELINE

"""
Nutrient and cost calculator for Turf Fertility Manager.

Converts a fertilizer definition plus an application rate and treated area into
the elemental nutrient mass delivered and a cost estimate. Pure calculation
logic -- no database access, no I/O. Bad numeric input never raises; it
produces a zeroed result instead.
"""

import logging
import math
import re

from constants import NUTRIENTS, LIQUID_TYPES, LIQUID_RATE_UNIT, SOLID_RATE_UNIT

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GRAMS_PER_KG = 1000.0
ML_PER_LITER = 1000.0
DEFAULT_DENSITY = 1.0  # kg/L, water

_NUMBER_RE = re.compile(r'-?[0-9]+(?:\.[0-9]+)?')
_MILLILITER_RE = re.compile(r'(?:^|[0-9.\s])ml(?![a-z])', re.IGNORECASE)
_VOLUME_RE = re.compile(r'(?:^|[0-9.\s])(?:ml|l|liters?|litres?)(?![a-z])', re.IGNORECASE)
_GRAM_RE = re.compile(r'(?:^|[0-9.\s])g(?![a-z])', re.IGNORECASE)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _number(value):
    """Return value as a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _percentage(value):
    """Percent field clamped to [0, 100]; missing or junk reads as 0."""
    number = _number(value)
    if number is None:
        return 0.0
    return min(max(number, 0.0), 100.0)


def _density(fertilizer):
    density = _number(fertilizer.get('density'))
    if density is None or density <= 0:
        return DEFAULT_DENSITY
    return density


def parse_leading_number(text):
    """Extract the leading numeric magnitude from a descriptor.

    "20kg" -> 20.0, "2.5 L" -> 2.5, "15g/㎡" -> 15.0. Plain numbers pass
    through. Returns None when no number can be found.
    """
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return float(text) if math.isfinite(text) else None
    if not text:
        return None
    match = _NUMBER_RE.search(str(text).replace(',', ''))
    if not match:
        return None
    return float(match.group(0))


def has_volume_marker(descriptor):
    """True if a unit/rate descriptor is expressed in ml or L."""
    if not descriptor:
        return False
    return bool(_VOLUME_RE.search(str(descriptor).strip()))


def is_liquid(fertilizer):
    """Decide whether a product is applied by volume.

    Liquid when the declared type is the liquid category, or the package unit
    or recommended rate is written in ml/L.
    """
    if not fertilizer:
        return False
    product_type = str(fertilizer.get('type') or '').strip().lower()
    if product_type in LIQUID_TYPES:
        return True
    return has_volume_marker(fertilizer.get('unit')) or has_volume_marker(fertilizer.get('rate'))


def application_unit(fertilizer):
    """Rate unit label for a product: ml/㎡ for liquids, g/㎡ otherwise."""
    return LIQUID_RATE_UNIT if is_liquid(fertilizer) else SOLID_RATE_UNIT


def zero_nutrients():
    return {element: 0.0 for element in NUTRIENTS}


def _zero_result(liquid=False):
    return {
        'nutrients': zero_nutrients(),
        'total_cost': 0.0,
        'total_mass_g': 0.0,
        'is_liquid': liquid,
    }


# ---------------------------------------------------------------------------
# Calculation engine
# ---------------------------------------------------------------------------

def package_weight_kg(fertilizer):
    """Weight of one package in kilograms, or None if it cannot be priced.

    Liquid packages are converted through density; ml and g packages are
    scaled down to L and kg first.
    """
    unit = str(fertilizer.get('unit') or '')
    size = parse_leading_number(unit)
    if size is None or size <= 0:
        return None

    if _MILLILITER_RE.search(unit):
        weight = (size / ML_PER_LITER) * _density(fertilizer)
    elif has_volume_marker(unit):
        weight = size * _density(fertilizer)
    elif _GRAM_RE.search(unit):
        weight = size / GRAMS_PER_KG
    else:
        weight = size

    if not math.isfinite(weight) or weight <= 0:
        return None
    return weight


def calculate_cost(fertilizer, total_mass_g):
    """Cost of applying total_mass_g grams of product.

    Returns 0 when the package size is missing or unusable.
    """
    weight_kg = package_weight_kg(fertilizer)
    if weight_kg is None:
        return 0.0

    price = max(_number(fertilizer.get('price')) or 0.0, 0.0)
    cost_per_kg = price / weight_kg
    total = (total_mass_g / GRAMS_PER_KG) * cost_per_kg
    if not math.isfinite(total) or total < 0:
        return 0.0
    return total


def compute_application(fertilizer, area_m2, rate_per_m2):
    """Calculate nutrients delivered and cost for one application.

    Args:
        fertilizer: Fertilizer dict (may be None when no product is selected)
        area_m2: Treated area in square metres
        rate_per_m2: Application rate, g/㎡ for solids or ml/㎡ for liquids

    Returns:
        dict with 'nutrients' (element -> grams over the whole area, 3 dp),
        'total_cost', 'total_mass_g' and 'is_liquid'. Invalid input yields
        the all-zero result.
    """
    if not fertilizer:
        return _zero_result()

    area = _number(area_m2)
    rate = _number(rate_per_m2)
    if area is None or rate is None or area <= 0 or rate < 0:
        return _zero_result(is_liquid(fertilizer))

    liquid = is_liquid(fertilizer)

    # Step 1: total product mass in grams
    if liquid:
        total_mass = rate * area * _density(fertilizer)
    else:
        total_mass = rate * area
    if not math.isfinite(total_mass):
        logger.warning(f"Non-finite applied mass for {fertilizer.get('name')!r}; returning zeros")
        return _zero_result(liquid)

    # Step 2: nutrient carrier mass (diluted concentrates)
    concentration = _percentage(fertilizer.get('concentration'))
    if liquid and concentration > 0:
        carrier_mass = total_mass * (concentration / 100.0)
    else:
        carrier_mass = total_mass

    # Step 3: elemental grams
    nutrients = {}
    for element in NUTRIENTS:
        grams = carrier_mass * (_percentage(fertilizer.get(element)) / 100.0)
        nutrients[element] = round(grams, 3) if math.isfinite(grams) else 0.0

    return {
        'nutrients': nutrients,
        'total_cost': calculate_cost(fertilizer, total_mass),
        'total_mass_g': total_mass,
        'is_liquid': liquid,
    }


def nutrients_per_m2(fertilizer, rate_per_m2):
    """Nutrient grams delivered to one square metre at the given rate."""
    return compute_application(fertilizer, 1, rate_per_m2)['nutrients']


def element_grams_per_unit(fertilizer, element):
    """Unrounded grams of element per m² for one unit of rate (1 g or 1 ml)."""
    if not fertilizer:
        return 0.0
    carrier = 1.0
    if is_liquid(fertilizer):
        carrier = _density(fertilizer)
        concentration = _percentage(fertilizer.get('concentration'))
        if concentration > 0:
            carrier *= concentration / 100.0
    return carrier * (_percentage(fertilizer.get(element)) / 100.0)


def product_amount(fertilizer, area_m2, rate_per_m2):
    """Physical product used: kg for solids, L for liquids.

    Returns:
        (amount, unit) tuple; (0.0, unit) for invalid input
    """
    unit = 'L' if is_liquid(fertilizer) else 'kg'
    area = _number(area_m2)
    rate = _number(rate_per_m2)
    if area is None or rate is None or area <= 0 or rate < 0:
        return 0.0, unit
    amount = (area * rate) / 1000.0
    return (amount if math.isfinite(amount) else 0.0), unit

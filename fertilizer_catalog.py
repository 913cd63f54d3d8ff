"""
Fertilizer catalog module for Turf Fertility Manager.
Handles fertilizer record normalization, validation, cost analysis, rate
helpers, catalog filtering/sorting, and admin bulk edits.

Catalogs are plain lists of fertilizer dicts; persistence lives in
tenant_store.
"""

import logging
import math

from constants import (
    NUTRIENTS, ZONES, ZONE_ALIASES, FERTILIZER_TYPE_ALIASES,
    LIQUID_RATE_UNIT, SOLID_RATE_UNIT,
)
from nutrient_calculator import (
    element_grams_per_unit, has_volume_marker, is_liquid, nutrients_per_m2, package_weight_kg,
    parse_leading_number, _density, _number,
)

logger = logging.getLogger(__name__)

# Legacy camelCase keys -> current keys
_KEY_ALIASES = {
    'aminoAcid': 'amino_acid',
    'npkRatio': 'npk_ratio',
    'lowStockAlertEnabled': 'low_stock_alert_enabled',
    'imageUrl': 'image_url',
}

PERCENTAGE_FIELDS = NUTRIENTS + ['amino_acid', 'concentration']
GENERAL_NUMERIC_FIELDS = ['price', 'stock']
MAX_DENSITY = 5.0

BULK_TARGETS = ('price', 'stock', 'low_stock_alert_enabled')
BULK_OPERATIONS = ('set', 'add', 'subtract', 'percent_increase', 'percent_decrease')


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_usage(usage):
    """Map a usage label (any supported spelling) to a zone key, or None."""
    if usage is None:
        return None
    return ZONE_ALIASES.get(str(usage).strip().lower())


def normalize_type(product_type):
    if not product_type:
        return 'other'
    label = str(product_type).strip()
    return FERTILIZER_TYPE_ALIASES.get(label, label.lower())


def _to_float(value, default=0.0):
    number = _number(value)
    return default if number is None else number


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def normalize_fertilizer(raw):
    """Return a clean fertilizer dict from raw/legacy input.

    Missing nutrient fields become 0, stock defaults to 0 and the low-stock
    flag to False. Optional density/concentration stay None when absent.
    """
    data = {}
    for key, value in (raw or {}).items():
        data[_KEY_ALIASES.get(key, key)] = value

    fert = {
        'name': str(data.get('name') or '').strip(),
        'usage': normalize_usage(data.get('usage')) or 'green',
        'type': normalize_type(data.get('type')),
        'price': _to_float(data.get('price')),
        'unit': str(data.get('unit') or '').strip(),
        'rate': str(data.get('rate') or '').strip(),
        'stock': _to_float(data.get('stock')),
        'low_stock_alert_enabled': _to_bool(data.get('low_stock_alert_enabled', False)),
        'description': data.get('description') or '',
    }
    for element in NUTRIENTS:
        fert[element] = _to_float(data.get(element))
    fert['amino_acid'] = _to_float(data.get('amino_acid'))

    for optional in ('density', 'concentration'):
        number = _number(data.get(optional))
        fert[optional] = number if number is not None and number > 0 else None

    if data.get('image_url'):
        fert['image_url'] = data['image_url']

    fert['npk_ratio'] = npk_ratio(fert['N'], fert['P'], fert['K'])
    return fert


def normalize_catalog(items):
    return [normalize_fertilizer(item) for item in (items or [])]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_blank(value):
    return value is None or str(value).strip() == ''


def validate_fertilizer(form, existing=(), editing_name=None):
    """Validate a fertilizer form.

    Args:
        form: Raw form dict
        existing: Current catalog, for the unique-name check
        editing_name: Name of the record being edited (allowed to keep its name)

    Returns:
        dict of field -> error message (empty when valid)
    """
    errors = {}
    name = str(form.get('name') or '').strip()
    if not name:
        errors['name'] = 'Product name is required.'
    elif any(f.get('name') == name and name != editing_name for f in existing):
        errors['name'] = 'A product with this name already exists.'

    if _is_blank(form.get('unit')):
        errors['unit'] = 'Package unit is required.'

    if not _is_blank(form.get('usage')) and normalize_usage(form.get('usage')) is None:
        errors['usage'] = f"Usage must be one of {', '.join(ZONES)}."

    for field in GENERAL_NUMERIC_FIELDS:
        value = form.get(field)
        if not _is_blank(value):
            number = _number(value)
            if number is None or number < 0:
                errors[field] = 'Must be a number of 0 or more.'

    for field in PERCENTAGE_FIELDS:
        value = form.get(field)
        if not _is_blank(value):
            number = _number(value)
            if number is None or number < 0 or number > 100:
                errors[field] = 'Value must be between 0 and 100.'

    density = form.get('density')
    if not _is_blank(density):
        number = _number(density)
        if number is None or number <= 0:
            errors['density'] = 'Density must be greater than 0.'
        elif number > MAX_DENSITY:
            errors['density'] = f'Density is too high (usually {MAX_DENSITY:g} or less).'

    return errors


def upsert_fertilizer(catalog, form, editing_name=None):
    """Validate and insert/replace a fertilizer. Returns the new catalog list.

    Raises ValueError with the error dict when validation fails.
    """
    errors = validate_fertilizer(form, catalog, editing_name)
    if errors:
        raise ValueError(errors)

    fert = normalize_fertilizer(form)
    updated = []
    replaced = False
    for item in catalog:
        if editing_name is not None and item.get('name') == editing_name:
            merged = dict(item)
            merged.update(fert)
            updated.append(merged)
            replaced = True
        else:
            updated.append(item)
    if not replaced:
        updated.append(fert)
    return updated


# ---------------------------------------------------------------------------
# Ratios, cost and rate helpers
# ---------------------------------------------------------------------------

def npk_ratio(n, p, k):
    """Reduce an N-P-K analysis to its simplest ratio ("16-2-12" -> "8-1-6").

    Works to one decimal place. Returns '' for all-zero or invalid input.
    """
    values = [_number(v) for v in (n, p, k)]
    if any(v is None or v < 0 for v in values) or all(v == 0 for v in values):
        return ''
    scaled = [int(round(v * 10)) for v in values]
    divisor = 0
    for v in scaled:
        divisor = math.gcd(divisor, v)
    if divisor == 0:
        return '-'.join(f'{v:g}' for v in values)
    return '-'.join(f'{v // divisor}' for v in scaled)


def cost_analysis(fertilizer):
    """Unit economics of a product.

    Returns:
        dict with 'per_unit' (price per kg or per L of package), 'unit_type'
        ('kg' or 'l'), 'per_kg' (per kg of product mass) and 'per_n',
        'per_p', 'per_k' (price per gram of element). All 0 when the
        package cannot be priced.
    """
    result = {'per_unit': 0.0, 'unit_type': 'kg', 'per_kg': 0.0,
              'per_n': 0.0, 'per_p': 0.0, 'per_k': 0.0}
    price = _to_float(fertilizer.get('price'))
    weight_kg = package_weight_kg(fertilizer)
    if not price or weight_kg is None:
        return result

    per_kg = price / weight_kg
    result['per_kg'] = per_kg
    if has_volume_marker(fertilizer.get('unit')):
        # Package weight came from litres x density
        result['unit_type'] = 'l'
        result['per_unit'] = per_kg * _density(fertilizer)
    else:
        result['per_unit'] = per_kg

    for element, key in (('N', 'per_n'), ('P', 'per_p'), ('K', 'per_k')):
        pct = _to_float(fertilizer.get(element))
        # 1 kg of product holds pct * 10 grams of the element
        result[key] = per_kg / (pct * 10) if pct > 0 else 0.0
    return result


def recommended_rate(fertilizer):
    """Numeric value of the recommended rate descriptor, 0 if unparseable."""
    return parse_leading_number(fertilizer.get('rate')) or 0.0


def application_analysis(fertilizer):
    """Nutrients per m² at the product's recommended rate, or None."""
    rate = recommended_rate(fertilizer)
    if rate <= 0:
        return None
    per_m2 = nutrients_per_m2(fertilizer, rate)
    return {
        'rate': rate,
        'unit': LIQUID_RATE_UNIT if is_liquid(fertilizer) else SOLID_RATE_UNIT,
        'nutrients': per_m2,
    }


def rate_for_target(fertilizer, nutrient, target_g_per_m2):
    """Product rate (g/㎡ or ml/㎡) that delivers target grams of nutrient per m².

    Returns None when the product carries none of the nutrient or the target
    is not positive.
    """
    target = _number(target_g_per_m2)
    pct = _number(fertilizer.get(nutrient))
    if target is None or target <= 0 or pct is None or pct <= 0:
        return None
    per_unit = element_grams_per_unit(fertilizer, nutrient)
    if per_unit <= 0:
        return None
    return round(target / per_unit, 2)


# ---------------------------------------------------------------------------
# Catalog views
# ---------------------------------------------------------------------------

def find_fertilizer(catalog, name):
    """Look up a product by name. Returns None on a miss."""
    for fert in catalog or []:
        if fert.get('name') == name:
            return fert
    return None


def resolve_catalog(tenant_fertilizers, master_fertilizers):
    """A tenant sees its own list, or the shared admin list when it has none."""
    if tenant_fertilizers:
        return tenant_fertilizers
    return master_fertilizers or []


def group_by_usage(fertilizers, search=''):
    groups = {zone: [] for zone in ZONES}
    groups['other'] = []
    term = (search or '').lower()
    for fert in fertilizers:
        if term and term not in str(fert.get('name', '')).lower():
            continue
        groups.get(fert.get('usage'), groups['other']).append(fert)
    return groups


def filter_fertilizers(fertilizers, name='', usage='', product_type='',
                       min_n=None, min_p=None, min_k=None):
    """Filter the admin catalog table."""
    name = (name or '').lower()
    minimums = {'N': _to_float(min_n), 'P': _to_float(min_p), 'K': _to_float(min_k)}
    results = []
    for fert in fertilizers:
        if name and name not in str(fert.get('name', '')).lower():
            continue
        if usage and fert.get('usage') != usage:
            continue
        if product_type and fert.get('type') != product_type:
            continue
        if any(_to_float(fert.get(k)) < v for k, v in minimums.items()):
            continue
        results.append(fert)
    return results


def sort_fertilizers(fertilizers, key='name', descending=False):
    """Sort by a field; records missing the field always sort last."""
    present = [f for f in fertilizers if f.get(key) is not None]
    missing = [f for f in fertilizers if f.get(key) is None]

    def sort_key(fert):
        value = fert.get(key)
        if isinstance(value, str):
            return (1, value.lower())
        return (0, value)

    present.sort(key=sort_key, reverse=descending)
    return present + missing


def bulk_update(fertilizers, names, target, operation, value):
    """Apply one edit to every selected product.

    Args:
        fertilizers: Catalog list
        names: Iterable of product names to edit
        target: 'price', 'stock' or 'low_stock_alert_enabled'
        operation: One of BULK_OPERATIONS (ignored for the alert flag)
        value: New value / delta / percentage

    Returns:
        New catalog list (input is not modified)
    """
    if target not in BULK_TARGETS:
        raise ValueError(f"Unsupported bulk edit target: {target}")
    selected = set(names or [])

    if target == 'low_stock_alert_enabled':
        if str(value).lower() not in ('true', 'false') and not isinstance(value, bool):
            raise ValueError("Alert setting must be true or false")
        flag = value if isinstance(value, bool) else str(value).lower() == 'true'
        return [dict(f, low_stock_alert_enabled=flag) if f.get('name') in selected else f
                for f in fertilizers]

    if operation not in BULK_OPERATIONS:
        raise ValueError(f"Unsupported bulk edit operation: {operation}")
    amount = _number(value)
    if amount is None:
        raise ValueError("Enter a valid number")

    updated = []
    for fert in fertilizers:
        if fert.get('name') not in selected:
            updated.append(fert)
            continue
        current = _to_float(fert.get(target))
        if operation == 'set':
            current = amount
        elif operation == 'add':
            current += amount
        elif operation == 'subtract':
            current -= amount
        elif operation == 'percent_increase' and target == 'price':
            current *= (1 + amount / 100)
        elif operation == 'percent_decrease' and target == 'price':
            current *= (1 - amount / 100)

        final = round(current) if target == 'price' else round(current, 2)
        updated.append(dict(fert, **{target: max(final, 0)}))

    logger.info(f"Bulk edit {target}/{operation} applied to {len(selected)} products")
    return updated

"""
Constants and static data for the Turf Fertility Manager application.
Centralizes usage zones, nutrient keys, product categories, and the reference
fertilization guidelines with their monthly distribution curves.
"""

# Usage zones (turf area categories)
ZONES = ['green', 'tee', 'fairway']

# Legacy labels found in imported data
ZONE_ALIASES = {
    'green': 'green', 'greens': 'green', '그린': 'green', '그린용': 'green',
    'tee': 'tee', 'tees': 'tee', '티': 'tee',
    'fairway': 'fairway', 'fairways': 'fairway', '페어웨이': 'fairway',
    '티/페어웨이용': 'fairway',
}

# The eighteen tracked elements, percent by weight on the label
NUTRIENTS = [
    'N', 'P', 'K', 'Ca', 'Mg', 'S', 'Fe', 'Mn', 'Zn',
    'Cu', 'B', 'Mo', 'Cl', 'Na', 'Si', 'Ni', 'Co', 'V',
]

PRIMARY_NUTRIENTS = ['N', 'P', 'K']

# Product categories (free-form on the record, these are the known ones)
FERTILIZER_TYPES = [
    'slow-release', 'liquid', 'water-soluble', 'organic',
    'soil-amendment', 'functional', 'other',
]

FERTILIZER_TYPE_ALIASES = {
    '완효성': 'slow-release', '완효성 비료': 'slow-release',
    '액상': 'liquid', '액상 비료': 'liquid',
    '수용성': 'water-soluble', '수용성 비료': 'water-soluble',
    '유기질': 'organic', '유기질 비료': 'organic',
    '토양개량제': 'soil-amendment',
    '기능성제제': 'functional',
    '기타': 'other',
}

LIQUID_TYPES = ('liquid', '액상')

LIQUID_RATE_UNIT = 'ml/㎡'
SOLID_RATE_UNIT = 'g/㎡'

# ---------------------------------------------------------------------------
# Reference guidelines
# ---------------------------------------------------------------------------

# Annual totals in grams of element per square metre per year
GUIDELINES = {
    'cool_season_bentgrass': {
        'label': 'Cool-season (creeping bentgrass)',
        'N': 15.0, 'P': 4.0, 'K': 12.0,
    },
    'cool_season_kbg': {
        'label': 'Cool-season (Kentucky bluegrass)',
        'N': 12.0, 'P': 4.0, 'K': 10.0,
    },
    'warm_season_zoysia': {
        'label': 'Warm-season (zoysiagrass)',
        'N': 8.0, 'P': 3.0, 'K': 6.0,
    },
    'warm_season_bermuda': {
        'label': 'Warm-season (bermudagrass)',
        'N': 20.0, 'P': 5.0, 'K': 15.0,
    },
}

DEFAULT_GUIDELINE = 'cool_season_bentgrass'

_COOL_SEASON = {
    'N': [0.0, 0.02, 0.08, 0.12, 0.12, 0.08, 0.05, 0.05, 0.15, 0.18, 0.12, 0.03],
    'P': [0.0, 0.0, 0.15, 0.15, 0.10, 0.05, 0.05, 0.05, 0.20, 0.20, 0.05, 0.0],
    'K': [0.0, 0.02, 0.08, 0.10, 0.10, 0.10, 0.10, 0.10, 0.12, 0.15, 0.10, 0.03],
}

_WARM_SEASON = {
    'N': [0.0, 0.0, 0.05, 0.10, 0.15, 0.18, 0.18, 0.15, 0.12, 0.07, 0.0, 0.0],
    'P': [0.0, 0.0, 0.10, 0.15, 0.15, 0.15, 0.10, 0.10, 0.15, 0.10, 0.0, 0.0],
    'K': [0.0, 0.0, 0.05, 0.10, 0.12, 0.15, 0.15, 0.15, 0.15, 0.13, 0.0, 0.0],
}

# Share of the annual total applied in each month, indexed 0 (Jan) to 11 (Dec)
MONTHLY_DISTRIBUTION = {
    'cool_season_bentgrass': _COOL_SEASON,
    'cool_season_kbg': _COOL_SEASON,
    'warm_season_zoysia': _WARM_SEASON,
    'warm_season_bermuda': _WARM_SEASON,
}

# Default notification settings for a new tenant
DEFAULT_NOTIFICATION_SETTINGS = {'enabled': False, 'email': '', 'threshold': 10}

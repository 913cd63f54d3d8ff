"""
AI features for Turf Fertility Manager.

- Fertilization recommendations: summarizes the tenant's program (zone areas,
  guideline, monthly actual-vs-goal trend, most used products) into a prompt,
  and parses the optional JSON action block from the reply into a prefilled
  log form.
- TurfBot chat assistant.
- Admin catalog helper that extracts a fertilizer record from free text.

All calls go through OpenAI chat completions. The model's reply is untrusted:
a missing, malformed or incomplete action block just means no action.
"""

import json
import logging
import re
from datetime import date

import openai

from config import Config
from fertilizer_catalog import find_fertilizer, normalize_fertilizer, normalize_usage
from guideline_comparator import compare_with_guideline, resolve_guideline
from log_aggregator import most_frequent_products
from nutrient_calculator import application_unit, compute_application, parse_leading_number, _number
from prompts import (
    ADVISOR_SYSTEM_PROMPT, CHAT_ERROR_MESSAGE, CHAT_SYSTEM_PROMPT, EXTRACTION_PROMPT,
    RECOMMENDATION_ERROR_MESSAGE, RECOMMENDATION_PROMPT,
)
from user_settings import guideline_for_zone, zone_areas

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r'```json\s*(\{[\s\S]*?\})\s*```')
_BARE_ACTION_RE = re.compile(r'(\{[\s\S]*"productName"[\s\S]*\})')
_ANY_OBJECT_RE = re.compile(r'(\{[\s\S]*\})')

TOP_PRODUCTS = 5
MAX_HISTORY_TURNS = 20

_openai_client = None


def get_client():
    """Shared OpenAI client, created on first use."""
    global _openai_client
    if _openai_client is None:
        _openai_client = openai.OpenAI(api_key=Config.OPENAI_API_KEY)
    return _openai_client


def _complete(messages, max_tokens=None, temperature=None):
    response = get_client().chat.completions.create(
        model=Config.CHAT_MODEL,
        messages=messages,
        max_tokens=max_tokens or Config.CHAT_MAX_TOKENS,
        temperature=Config.CHAT_TEMPERATURE if temperature is None else temperature,
        timeout=Config.AI_TIMEOUT,
    )
    return (response.choices[0].message.content or '').strip()


# ---------------------------------------------------------------------------
# Recommendation prompt
# ---------------------------------------------------------------------------

def _format_trend(comparison):
    lines = []
    for point in comparison:
        lines.append(
            f"- {point['month']}: N({point['actual_n']})/P({point['actual_p']})/K({point['actual_k']}) "
            f"vs goal N({point['guide_n']})/P({point['guide_p']})/K({point['guide_k']})"
        )
    return '\n'.join(lines) or '- no applications logged'


def build_recommendation_prompt(settings, comparison, logs, fertilizers):
    """Serialize the tenant's program into the recommendation prompt."""
    areas = zone_areas(settings)
    guideline = resolve_guideline(guideline_for_zone(settings))
    top = most_frequent_products(logs, limit=TOP_PRODUCTS)
    return RECOMMENDATION_PROMPT.format(
        green_area=f"{areas['green']:g}",
        tee_area=f"{areas['tee']:g}",
        fairway_area=f"{areas['fairway']:g}",
        guideline=guideline.get('label', ''),
        monthly_trend=_format_trend(comparison),
        top_products=', '.join(f"{p['product']} ({p['count']}x)" for p in top) or 'none',
        available_products=', '.join(f['name'] for f in fertilizers or []) or 'none',
    )


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

def _validate_action(data):
    """Return a clean action dict, or None when required fields are unusable."""
    if not isinstance(data, dict):
        return None
    name = data.get('productName')
    if not isinstance(name, str) or not name.strip():
        return None
    rate = data.get('rate')
    # "20g/㎡" style strings are accepted too
    rate = parse_leading_number(rate) if isinstance(rate, str) else _number(rate)
    if rate is None or rate < 0:
        return None
    return {
        'product_name': name.strip(),
        'target_area': normalize_usage(data.get('targetArea')),
        'rate': rate,
        'reason': str(data.get('reason') or ''),
    }


def parse_recommendation(text):
    """Split a model reply into display text and an optional action.

    Returns:
        (clean_text, action) where action is None when the reply carries no
        usable JSON block
    """
    if not text:
        return '', None

    match = _FENCED_JSON_RE.search(text)
    if not match:
        match = _BARE_ACTION_RE.search(text)
    if not match:
        return text.strip(), None

    try:
        data = json.loads(match.group(1))
    except ValueError:
        logger.warning("AI reply contained an unparseable action block")
        return text.strip(), None

    action = _validate_action(data)
    if action is None:
        logger.warning("AI action block is missing required fields")
        return text.strip(), None
    clean = (text[:match.start()] + text[match.end():]).strip()
    return clean, action


def action_to_log_form(action, fertilizers, settings, today=None):
    """Prefilled log form for an AI action, or None if the product isn't on hand."""
    if not action:
        return None
    fert = find_fertilizer(fertilizers, action.get('product_name'))
    if fert is None:
        logger.info(f"Recommended product {action.get('product_name')!r} not in catalog")
        return None
    zone = action.get('target_area') or fert.get('usage')
    area = zone_areas(settings).get(zone, 0.0)
    return {
        'date': (today or date.today()).isoformat(),
        'product': fert['name'],
        'usage': zone,
        'area': area,
        'application_rate': action['rate'],
        'application_unit': application_unit(fert),
        'reason': action.get('reason', ''),
        'preview': compute_application(fert, area, action['rate']),
    }


# ---------------------------------------------------------------------------
# OpenAI calls
# ---------------------------------------------------------------------------

def get_recommendation(settings, logs, fertilizers, year=None):
    """Ask the model to review the program.

    Returns:
        dict with 'text', 'action' and 'error' (error set and text None when
        the call failed)
    """
    year = str(year or date.today().year)
    comparison = compare_with_guideline(logs, settings, year)
    prompt = build_recommendation_prompt(settings, comparison, logs, fertilizers)
    try:
        reply = _complete([
            {"role": "system", "content": ADVISOR_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ])
    except Exception as e:
        logger.error(f"Recommendation request failed: {e}")
        return {'text': None, 'action': None, 'error': RECOMMENDATION_ERROR_MESSAGE}

    text, action = parse_recommendation(reply)
    return {'text': text, 'action': action, 'error': None}


def chat_reply(history, message):
    """TurfBot reply to message given earlier turns.

    Args:
        history: list of {'role': 'user'|'assistant', 'content': str}
        message: New user message
    """
    messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
    for turn in (history or [])[-MAX_HISTORY_TURNS:]:
        role = 'assistant' if turn.get('role') in ('assistant', 'model') else 'user'
        if turn.get('content'):
            messages.append({"role": role, "content": str(turn['content'])})
    messages.append({"role": "user", "content": message})
    try:
        return _complete(messages) or CHAT_ERROR_MESSAGE
    except Exception as e:
        logger.error(f"Chat request failed: {e}")
        return CHAT_ERROR_MESSAGE


def extract_fertilizer_from_text(text):
    """Fertilizer record extracted from free text, or None."""
    if not text or not text.strip():
        return None
    try:
        reply = _complete(
            [{"role": "user", "content": EXTRACTION_PROMPT.format(text=text)}],
            temperature=0,
        )
    except Exception as e:
        logger.error(f"Fertilizer extraction failed: {e}")
        return None

    match = _FENCED_JSON_RE.search(reply) or _ANY_OBJECT_RE.search(reply)
    if not match:
        logger.warning("Fertilizer extraction reply had no JSON object")
        return None
    try:
        data = json.loads(match.group(1))
    except ValueError:
        logger.warning("Fertilizer extraction reply had invalid JSON")
        return None
    if not isinstance(data, dict):
        return None
    return normalize_fertilizer(data)

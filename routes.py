"""
API Routes Blueprint for Turf Fertility Manager.

JSON endpoints under /api:
- Auth (signup, login, logout, me)
- Fertilizer catalog and calculator preview
- Application log
- Settings and notification settings
- Analytics (log statistics, guideline comparison)
- AI (recommendation, chat, apply action)
- Admin (tenants, approval, tenant logs, master catalog, AI extraction)

Writes accept the dataset 'version' the client last read; a stale version
gets HTTP 409 so the client can reload instead of overwriting.
"""

from datetime import date

from flask import Blueprint, jsonify, request
import logging

from auth import (
    PendingApprovalError, admin_required, approve_user, authenticate_user, create_user,
    current_username, delete_user, get_current_user, login_required, login_user_session,
    logout_user_session,
)
from tenant_store import StaleDatasetError

logger = logging.getLogger(__name__)

api_bp = Blueprint('api_bp', __name__, url_prefix='/api')


# ====================================================================
# Helpers
# ====================================================================

def _version(data=None):
    """Dataset version sent by the client (body or ?version=), or None."""
    raw = (data or {}).get('version', request.args.get('version'))
    if raw in (None, ''):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError("version must be an integer")


def _conflict(e):
    logger.warning(str(e))
    return jsonify({'error': str(e), 'current_version': e.current_version}), 409


def _server_error(e, action):
    logger.error(f"Error {action}: {e}", exc_info=True)
    return jsonify({'error': 'Internal server error'}), 500


def _year():
    return request.args.get('year', 'all') or 'all'


# ====================================================================
# Auth
# ====================================================================

@api_bp.route('/auth/signup', methods=['POST'])
def signup():
    data = request.get_json(force=True, silent=True) or {}
    try:
        user = create_user(data.get('username'), data.get('password'), data.get('golf_course'))
        return jsonify({'user': user, 'message': 'Signed up. Wait for administrator approval.'}), 201
    except ValueError as e:
        if str(e) == 'exists':
            return jsonify({'error': 'Username already exists'}), 409
        return jsonify({'error': 'Username, golf course and a password are required'}), 400
    except Exception as e:
        return _server_error(e, 'signing up')


@api_bp.route('/auth/login', methods=['POST'])
def login():
    data = request.get_json(force=True, silent=True) or {}
    try:
        user = authenticate_user(data.get('username'), data.get('password'))
    except PendingApprovalError:
        return jsonify({'error': 'Account is awaiting administrator approval'}), 403
    except Exception as e:
        return _server_error(e, 'logging in')
    if not user:
        return jsonify({'error': 'Invalid username or password'}), 401
    login_user_session(user)
    return jsonify({'user': user})


@api_bp.route('/auth/logout', methods=['POST'])
def logout():
    logout_user_session()
    return jsonify({'success': True})


@api_bp.route('/auth/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': get_current_user()})


# ====================================================================
# Fertilizers
# ====================================================================

@api_bp.route('/fertilizers', methods=['GET'])
@login_required
def get_fertilizers():
    username = current_username()
    try:
        from admin import catalog_for
        from fertilizer_catalog import group_by_usage
        from tenant_store import load_dataset
        catalog = catalog_for(username)
        return jsonify({
            'fertilizers': catalog,
            'grouped': group_by_usage(catalog, request.args.get('search', '')),
            'version': load_dataset(username)['version'],
        })
    except Exception as e:
        return _server_error(e, 'loading fertilizers')


@api_bp.route('/fertilizers', methods=['PUT'])
@login_required
def save_fertilizers():
    username = current_username()
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import validate_catalog
        from fertilizer_catalog import normalize_catalog
        from tenant_store import save_fertilizers as _save
        fertilizers = data.get('fertilizers') or []
        problems = validate_catalog(fertilizers)
        if problems:
            return jsonify({'error': 'Invalid fertilizer data', 'fields': problems}), 400
        catalog = normalize_catalog(fertilizers)
        version = _save(username, catalog, expected_version=_version(data))
        return jsonify({'fertilizers': catalog, 'version': version})
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'saving fertilizers')


@api_bp.route('/fertilizers/preview', methods=['POST'])
@login_required
def preview_application():
    """Calculator preview for the log form (nothing is saved)."""
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from fertilizer_catalog import find_fertilizer
        from nutrient_calculator import compute_application, product_amount
        fert = find_fertilizer(catalog_for(current_username()), data.get('product'))
        if fert is None:
            return jsonify({'error': 'Product not found'}), 404
        result = compute_application(fert, data.get('area'), data.get('rate'))
        amount, unit = product_amount(fert, data.get('area'), data.get('rate'))
        result['total_cost'] = round(result['total_cost'], 2)
        result['amount_applied'] = round(amount, 3)
        result['amount_unit'] = unit
        return jsonify(result)
    except Exception as e:
        return _server_error(e, 'calculating preview')


@api_bp.route('/fertilizers/<path:name>/analysis', methods=['GET'])
@login_required
def fertilizer_analysis(name):
    try:
        from admin import catalog_for
        from fertilizer_catalog import application_analysis, cost_analysis, find_fertilizer
        fert = find_fertilizer(catalog_for(current_username()), name)
        if fert is None:
            return jsonify({'error': 'Product not found'}), 404
        return jsonify({
            'fertilizer': fert,
            'cost': cost_analysis(fert),
            'application': application_analysis(fert),
        })
    except Exception as e:
        return _server_error(e, f'analysing {name}')


@api_bp.route('/fertilizers/rate-for-target', methods=['POST'])
@login_required
def rate_for_target():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from fertilizer_catalog import find_fertilizer, rate_for_target as _rate
        fert = find_fertilizer(catalog_for(current_username()), data.get('product'))
        if fert is None:
            return jsonify({'error': 'Product not found'}), 404
        rate = _rate(fert, data.get('nutrient', 'N'), data.get('target'))
        return jsonify({'rate': rate})
    except Exception as e:
        return _server_error(e, 'calculating target rate')


# ====================================================================
# Application log
# ====================================================================

@api_bp.route('/logs', methods=['GET'])
@login_required
def get_logs():
    try:
        from application_log import filter_logs
        from log_aggregator import filter_by_year
        from tenant_store import load_dataset
        dataset = load_dataset(current_username())
        logs = filter_logs(filter_by_year(dataset['logs'], _year()), request.args.get('product', ''))
        return jsonify({'logs': logs, 'version': dataset['version']})
    except Exception as e:
        return _server_error(e, 'loading logs')


@api_bp.route('/logs', methods=['POST'])
@login_required
def add_log():
    username = current_username()
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from application_log import add_log_entry, create_log_entry
        from fertilizer_catalog import find_fertilizer
        fert = find_fertilizer(catalog_for(username), data.get('product'))
        if fert is None:
            return jsonify({'error': 'Product not found'}), 404
        entry = create_log_entry(
            fert, data.get('date') or date.today(), data.get('usage') or fert.get('usage'),
            data.get('area'), data.get('rate'), data.get('topdressing'),
        )
        result = add_log_entry(username, entry, expected_version=_version(data))
        return jsonify({'entry': entry, 'version': result['version']}), 201
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'adding log entry')


@api_bp.route('/logs/quick-add', methods=['POST'])
@login_required
def quick_add_log():
    username = current_username()
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from application_log import quick_add
        result = quick_add(username, catalog_for(username), data.get('product'), data.get('rate'),
                           date=data.get('date'), usage=data.get('usage'))
        return jsonify({'entry': result['entry'], 'version': result['version']}), 201
    except LookupError as e:
        return jsonify({'error': str(e)}), 404
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'quick-adding log entry')


@api_bp.route('/logs/<entry_id>', methods=['DELETE'])
@login_required
def delete_log(entry_id):
    try:
        from application_log import delete_log_entry
        result = delete_log_entry(current_username(), entry_id, expected_version=_version())
        return jsonify({'success': True, 'version': result['version']})
    except LookupError as e:
        return jsonify({'error': str(e)}), 404
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, f'deleting log entry {entry_id}')


# ====================================================================
# Settings
# ====================================================================

@api_bp.route('/settings', methods=['GET'])
@login_required
def get_settings():
    try:
        from tenant_store import load_dataset
        from user_settings import normalize_settings
        dataset = load_dataset(current_username())
        return jsonify({'settings': normalize_settings(dataset['settings']),
                        'version': dataset['version']})
    except Exception as e:
        return _server_error(e, 'loading settings')


@api_bp.route('/settings', methods=['PUT'])
@login_required
def save_settings():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from tenant_store import save_settings as _save
        from user_settings import normalize_settings
        settings = normalize_settings(data.get('settings'))
        version = _save(current_username(), settings, expected_version=_version(data))
        return jsonify({'settings': settings, 'version': version})
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'saving settings')


@api_bp.route('/notifications', methods=['GET'])
@login_required
def get_notification_settings():
    try:
        from tenant_store import get_notification_settings as _get
        return jsonify({'notification_settings': _get(current_username())})
    except Exception as e:
        return _server_error(e, 'loading notification settings')


@api_bp.route('/notifications', methods=['PUT'])
@login_required
def save_notification_settings():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from notifications import normalize_notification_settings
        from tenant_store import save_notification_settings as _save
        settings = normalize_notification_settings(data.get('notification_settings'))
        version = _save(current_username(), settings, expected_version=_version(data))
        return jsonify({'notification_settings': settings, 'version': version})
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'saving notification settings')


@api_bp.route('/notifications/check-low-stock', methods=['POST'])
@login_required
def check_low_stock():
    try:
        from notifications import check_low_stock as _check
        return jsonify(_check(current_username()))
    except Exception as e:
        return _server_error(e, 'checking low stock')


# ====================================================================
# Analytics
# ====================================================================

@api_bp.route('/analytics/summary', methods=['GET'])
@login_required
def analytics_summary():
    username = current_username()
    year = _year()
    try:
        import log_aggregator as agg
        from admin import catalog_for
        from tenant_store import load_dataset
        from user_settings import normalize_settings, zone_areas
        dataset = load_dataset(username)
        logs = dataset['logs']
        yearly = agg.filter_by_year(logs, year)
        return jsonify({
            'year': year,
            'available_years': agg.available_years(logs),
            'total_cost': round(agg.total_cost(yearly), 2),
            'product_stats': agg.product_stats(logs, year),
            'most_frequent': agg.most_frequent_products(logs, limit=5, year=year),
            'period_stats': agg.period_stats(logs, year),
            'usage_stats': agg.usage_stats(logs, year),
            'zone_stats': agg.zone_stats(logs, year),
            'monthly_cost_by_type': agg.monthly_cost_by_type(yearly, catalog_for(username)),
            'zone_nutrients': agg.zone_nutrients_per_m2(
                yearly, zone_areas(normalize_settings(dataset['settings']))),
        })
    except Exception as e:
        return _server_error(e, 'building analytics summary')


@api_bp.route('/analytics/guideline', methods=['GET'])
@login_required
def analytics_guideline():
    year = request.args.get('year') or str(date.today().year)
    usage = request.args.get('usage') or None
    cumulative = request.args.get('cumulative', '').lower() in ('1', 'true', 'yes')
    try:
        from guideline_comparator import compare_with_guideline, variance
        from tenant_store import load_dataset
        from user_settings import normalize_settings
        dataset = load_dataset(current_username())
        settings = normalize_settings(dataset['settings'])
        series = compare_with_guideline(dataset['logs'], settings, year, usage=usage)
        return jsonify({
            'year': year,
            'usage': usage,
            'series': compare_with_guideline(dataset['logs'], settings, year, usage=usage,
                                             cumulative=True) if cumulative else series,
            'variance': variance(series),
        })
    except Exception as e:
        return _server_error(e, 'comparing with guideline')


# ====================================================================
# AI
# ====================================================================

@api_bp.route('/ai/recommend', methods=['POST'])
@login_required
def ai_recommend():
    username = current_username()
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from ai_advisor import action_to_log_form, get_recommendation
        from tenant_store import load_dataset
        from user_settings import normalize_settings
        dataset = load_dataset(username)
        settings = normalize_settings(dataset['settings'])
        catalog = catalog_for(username)
        result = get_recommendation(settings, dataset['logs'], catalog, year=data.get('year'))
        if result['error']:
            return jsonify(result), 502
        result['log_form'] = action_to_log_form(result['action'], catalog, settings)
        return jsonify(result)
    except Exception as e:
        return _server_error(e, 'getting AI recommendation')


@api_bp.route('/ai/apply', methods=['POST'])
@login_required
def ai_apply():
    username = current_username()
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import catalog_for
        from ai_advisor import action_to_log_form
        from tenant_store import get_settings
        form = action_to_log_form(data.get('action'), catalog_for(username), get_settings(username))
        if form is None:
            return jsonify({'error': 'Recommended product is not in your catalog'}), 404
        return jsonify({'log_form': form})
    except Exception as e:
        return _server_error(e, 'applying AI action')


@api_bp.route('/ai/chat', methods=['POST'])
@login_required
def ai_chat():
    data = request.get_json(force=True, silent=True) or {}
    message = (data.get('message') or '').strip()
    if not message:
        return jsonify({'error': 'Message is required'}), 400
    try:
        from ai_advisor import chat_reply
        return jsonify({'reply': chat_reply(data.get('history') or [], message)})
    except Exception as e:
        return _server_error(e, 'chatting')


# ====================================================================
# Admin
# ====================================================================

@api_bp.route('/admin/users', methods=['GET'])
@admin_required
def admin_users():
    try:
        from admin import get_all_users_data
        return jsonify({'users': get_all_users_data()})
    except Exception as e:
        return _server_error(e, 'loading users data')


@api_bp.route('/admin/users/pending', methods=['GET'])
@admin_required
def admin_pending_users():
    try:
        from admin import pending_users
        return jsonify({'users': pending_users()})
    except Exception as e:
        return _server_error(e, 'loading pending users')


@api_bp.route('/admin/users/<username>/approve', methods=['POST'])
@admin_required
def admin_approve_user(username):
    try:
        if not approve_user(username):
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'success': True})
    except Exception as e:
        return _server_error(e, f'approving {username}')


@api_bp.route('/admin/users/<username>', methods=['DELETE'])
@admin_required
def admin_delete_user(username):
    try:
        if not delete_user(username):
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'success': True})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, f'deleting {username}')


@api_bp.route('/admin/users/<username>/detail', methods=['GET'])
@admin_required
def admin_user_detail(username):
    try:
        from admin import user_detail
        detail = user_detail(username, _year())
        if detail is None:
            return jsonify({'error': 'User not found'}), 404
        return jsonify(detail)
    except Exception as e:
        return _server_error(e, f'loading detail for {username}')


@api_bp.route('/admin/users/<username>/logs/<entry_id>', methods=['PUT'])
@admin_required
def admin_edit_log(username, entry_id):
    data = request.get_json(force=True, silent=True) or {}
    try:
        from application_log import admin_edit_log_entry
        result = admin_edit_log_entry(username, entry_id, data.get('changes') or {},
                                      expected_version=_version(data))
        return jsonify({'entry': result['entry'], 'version': result['version']})
    except LookupError as e:
        return jsonify({'error': str(e)}), 404
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, f'editing log {entry_id} of {username}')


@api_bp.route('/admin/users/<username>/logs/<entry_id>', methods=['DELETE'])
@admin_required
def admin_delete_log(username, entry_id):
    try:
        from application_log import delete_log_entry
        result = delete_log_entry(username, entry_id, expected_version=_version())
        return jsonify({'success': True, 'version': result['version']})
    except LookupError as e:
        return jsonify({'error': str(e)}), 404
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, f'deleting log {entry_id} of {username}')


@api_bp.route('/admin/monthly-cost', methods=['GET'])
@admin_required
def admin_monthly_cost():
    try:
        from admin import monthly_user_cost
        return jsonify({'months': monthly_user_cost(request.args.get('start'), request.args.get('end'))})
    except Exception as e:
        return _server_error(e, 'building monthly user cost')


@api_bp.route('/admin/master-catalog', methods=['GET'])
@admin_required
def admin_master_catalog():
    try:
        from admin import master_catalog
        from fertilizer_catalog import filter_fertilizers, sort_fertilizers
        catalog = filter_fertilizers(
            master_catalog(),
            name=request.args.get('name', ''),
            usage=request.args.get('usage', ''),
            product_type=request.args.get('type', ''),
            min_n=request.args.get('min_n'),
            min_p=request.args.get('min_p'),
            min_k=request.args.get('min_k'),
        )
        catalog = sort_fertilizers(catalog, request.args.get('sort', 'name'),
                                   request.args.get('desc', '').lower() in ('1', 'true'))
        return jsonify({'fertilizers': catalog})
    except Exception as e:
        return _server_error(e, 'loading master catalog')


@api_bp.route('/admin/master-catalog', methods=['PUT'])
@admin_required
def admin_save_master_catalog():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import save_master_catalog
        return jsonify(save_master_catalog(data.get('fertilizers') or [], _version(data)))
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        details = e.args[0] if e.args else str(e)
        if isinstance(details, dict):
            return jsonify({'error': 'Invalid fertilizer data', 'fields': details}), 400
        return jsonify({'error': str(details)}), 400
    except Exception as e:
        return _server_error(e, 'saving master catalog')


@api_bp.route('/admin/master-catalog/bulk-edit', methods=['POST'])
@admin_required
def admin_bulk_edit():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from admin import bulk_edit_master
        result = bulk_edit_master(data.get('names') or [], data.get('target'),
                                  data.get('operation'), data.get('value'))
        return jsonify(result)
    except StaleDatasetError as e:
        return _conflict(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return _server_error(e, 'bulk editing master catalog')


@api_bp.route('/admin/extract-fertilizer', methods=['POST'])
@admin_required
def admin_extract_fertilizer():
    data = request.get_json(force=True, silent=True) or {}
    try:
        from ai_advisor import extract_fertilizer_from_text
        fert = extract_fertilizer_from_text(data.get('text', ''))
        if fert is None:
            return jsonify({'error': 'Could not extract a fertilizer from the text'}), 422
        return jsonify({'fertilizer': fert})
    except Exception as e:
        return _server_error(e, 'extracting fertilizer')

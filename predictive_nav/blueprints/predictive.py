""" Provides the JSON endpoints for navigation tracking, next-page prediction and prediction cache management.
    The caller's identity always comes from the login session, never from the request. """

import math
from typing import Optional

from flask import Blueprint, jsonify, request
from flask_login import current_user  # type: ignore

from predictive_nav.helpers import predictions
from predictive_nav.helpers.auth import api_login_required
from predictive_nav.helpers.formatting import round_half_up
from predictive_nav.models.navigation_pattern import MAX_TIME_ON_PAGE
from predictive_nav.models.user import User

bp = Blueprint('predictive', __name__, url_prefix='/api/predictive')

current_user: User


def bad_request(message: str):
    """ JSON 400 response with `message`. """
    return jsonify({'error': message}), 400


def page_field(data: dict, key: str) -> Optional[str]:
    """ Returns `data[key]` if it is a non-blank string, otherwise None. """
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def seconds_field(data: dict, key: str) -> Optional[int]:
    """ Returns `data[key]` as whole seconds, 0 if absent, or None unless it is a finite number from 0 up to
        `MAX_TIME_ON_PAGE`. """
    value = data.get(key, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value < 0 or value > MAX_TIME_ON_PAGE:
        return None
    return round_half_up(value)


@bp.route('/track', methods=['POST'])
@api_login_required
def track():
    """ Records that the user moved from `fromPage` to `toPage` after `timeOnPage` seconds. """
    data = request.get_json(silent=True) or {}
    from_page = page_field(data, 'fromPage')
    to_page = page_field(data, 'toPage')
    if not from_page or not to_page:
        return bad_request('fromPage and toPage are required')
    time_on_page = seconds_field(data, 'timeOnPage')
    if time_on_page is None:
        return bad_request(f'timeOnPage must be a number of seconds between 0 and {MAX_TIME_ON_PAGE}')

    # Telemetry write, a storage failure is logged and does not fail the request
    predictions.track_navigation(current_user.id, from_page, to_page, time_on_page)
    return jsonify({'success': True})


@bp.route('/predict', methods=['GET'])
@api_login_required
def predict():
    """ Returns the predicted next pages for `currentPage`, from cache where possible. """
    current_page = page_field(request.args, 'currentPage')
    if not current_page:
        return bad_request('currentPage is required')
    return jsonify(predictions.get_or_warm(current_user.id, current_page).to_dict())


@bp.route('/warm-cache', methods=['POST'])
@api_login_required
def warm_cache():
    """ Computes and caches the prediction for `currentPage`. """
    data = request.get_json(silent=True) or {}
    current_page = page_field(data, 'currentPage')
    if not current_page:
        return bad_request('currentPage is required')
    return jsonify(predictions.warm_cache(current_user.id, current_page).to_dict())


@bp.route('/record-hit', methods=['POST'])
@api_login_required
def record_hit():
    """ Scores the cached prediction for `currentPage` against `actualNextPage`. """
    data = request.get_json(silent=True) or {}
    current_page = page_field(data, 'currentPage')
    actual_next_page = page_field(data, 'actualNextPage')
    if not current_page or not actual_next_page:
        return bad_request('currentPage and actualNextPage are required')

    predictions.record_cache_hit(current_user.id, current_page, actual_next_page)
    return jsonify({'success': True})


@bp.route('/accuracy', methods=['GET'])
@api_login_required
def accuracy():
    """ Returns the user's prediction accuracy. """
    return jsonify(predictions.get_accuracy_stats(current_user.id).to_dict())


@bp.route('/patterns', methods=['GET'])
@api_login_required
def patterns():
    """ Returns the user's strongest navigation patterns. """
    return jsonify([pattern.to_dict() for pattern in predictions.list_patterns(current_user.id)])


@bp.route('/clean-cache', methods=['DELETE'])
@api_login_required
def clean_cache():
    """ Deletes expired cached predictions. """
    return jsonify({'deletedCount': predictions.clean_expired_cache()})

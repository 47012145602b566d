""" Module providing next-page prediction, cache warming and accuracy reporting for user navigation.

Predictions are order-1 Markov: only the page the user is on now matters. A user's own transitions are used when
there are any from that page, otherwise the transitions of every user from that page are summed. Every function
here is best-effort; storage errors are logged and turned into an empty or zero result so the caller's request
never fails because of them.
"""

import logging
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from predictive_nav.extensions import db
from predictive_nav.helpers.dataclasses import AccuracyStats, Prediction, WarmResult
from predictive_nav.helpers.formatting import percentage
from predictive_nav.models.navigation_pattern import NavigationPattern
from predictive_nav.models.prediction_cache import PredictionCacheEntry

logger = logging.getLogger(__name__)

MAX_PREDICTED_PAGES = 5
MAX_LISTED_PATTERNS = 20
DEFAULT_CACHE_TTL_HOURS = 24


def cache_ttl_hours() -> int:
    """ Hours a warmed prediction stays live, from `PREDICTION_CACHE_TTL_HOURS` in the app config. """
    return int(current_app.config.get('PREDICTION_CACHE_TTL_HOURS', DEFAULT_CACHE_TTL_HOURS))


def track_navigation(user_id: int, from_page: str, to_page: str, time_on_page: int) -> bool:
    """ Records a move between pages. Fire and forget: failures are logged and reported as False, never raised. """
    return NavigationPattern.track(user_id, from_page, to_page, time_on_page)


def _rank(current_page: str, transitions: list[tuple[str, int]]) -> Prediction:
    """ Turns `(to_page, count)` pairs, already ranked, into a prediction.
        Confidence is the top page's share of the ranked pairs only, not of every transition from the page. """
    if not transitions:
        return Prediction.empty(current_page)
    total = sum(count for _, count in transitions)
    return Prediction(
        current_page=current_page,
        predicted_pages=[page for page, _ in transitions],
        confidence=percentage(transitions[0][1], total),
    )


def predict_next_pages(user_id: int, current_page: str) -> Prediction:
    """Predicts where the user will go from `current_page`.

    Args:
        user_id (int): User to predict for.
        current_page (str): Page the user is on.

    Returns:
        Prediction: Up to five pages, most likely first, with the top page's confidence. Empty with confidence 0
        when nobody has left `current_page` yet, or on storage error.
    """
    try:
        transitions = NavigationPattern.top_transitions(user_id, current_page, MAX_PREDICTED_PAGES)
        if not transitions:
            logger.debug('No history for user %s on "%s", using global patterns.', user_id, current_page)
            transitions = NavigationPattern.top_global_transitions(current_page, MAX_PREDICTED_PAGES)
    except SQLAlchemyError as e:
        logger.error('Predicting next pages for user %s on "%s" failed: %s', user_id, current_page, e)
        db.session.rollback()
        return Prediction.empty(current_page)

    return _rank(current_page, transitions)


def get_cached_prediction(user_id: int, current_page: str) -> Optional[Prediction]:
    """ Returns the live cached prediction for the pair, or None if there isn't one. """
    entry = PredictionCacheEntry.get_live(user_id, current_page)
    if entry is None:
        return None
    return entry.to_prediction()


def warm_cache(user_id: int, current_page: str, prediction: Optional[Prediction] = None) -> WarmResult:
    """Computes (unless `prediction` is given) and caches the prediction for the pair.

    An empty prediction is not cached. An existing entry is updated in place, keeping its hit and miss counts.

    Args:
        user_id (int): User to warm for.
        current_page (str): Page to warm.
        prediction (Optional[Prediction], optional): Already computed prediction for `current_page`. Defaults to
            None, which runs the predictor.

    Returns:
        WarmResult: `cache_warmed` is False when there was nothing to cache or the write failed.
    """
    if prediction is None:
        prediction = predict_next_pages(user_id, current_page)

    result = WarmResult(user_id=user_id, current_page=current_page)
    if prediction.is_empty():
        return result

    if PredictionCacheEntry.store(user_id, prediction, cache_ttl_hours()) is None:
        return result

    result.warmed_pages = list(prediction.predicted_pages)
    result.cache_warmed = True
    logger.debug('Warmed %d pages for user %s on "%s".', len(result.warmed_pages), user_id, current_page)
    return result


def record_cache_hit(user_id: int, current_page: str, actual_next_page: str) -> Optional[str]:
    """Scores the live cached prediction for the pair against where the user actually went.

    Args:
        user_id (int): User who navigated.
        current_page (str): Page the prediction was made for.
        actual_next_page (str): Page the user went to.

    Returns:
        Optional[str]: `'hit'` if `actual_next_page` was among the predicted pages, `'miss'` if not, None when
        nothing was cached or the update failed.
    """
    entry = PredictionCacheEntry.get_live(user_id, current_page)
    if entry is None:
        return None

    hit = actual_next_page in (entry.predicted_pages or [])
    if not entry.record_outcome(hit):
        return None
    return 'hit' if hit else 'miss'


def get_or_warm(user_id: int, current_page: str) -> Prediction:
    """ Serves the cached prediction if live. Otherwise predicts once, seeds the cache with that same prediction
        and returns it. """
    cached = get_cached_prediction(user_id, current_page)
    if cached is not None:
        return cached

    prediction = predict_next_pages(user_id, current_page)
    warm_cache(user_id, current_page, prediction)
    return prediction


def get_accuracy_stats(user_id: int) -> AccuracyStats:
    """ Hit/miss totals and accuracy percentage across the user's cached predictions. """
    return PredictionCacheEntry.accuracy_stats(user_id)


def clean_expired_cache() -> int:
    """ Deletes expired cached predictions for every user, returning how many went. """
    return PredictionCacheEntry.delete_expired()


def list_patterns(user_id: int, limit: int = MAX_LISTED_PATTERNS) -> list[NavigationPattern]:
    """ The user's strongest navigation patterns, capped at `MAX_LISTED_PATTERNS`. """
    return NavigationPattern.recent_for_user(user_id, min(limit, MAX_LISTED_PATTERNS))


def warm_frequent_pages(user_id: int, pages: int) -> list[WarmResult]:
    """ Warms the cache for the `pages` pages the user leaves most often, ahead of them being requested. """
    return [warm_cache(user_id, page) for page in NavigationPattern.frequent_origins(user_id, pages)]

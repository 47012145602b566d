""" Module providing the scheduled prediction cache housekeeping and proactive warming tasks. """

import logging

from celery import shared_task
from flask import current_app

from predictive_nav.helpers.predictions import clean_expired_cache, warm_frequent_pages as warm_user_pages
from predictive_nav.models.user import User

logger = logging.getLogger(__name__)


@shared_task
def clean_expired_prediction_cache():
    """ Deletes expired cached predictions. Returns the number deleted. """
    return clean_expired_cache()


@shared_task
def warm_frequent_pages(pages_per_user=None):
    """ Warms the cache for each user's most frequently left pages so predictions are ready before they are
        requested. Returns the number of entries warmed. """
    if pages_per_user is None:
        pages_per_user = int(current_app.config.get('PREWARM_PAGES_PER_USER', 3))

    warmed = 0
    for user_id in User.all_ids():
        results = warm_user_pages(user_id, pages_per_user)
        warmed += sum(1 for result in results if result.cache_warmed)

    logger.info('Pre-warmed %d cached predictions.', warmed)
    return warmed

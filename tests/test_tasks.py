"""Tests for the Celery housekeeping and warming tasks."""

from datetime import timedelta

from celery.schedules import crontab

from predictive_nav.models import PredictionCacheEntry
from predictive_nav.tasks.cache import clean_expired_prediction_cache, warm_frequent_pages


def test_beat_schedule_loaded_from_package(app):
    """The packaged schedule is installed with parsed cron entries."""
    celery_app = app.extensions['celery']
    schedule = celery_app.conf.beat_schedule

    assert set(schedule) == {'clean-expired-prediction-cache', 'warm-frequent-pages'}
    assert all(isinstance(entry['schedule'], crontab) for entry in schedule.values())
    for entry in schedule.values():
        assert entry['task'] in celery_app.tasks


def test_clean_expired_prediction_cache_task(user, add_cache_entry):
    """The task deletes expired entries and returns the count."""
    add_cache_entry(user.id, '/old', ['/feed'], expires_in=timedelta(hours=-1))
    add_cache_entry(user.id, '/live', ['/feed'])

    assert clean_expired_prediction_cache.delay().get() == 1
    assert PredictionCacheEntry.query.count() == 1


def test_warm_frequent_pages_task(user, other_users, add_pattern):
    """Each user's most often left pages are warmed ahead of time."""
    add_pattern(user.id, '/feed', '/events', count=5)
    add_pattern(user.id, '/events', '/feed', count=3)
    add_pattern(user.id, '/profile', '/feed', count=1)
    add_pattern(other_users[0].id, '/groups', '/feed', count=2)

    assert warm_frequent_pages.delay(pages_per_user=2).get() == 3

    warmed = {(e.user_id, e.current_page) for e in PredictionCacheEntry.query.all()}
    assert warmed == {(user.id, '/feed'), (user.id, '/events'), (other_users[0].id, '/groups')}


def test_warm_frequent_pages_uses_config_default(app, user, add_pattern):
    """Without an argument the per-user page count comes from config."""
    app.config['PREWARM_PAGES_PER_USER'] = 1
    add_pattern(user.id, '/feed', '/events', count=5)
    add_pattern(user.id, '/events', '/feed', count=3)

    assert warm_frequent_pages.delay().get() == 1
    assert PredictionCacheEntry.query.one().current_page == '/feed'

"""
Pytest configuration and shared fixtures.

Every test gets a fresh app bound to an in-memory SQLite database, with Celery running tasks eagerly.
"""

from datetime import timedelta

import pytest

from predictive_nav import create_app
from predictive_nav.config import Config
from predictive_nav.extensions import db
from predictive_nav.helpers.dates import utc_now
from predictive_nav.models import NavigationPattern, PredictionCacheEntry, User


class ConfigForTests(Config):
    """ Config for tests. """
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    TIMEZONE = 'UTC'
    LOG_LEVEL = 'WARNING'
    PREDICTION_CACHE_TTL_HOURS = 24
    PREWARM_PAGES_PER_USER = 3
    CELERY = {
        'broker_url': 'memory://',
        'result_backend': 'cache+memory://',
        'task_always_eager': True,
        'task_eager_propagates': True,
    }


@pytest.fixture
def app():
    """Provide an app with an empty schema, inside an app context."""
    app = create_app(ConfigForTests)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def user(app):
    """Provide a persisted user."""
    user = User(email='ana@example.com', name='Ana')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def other_users(app):
    """Provide two more persisted users, for cross-user (global) data."""
    users = [User(email='luis@example.com', name='Luis'), User(email='mia@example.com', name='Mia')]
    db.session.add_all(users)
    db.session.commit()
    return users


@pytest.fixture
def client(app):
    """Provide an anonymous test client."""
    return app.test_client()


@pytest.fixture
def auth_client(app, user):
    """Provide a test client logged in as `user`."""
    client = app.test_client()
    with client.session_transaction() as session:
        session['_user_id'] = str(user.id)
        session['_fresh'] = True
    return client


@pytest.fixture
def add_pattern(app):
    """Provide a factory inserting a navigation pattern row directly."""
    def _add(user_id, from_page, to_page, count, avg=0, last_transition_at=None):
        pattern = NavigationPattern(
            user_id=user_id,
            from_page=from_page,
            to_page=to_page,
            transition_count=count,
            avg_time_on_page=avg,
            last_transition_at=last_transition_at or utc_now(),
        )
        db.session.add(pattern)
        db.session.commit()
        return pattern
    return _add


@pytest.fixture
def add_cache_entry(app):
    """Provide a factory inserting a prediction cache row directly."""
    def _add(user_id, current_page, pages, confidence=50, hits=0, misses=0, expires_in=timedelta(hours=24),
             warmed=True):
        entry = PredictionCacheEntry(
            user_id=user_id,
            current_page=current_page,
            predicted_pages=list(pages),
            confidence=confidence,
            cache_warmed=warmed,
            warmed_at=utc_now(),
            hit_count=hits,
            miss_count=misses,
            expires_at=utc_now() + expires_in,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    return _add


@pytest.fixture
def break_storage(app):
    """Provide a callable that drops every table, so the next query fails with a storage error."""
    def _break():
        db.session.remove()
        db.drop_all()
    return _break

"""Tests for the predictive navigation JSON endpoints."""

from datetime import timedelta

import pytest

from predictive_nav.extensions import db
from predictive_nav.models import NavigationPattern, PredictionCacheEntry

PREFIX = '/api/predictive'


@pytest.mark.parametrize('method, path', [
    ('post', '/track'),
    ('get', '/predict?currentPage=/feed'),
    ('post', '/warm-cache'),
    ('post', '/record-hit'),
    ('get', '/accuracy'),
    ('get', '/patterns'),
    ('delete', '/clean-cache'),
])
def test_endpoints_require_login(client, method, path):
    """Anonymous callers get a JSON 401."""
    response = getattr(client, method)(PREFIX + path, json={})

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Authentication required'}


def test_track_records_transition_for_session_user(auth_client, user, other_users):
    """The tracked user is the logged in one, whatever the body says."""
    response = auth_client.post(f'{PREFIX}/track', json={
        'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': 14, 'userId': other_users[0].id,
    })

    assert response.status_code == 200
    assert response.get_json() == {'success': True}
    [pattern] = NavigationPattern.query.all()
    assert pattern.user_id == user.id
    assert (pattern.from_page, pattern.to_page, pattern.avg_time_on_page) == ('/feed', '/events', 14)


def test_track_defaults_time_on_page_to_zero(auth_client):
    """timeOnPage is optional."""
    response = auth_client.post(f'{PREFIX}/track', json={'fromPage': '/feed', 'toPage': '/events'})

    assert response.status_code == 200
    assert NavigationPattern.query.one().avg_time_on_page == 0


@pytest.mark.parametrize('body', [
    {},
    {'fromPage': '/feed'},
    {'toPage': '/events'},
    {'fromPage': '  ', 'toPage': '/events'},
    {'fromPage': '/feed', 'toPage': 42},
    {'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': -1},
    {'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': 'ten'},
    {'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': True},
    {'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': 2**31},
])
def test_track_rejects_bad_bodies(auth_client, body):
    """Validation happens before anything is stored."""
    response = auth_client.post(f'{PREFIX}/track', json=body)

    assert response.status_code == 400
    assert 'error' in response.get_json()
    assert NavigationPattern.query.count() == 0


def test_track_succeeds_even_when_storage_fails(auth_client):
    """Tracking is telemetry; a failed write is not the caller's problem."""
    NavigationPattern.__table__.drop(db.engine)

    response = auth_client.post(f'{PREFIX}/track', json={'fromPage': '/feed', 'toPage': '/events'})

    assert response.status_code == 200
    assert response.get_json() == {'success': True}


def test_predict_after_tracking(auth_client, user):
    """Tracked moves drive the prediction, which is then cached."""
    for to_page in ['/events', '/events', '/events', '/groups']:
        auth_client.post(f'{PREFIX}/track', json={'fromPage': '/feed', 'toPage': to_page, 'timeOnPage': 3})

    response = auth_client.get(f'{PREFIX}/predict', query_string={'currentPage': '/feed'})

    assert response.status_code == 200
    assert response.get_json() == {
        'currentPage': '/feed',
        'predictedPages': ['/events', '/groups'],
        'confidence': 75,
    }
    assert PredictionCacheEntry.query.filter_by(user_id=user.id, current_page='/feed').count() == 1


def test_predict_requires_current_page(auth_client):
    """currentPage is mandatory."""
    assert auth_client.get(f'{PREFIX}/predict').status_code == 400


def test_predict_unknown_page(auth_client):
    """Unknown pages give the empty prediction."""
    response = auth_client.get(f'{PREFIX}/predict', query_string={'currentPage': 'NeverVisited'})

    assert response.get_json() == {'currentPage': 'NeverVisited', 'predictedPages': [], 'confidence': 0}


def test_warm_cache_endpoint(auth_client, user, add_pattern):
    """Warming reports what was cached."""
    add_pattern(user.id, '/feed', '/events', count=2)

    response = auth_client.post(f'{PREFIX}/warm-cache', json={'currentPage': '/feed'})

    assert response.get_json() == {
        'userId': user.id,
        'currentPage': '/feed',
        'warmedPages': ['/events'],
        'cacheWarmed': True,
    }


def test_warm_cache_endpoint_requires_current_page(auth_client):
    """currentPage is mandatory."""
    assert auth_client.post(f'{PREFIX}/warm-cache', json={}).status_code == 400


def test_record_hit_then_accuracy(auth_client, user, add_cache_entry):
    """Scored outcomes show up in the accuracy report."""
    add_cache_entry(user.id, '/feed', ['/events', '/groups'])

    for actual in ['/events', '/groups', '/profile', '/events']:
        response = auth_client.post(f'{PREFIX}/record-hit', json={'currentPage': '/feed', 'actualNextPage': actual})
        assert response.get_json() == {'success': True}

    response = auth_client.get(f'{PREFIX}/accuracy')

    assert response.get_json() == {'totalPredictions': 1, 'hits': 3, 'misses': 1, 'accuracy': 75}


def test_record_hit_requires_both_pages(auth_client):
    """currentPage and actualNextPage are mandatory."""
    response = auth_client.post(f'{PREFIX}/record-hit', json={'currentPage': '/feed'})

    assert response.status_code == 400


def test_record_hit_without_cache_still_succeeds(auth_client):
    """Scoring with nothing cached is a no-op, not an error."""
    response = auth_client.post(f'{PREFIX}/record-hit', json={'currentPage': '/feed', 'actualNextPage': '/events'})

    assert response.status_code == 200
    assert PredictionCacheEntry.query.count() == 0


def test_patterns_endpoint(auth_client, user, other_users, add_pattern):
    """Only the caller's patterns are listed, strongest first."""
    add_pattern(user.id, '/feed', '/events', count=1)
    add_pattern(user.id, '/feed', '/groups', count=5)
    add_pattern(other_users[0].id, '/feed', '/secret', count=50)

    response = auth_client.get(f'{PREFIX}/patterns')

    data = response.get_json()
    assert [p['toPage'] for p in data] == ['/groups', '/events']
    assert all(p['userId'] == user.id for p in data)


def test_clean_cache_endpoint(auth_client, user, add_cache_entry):
    """Expired entries are deleted and counted."""
    add_cache_entry(user.id, '/old', ['/feed'], expires_in=timedelta(hours=-2))
    add_cache_entry(user.id, '/live', ['/feed'])

    response = auth_client.delete(f'{PREFIX}/clean-cache')

    assert response.get_json() == {'deletedCount': 1}
    assert PredictionCacheEntry.query.count() == 1


def test_unknown_route_is_json_404(auth_client):
    """Missing routes answer in JSON."""
    response = auth_client.get(f'{PREFIX}/nope')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}


@pytest.mark.parametrize('raw_seconds', ['NaN', 'Infinity', '-Infinity', '1e400', '100000000000000000000'])
def test_track_rejects_non_finite_or_huge_time_on_page(auth_client, raw_seconds):
    """JSON number literals outside the storable range are refused, not passed to the database."""
    body = '{"fromPage": "/feed", "toPage": "/events", "timeOnPage": %s}' % raw_seconds

    response = auth_client.post(f'{PREFIX}/track', data=body, content_type='application/json')

    assert response.status_code == 400
    assert 'error' in response.get_json()
    assert NavigationPattern.query.count() == 0


def test_track_accepts_largest_storable_time_on_page(auth_client):
    """The cap itself is a valid dwell time."""
    response = auth_client.post(f'{PREFIX}/track', json={
        'fromPage': '/feed', 'toPage': '/events', 'timeOnPage': 2**31 - 1,
    })

    assert response.status_code == 200
    assert NavigationPattern.query.one().avg_time_on_page == 2**31 - 1

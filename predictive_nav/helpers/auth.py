""" Module for helper functions related to user authorisation on the JSON API. """

from functools import wraps

from flask import jsonify
from flask_login import current_user  # type: ignore

from predictive_nav.models.user import User

current_user: User


def unauthorized_response():
    """ JSON body and status code returned to callers without an authenticated session. """
    return jsonify({'error': 'Authentication required'}), 401


def api_login_required(f):
    """ Decorator to restrict an API endpoint to authenticated users. """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return unauthorized_response()
        return f(*args, **kwargs)
    return decorated_function

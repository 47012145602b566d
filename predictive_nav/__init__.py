"""Predictive navigation service: records how users move between pages, predicts where they go next, and keeps
those predictions warm in a cache with hit/miss tracking. Scheduled cache housekeeping runs on Celery beat. """

from typing import Optional

from flask import Flask, jsonify

from .config import Config
from .config.loaders import load_schedule
from .extensions import db, migrate, login_manager, celery_init_app, configure_logging
from . import models  # noqa: F401  # pylint: disable=unused-import

from .blueprints.predictive import bp as predictive_bp


def not_found_error(error):
    """ Handles 404 errors. """
    # pylint: disable-msg=unused-argument
    return jsonify({'error': 'Not found'}), 404

def internal_error(error):
    """ Handles 500 errors. """
    # pylint: disable-msg=unused-argument
    return jsonify({'error': 'Internal server error'}), 500

def create_app(config_class=Config, schedule: Optional[dict[str, dict]] = None):
    """ Creates Flask app using Config class. Uses the packaged beat schedule unless `schedule` is given. """
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    migrate.init_app(app)
    celery_init_app(app, load_schedule() if schedule is None else schedule)
    login_manager.init_app(app)

    app.register_error_handler(404, not_found_error)
    app.register_error_handler(500, internal_error)

    app.register_blueprint(predictive_bp)

    return app

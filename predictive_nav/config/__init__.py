""" Provides configuration for the prediction service in the form of a Config
    class that is loaded with the data from the `.env` file """

import os
from dataclasses import dataclass
from dotenv import load_dotenv
from tzlocal import get_localzone_name

load_dotenv(override=True)

@dataclass(frozen=True)
class Config:
    """ Config class that contains the environment variables for the application. """
    SECRET_KEY = os.getenv('SECRET_KEY')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///predictive_nav.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE')
    SESSION_COOKIE_HTTPONLY = os.getenv('SESSION_COOKIE_HTTPONLY')
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    TIMEZONE = os.getenv('TIMEZONE') or get_localzone_name()

    # Predictions older than this are no longer served and get swept by the beat task
    PREDICTION_CACHE_TTL_HOURS = int(os.getenv('PREDICTION_CACHE_TTL_HOURS', '24'))
    PREWARM_PAGES_PER_USER = int(os.getenv('PREWARM_PAGES_PER_USER', '3'))

    CELERY = {
        'broker_url': os.getenv('REDIS_URI'),
        'result_backend': os.getenv('REDIS_URI'),
        'task_ignore_result': True,
        'broker_connection_retry_on_startup': True
    }

for key, value in os.environ.items():
    setattr(Config, key, value)

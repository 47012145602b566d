""" Database models. Importing this package registers every table with the SQLAlchemy metadata. """

from predictive_nav.models.user import User
from predictive_nav.models.navigation_pattern import NavigationPattern
from predictive_nav.models.prediction_cache import PredictionCacheEntry

__all__ = ['User', 'NavigationPattern', 'PredictionCacheEntry']

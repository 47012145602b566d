""" Module for storing the value types passed between the prediction helpers, the blueprint and Celery tasks. """

from dataclasses import dataclass, field, asdict

from predictive_nav.helpers.formatting import camelise_keys


@dataclass
class Prediction:
    """ Ranked candidate next pages for a page, highest confidence first. """
    current_page: str
    predicted_pages: list[str] = field(default_factory=list)
    confidence: int = 0

    @classmethod
    def empty(cls, current_page: str):
        """ Returns the "no prediction" result for `current_page`. """
        return cls(current_page=current_page, predicted_pages=[], confidence=0)

    def is_empty(self):
        """ Determines if there is nothing worth caching in this prediction. """
        return not self.predicted_pages

    def to_dict(self):
        """ Camel cased dict for JSON responses. """
        return camelise_keys(asdict(self))


@dataclass
class WarmResult:
    """ Outcome of warming the cache for one (user, page) pair. """
    user_id: int
    current_page: str
    warmed_pages: list[str] = field(default_factory=list)
    cache_warmed: bool = False

    def to_dict(self):
        """ Camel cased dict for JSON responses. """
        return camelise_keys(asdict(self))


@dataclass
class AccuracyStats:
    """ Hit/miss totals across all of a user's cached predictions. """
    total_predictions: int = 0
    hits: int = 0
    misses: int = 0
    accuracy: int = 0

    def to_dict(self):
        """ Camel cased dict for JSON responses. """
        return camelise_keys(asdict(self))

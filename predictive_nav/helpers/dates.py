""" Module providing date related helper functions for cache expiry and pattern timestamps. """

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """ Returns the current UTC time as a naive datetime, matching how timestamps are stored in the database. """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def expiry_after(hours: int, start: datetime | None = None) -> datetime:
    """ Returns the naive UTC datetime `hours` after `start` (defaults to now). """
    return (start or utc_now()) + timedelta(hours=hours)


def to_iso(value: datetime | None):
    """ Returns isoformat string of a stored naive UTC datetime with a `Z` suffix, or None. """
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'

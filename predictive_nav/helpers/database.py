""" Database helper functions. """

import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from predictive_nav.extensions import db

logger = logging.getLogger(__name__)

T = TypeVar('T')


def upsert_with_retry(apply: Callable[[], T], description: str) -> Optional[T]:
    """Run a find-or-create `apply` and commit it, returning what `apply` returned.

    Two requests can both miss the row and both insert it; the loser hits the unique constraint, so it is rolled
    back and `apply` runs once more, this time finding the winner's row. Any other storage error, including a value
    the driver cannot bind, is logged, rolled back and reported as `None`.

    Args:
        apply (Callable[[], T]): Finds and mutates the row, or adds a new one, without committing.
        description (str): What is being written, used in log messages.

    Returns:
        Optional[T]: Result of `apply` if committed, None otherwise.
    """
    for attempt in range(2):
        try:
            result = apply()
            db.session.commit()
            return result
        except IntegrityError as e:
            db.session.rollback()
            if attempt:
                logger.error('%s failed after retrying a concurrent insert: %s', description, e)
                return None
            logger.warning('%s collided with a concurrent insert, retrying.', description)
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            # Drivers raise plain OverflowError/ValueError for values a column type cannot bind
            logger.error('%s failed: %s', description, e)
            db.session.rollback()
            return None
    return None

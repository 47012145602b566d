""" Provides NavigationPattern model, the per-user (from page -> to page) transition aggregate behind predictions. """

from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from predictive_nav.extensions import db
from predictive_nav.helpers.database import upsert_with_retry
from predictive_nav.helpers.dates import to_iso, utc_now
from predictive_nav.helpers.formatting import clamp_seconds, round_half_up

logger = logging.getLogger(__name__)

# Largest dwell time an INTEGER column holds on every supported engine
MAX_TIME_ON_PAGE = 2**31 - 1


class NavigationPattern(db.Model):
    """One row per (user, from page, to page) with how often the move happened and the average dwell time before it.
    Rows are only ever created or bumped, never deleted, since old transitions are still signal.
    """
    __tablename__ = 'user_patterns'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'from_page', 'to_page', name='unique_user_pattern'),
    )

    id: int = db.Column(db.Integer, primary_key=True)
    user_id: int = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    from_page: str = db.Column(db.String(255), nullable=False, index=True)
    to_page: str = db.Column(db.String(255), nullable=False, index=True)
    transition_count: int = db.Column(db.Integer, nullable=False, default=1)
    avg_time_on_page: int = db.Column(db.Integer, nullable=False, default=0)  # seconds
    last_transition_at: datetime = db.Column(db.DateTime, nullable=False, default=utc_now)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship('User', back_populates='navigation_patterns')

    def __repr__(self):
        return f'<NavigationPattern {self.user_id}: {self.from_page} -> {self.to_page} x{self.transition_count}>'

    def to_dict(self):
        """ Camel cased dict for JSON responses. """
        return {
            'id': self.id,
            'userId': self.user_id,
            'fromPage': self.from_page,
            'toPage': self.to_page,
            'transitionCount': self.transition_count,
            'avgTimeOnPage': self.avg_time_on_page,
            'lastTransitionAt': to_iso(self.last_transition_at),
            'createdAt': to_iso(self.created_at),
            'updatedAt': to_iso(self.updated_at),
        }

    @classmethod
    def track(cls, user_id: int, from_page: str, to_page: str, time_on_page: int) -> bool:
        """Record one move from `from_page` to `to_page`, folding `time_on_page` into the running average.

        Args:
            user_id (int): Owner of the transition.
            from_page (str): Page the user left.
            to_page (str): Page the user went to.
            time_on_page (int): Seconds spent on `from_page` before leaving.

        Returns:
            bool: True if stored, False if the write failed (already logged).
        """
        time_on_page = clamp_seconds(time_on_page, MAX_TIME_ON_PAGE)

        def apply():
            pattern = (
                cls.query
                .filter_by(user_id=user_id, from_page=from_page, to_page=to_page)
                .with_for_update()
                .first()
            )
            now = utc_now()
            if pattern:
                new_count = pattern.transition_count + 1
                pattern.avg_time_on_page = round_half_up(
                    (pattern.avg_time_on_page * pattern.transition_count + time_on_page) / new_count)
                pattern.transition_count = new_count
                pattern.last_transition_at = now
            else:
                pattern = cls(
                    user_id=user_id,  # type: ignore
                    from_page=from_page,  # type: ignore
                    to_page=to_page,  # type: ignore
                    transition_count=1,  # type: ignore
                    avg_time_on_page=time_on_page,  # type: ignore
                    last_transition_at=now,  # type: ignore
                )
                db.session.add(pattern)
            db.session.flush()
            return pattern

        stored = upsert_with_retry(apply, f'Tracking {from_page} -> {to_page} for user {user_id}')
        return stored is not None

    @classmethod
    def top_transitions(cls, user_id: int, from_page: str, limit: int) -> list[tuple[str, int]]:
        """ The user's most frequent destinations from `from_page` as `(to_page, count)`, most frequent first.
            Ties go to the most recently used destination. Storage errors propagate. """
        rows = (
            db.session.query(cls.to_page, cls.transition_count)
            .filter(cls.user_id == user_id, cls.from_page == from_page)
            .order_by(cls.transition_count.desc(), cls.last_transition_at.desc(), cls.id.desc())
            .limit(limit)
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    @classmethod
    def top_global_transitions(cls, from_page: str, limit: int) -> list[tuple[str, int]]:
        """ Destinations from `from_page` summed across every user, as `(to_page, total)`, largest first.
            Read only. Storage errors propagate. """
        rows = (
            db.session.query(cls.to_page, db.func.sum(cls.transition_count).label('total'))
            .filter(cls.from_page == from_page)
            .group_by(cls.to_page)
            .order_by(db.desc('total'), cls.to_page.asc())
            .limit(limit)
            .all()
        )
        return [(row[0], int(row[1])) for row in rows]

    @classmethod
    def recent_for_user(cls, user_id: int, limit: int = 20) -> list['NavigationPattern']:
        """ The user's strongest patterns, most frequent first and then most recent. Empty on storage error. """
        try:
            return (
                cls.query
                .filter_by(user_id=user_id)
                .order_by(cls.transition_count.desc(), cls.last_transition_at.desc(), cls.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error('Listing navigation patterns for user %s failed: %s', user_id, e)
            db.session.rollback()
            return []

    @classmethod
    def frequent_origins(cls, user_id: int, limit: int) -> list[str]:
        """ Pages the user most often navigates away from, by total outgoing transitions. Empty on storage error. """
        try:
            rows = (
                db.session.query(cls.from_page, db.func.sum(cls.transition_count).label('total'))
                .filter(cls.user_id == user_id)
                .group_by(cls.from_page)
                .order_by(db.desc('total'), cls.from_page.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error('Finding frequent pages for user %s failed: %s', user_id, e)
            db.session.rollback()
            return []
        return [row[0] for row in rows]

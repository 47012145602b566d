""" Provides PredictionCacheEntry model, the latest warmed prediction for a (user, page) pair and its hit/miss record. """

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from predictive_nav.extensions import db
from predictive_nav.helpers.database import upsert_with_retry
from predictive_nav.helpers.dataclasses import AccuracyStats, Prediction
from predictive_nav.helpers.dates import expiry_after, utc_now
from predictive_nav.helpers.formatting import percentage

logger = logging.getLogger(__name__)


class PredictionCacheEntry(db.Model):
    """ Model of a cached prediction. Re-warming overwrites the prediction but keeps hit/miss counts. """
    __tablename__ = 'prediction_cache'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'current_page', name='unique_prediction'),
    )

    id: int = db.Column(db.Integer, primary_key=True)
    user_id: int = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    current_page: str = db.Column(db.String(255), nullable=False, index=True)
    predicted_pages: list[str] = db.Column(db.JSON, nullable=False, default=list)
    confidence: int = db.Column(db.Integer, nullable=False, default=0)
    cache_warmed: bool = db.Column(db.Boolean, nullable=False, default=False)
    warmed_at: Optional[datetime] = db.Column(db.DateTime, nullable=True)
    hit_count: int = db.Column(db.Integer, nullable=False, default=0)
    miss_count: int = db.Column(db.Integer, nullable=False, default=0)
    expires_at: Optional[datetime] = db.Column(db.DateTime, nullable=True, index=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship('User', back_populates='prediction_cache')

    def __repr__(self):
        return f'<PredictionCacheEntry {self.user_id}: {self.current_page} -> {self.predicted_pages}>'

    def to_prediction(self) -> Prediction:
        """ The cached prediction as served to callers. """
        return Prediction(
            current_page=self.current_page,
            predicted_pages=list(self.predicted_pages or []),
            confidence=self.confidence,
        )

    @classmethod
    def get_live(cls, user_id: int, current_page: str) -> Optional['PredictionCacheEntry']:
        """Safely gets the warmed, unexpired entry for the pair.

        Args:
            user_id (int): Owner of the entry.
            current_page (str): Page the prediction was made for.

        Returns:
            Optional[PredictionCacheEntry]: Entry if live, None if missing, expired, unwarmed or on storage error.
        """
        try:
            entry: Optional['PredictionCacheEntry'] = (
                cls.query
                .filter(
                    cls.user_id == user_id,
                    cls.current_page == current_page,
                    cls.cache_warmed.is_(True),
                    cls.expires_at > utc_now(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error('Get cached prediction for user %s on "%s" failed: %s', user_id, current_page, e)
            db.session.rollback()
            entry = None
        return entry

    @classmethod
    def store(cls, user_id: int, prediction: Prediction, ttl_hours: int) -> Optional['PredictionCacheEntry']:
        """Write `prediction` as the warmed entry for (user, page), updating the existing row in place so its
        hit/miss counts carry over.

        Args:
            user_id (int): Owner of the entry.
            prediction (Prediction): Non-empty prediction to cache.
            ttl_hours (int): Hours until the entry expires.

        Returns:
            Optional[PredictionCacheEntry]: The stored entry, None if the write failed (already logged).
        """
        def apply():
            entry = (
                cls.query
                .filter_by(user_id=user_id, current_page=prediction.current_page)
                .with_for_update()
                .first()
            )
            if entry is None:
                entry = cls(
                    user_id=user_id,  # type: ignore
                    current_page=prediction.current_page,  # type: ignore
                    hit_count=0,  # type: ignore
                    miss_count=0,  # type: ignore
                )
                db.session.add(entry)
            now = utc_now()
            entry.predicted_pages = list(prediction.predicted_pages)
            entry.confidence = prediction.confidence
            entry.cache_warmed = True
            entry.warmed_at = now
            entry.expires_at = expiry_after(ttl_hours, now)
            db.session.flush()
            return entry

        return upsert_with_retry(apply, f'Warming cache for user {user_id} on "{prediction.current_page}"')

    def record_outcome(self, hit: bool) -> bool:
        """ Bumps `hit_count` or `miss_count` by one in the database (not read-modify-write). Returns success. """
        cls = type(self)
        entry_id = self.id
        column = cls.hit_count if hit else cls.miss_count
        try:
            db.session.execute(
                db.update(cls)
                .where(cls.id == entry_id)
                .values({column: column + 1, cls.updated_at: utc_now()})
            )
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error('Recording %s for prediction %s failed: %s', 'hit' if hit else 'miss', entry_id, e)
            db.session.rollback()
            return False

    @classmethod
    def accuracy_stats(cls, user_id: int) -> AccuracyStats:
        """ Sums hits and misses over all of the user's entries, expired or not. All zeros on storage error. """
        try:
            total, hits, misses = (
                db.session.query(
                    db.func.count(cls.id),
                    db.func.coalesce(db.func.sum(cls.hit_count), 0),
                    db.func.coalesce(db.func.sum(cls.miss_count), 0),
                )
                .filter(cls.user_id == user_id)
                .one()
            )
        except SQLAlchemyError as e:
            logger.error('Getting prediction accuracy for user %s failed: %s', user_id, e)
            db.session.rollback()
            return AccuracyStats()

        hits, misses = int(hits), int(misses)
        return AccuracyStats(
            total_predictions=int(total),
            hits=hits,
            misses=misses,
            accuracy=percentage(hits, hits + misses),
        )

    @classmethod
    def delete_expired(cls) -> int:
        """ Deletes every entry whose expiry has passed, for all users. Returns the count deleted, 0 on error. """
        try:
            result = db.session.execute(db.delete(cls).where(cls.expires_at < utc_now()))
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error('Cleaning expired prediction cache failed: %s', e)
            db.session.rollback()
            return 0
        deleted = result.rowcount or 0
        logger.info('Deleted %d expired cached predictions.', deleted)
        return deleted

""" Provides User model """

import logging

from flask_login import UserMixin
from sqlalchemy.exc import SQLAlchemyError

from predictive_nav.extensions import db

logger = logging.getLogger(__name__)

class User(UserMixin, db.Model):
    """ Model of a User. The host application owns sign-in; this service only needs the identity. """
    __tablename__ = 'users'

    id: int = db.Column(db.Integer, primary_key=True)
    email: str = db.Column(db.String(150), unique=True, nullable=False)
    name: str = db.Column(db.String(150), nullable=False)
    navigation_patterns = db.relationship(
        "NavigationPattern",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic"
    )
    prediction_cache = db.relationship(
        "PredictionCacheEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic"
    )

    def __repr__(self):
        return f'<User "{self.name}">'

    @classmethod
    def all_ids(cls) -> list[int]:
        """ Ids of every user, used by the background warming task. """
        try:
            return [row[0] for row in db.session.query(cls.id).order_by(cls.id).all()]
        except SQLAlchemyError as e:
            logger.error('Listing user ids failed: %s', e)
            db.session.rollback()
            return []

from cookoff import db
from flask_login import UserMixin
import time


class Viewer(UserMixin, db.Model):
    """A browser that picked a display name; shown in presence."""
    __tablename__ = 'viewer'
    id = db.Column(db.Integer, primary_key=True)
    display_name = db.Column(db.String(30), nullable=False)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
        }


class GameSession(db.Model):
    """One persisted session document.

    ``version`` increases on every write and is the compare-and-set token
    for transactional updates.
    """
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    document = db.Column(db.JSON, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

# backend/campus/models/gate_token.py
"""Per-subject gate access token."""
from datetime import datetime, timedelta
from typing import Optional

from campus import db
from campus.models.base import BaseModel, SoftDeleteMixin


class GateAccessToken(SoftDeleteMixin, BaseModel):
    """Long-lived credential encoded into a subject's personal QR."""

    __tablename__ = 'gate_access_tokens'
    __table_args__ = (
        db.Index(
            'uq_gate_access_tokens_active_user', 'user_id',
            unique=True,
            postgresql_where=db.text('is_active'),
            sqlite_where=db.text('is_active = 1'),
        ),
    )

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    token = db.Column(db.String(64), unique=True, nullable=False)
    session_id = db.Column(db.String(64), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    # Start of the current presence cycle; NULL while tapped out.
    tapped_in_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', lazy='joined')

    @classmethod
    def get_active_for_user(cls, user_id: str) -> Optional['GateAccessToken']:
        return cls.alive().filter(
            cls.user_id == user_id,
            cls.is_active.is_(True)
        ).first()

    @classmethod
    def get_usable_by_session(cls, session_id: str, now: datetime) -> Optional['GateAccessToken']:
        return cls.alive().filter(
            cls.session_id == session_id,
            cls.is_active.is_(True),
            db.or_(cls.expires_at.is_(None), cls.expires_at > now)
        ).first()

    @classmethod
    def close_cycle(cls, session_id: str, now: datetime, window: timedelta) -> int:
        """Tap-out guard: succeeds only for a token tapped in within the window."""
        return cls.query.filter(
            cls.session_id == session_id,
            cls.is_active.is_(True),
            cls.expires_at.is_(None),
            cls.tapped_in_at.isnot(None),
            cls.tapped_in_at >= now - window
        ).update({'tapped_in_at': None, 'updated_at': now}, synchronize_session=False)

    @classmethod
    def open_cycle(cls, session_id: str, now: datetime) -> int:
        return cls.query.filter(
            cls.session_id == session_id,
            cls.is_active.is_(True)
        ).update({'tapped_in_at': now, 'updated_at': now}, synchronize_session=False)

    def to_dict(self, exclude: list = None) -> dict:
        return super().to_dict(exclude=(exclude or []) + ['token'])

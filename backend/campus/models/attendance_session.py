# backend/campus/models/attendance_session.py
"""Attendance sessions backing presenter-issued QR codes."""
from enum import Enum

from campus import db
from campus.models.base import BaseModel, SoftDeleteMixin
from campus.models.user import enum_column
from campus.utils.helpers import isoformat, utcnow


class AttendanceKind(Enum):
    """Kinds of attendance."""
    CLASS = 'kelas'
    CAMPUS = 'kampus'


class AttendanceSession(SoftDeleteMixin, BaseModel):
    """Time-bounded token authorizing attendance scans."""

    __tablename__ = 'attendance_sessions'
    __table_args__ = (
        db.Index(
            'uq_attendance_sessions_active_schedule', 'schedule_id',
            unique=True,
            postgresql_where=db.text('is_active'),
            sqlite_where=db.text('is_active = 1'),
        ),
    )

    schedule_id = db.Column(db.String(36), db.ForeignKey('schedules.id'), nullable=True, index=True)
    created_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    kind = enum_column(AttendanceKind, nullable=False, default=AttendanceKind.CLASS)
    qr_payload = db.Column(db.Text, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def is_expired(self, now=None) -> bool:
        """Expiry is inclusive: a session is dead at its expires_at instant."""
        return (now or utcnow()) >= self.expires_at

    def is_usable(self, now=None) -> bool:
        return self.is_active and not self.is_expired(now)

    @classmethod
    def count_active_for_schedule(cls, schedule_id: str, now=None) -> int:
        return cls.alive().filter(
            cls.schedule_id == schedule_id,
            cls.is_active.is_(True),
            cls.expires_at > (now or utcnow())
        ).count()

    @classmethod
    def deactivate_for_schedule(cls, schedule_id: str) -> int:
        """Flip every active session of a schedule; returns rows affected."""
        return cls.query.filter(
            cls.schedule_id == schedule_id,
            cls.is_active.is_(True)
        ).update({'is_active': False, 'updated_at': utcnow()}, synchronize_session=False)

    @classmethod
    def deactivate(cls, session_id: str) -> int:
        """Idempotent conditional deactivation of a single session."""
        return cls.query.filter(
            cls.id == session_id,
            cls.is_active.is_(True)
        ).update({'is_active': False, 'updated_at': utcnow()}, synchronize_session=False)

    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['is_active'] = self.is_usable()
        result['expires_at'] = isoformat(self.expires_at)
        return result

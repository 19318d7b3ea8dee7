# backend/campus/models/attendance.py
"""Attendance receipts."""
from datetime import date
from enum import Enum
from typing import Optional

from campus import db
from campus.models.attendance_session import AttendanceKind
from campus.models.base import BaseModel
from campus.models.user import enum_column


class AttendanceStatus(Enum):
    """Attendance statuses."""
    PRESENT = 'present'
    EXCUSED = 'excused'
    SICK = 'sick'
    ABSENT = 'absent'
    LATE = 'late'


class AttendanceRecord(BaseModel):
    """Attendance record; never deleted, only corrected."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.Index(
            'uq_attendance_user_date_schedule', 'user_id', 'date', 'schedule_id',
            unique=True,
        ),
        db.Index(
            'uq_attendance_user_date_open', 'user_id', 'date',
            unique=True,
            postgresql_where=db.text('schedule_id IS NULL AND check_out_time IS NULL'),
            sqlite_where=db.text('schedule_id IS NULL AND check_out_time IS NULL'),
        ),
        db.CheckConstraint(
            'check_out_time IS NULL OR check_in_time IS NULL OR check_out_time >= check_in_time',
            name='ck_attendance_checkout_after_checkin'
        ),
    )

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    session_id = db.Column(db.String(36), db.ForeignKey('attendance_sessions.id'), nullable=True, index=True)
    schedule_id = db.Column(db.String(36), db.ForeignKey('schedules.id'), nullable=True, index=True)
    kind = enum_column(AttendanceKind, nullable=False)
    status = enum_column(AttendanceStatus, nullable=False, default=AttendanceStatus.PRESENT)
    date = db.Column(db.Date, nullable=False, index=True)
    check_in_time = db.Column(db.DateTime, nullable=True)
    check_out_time = db.Column(db.DateTime, nullable=True)

    # Location where check-in happened
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)

    @classmethod
    def exists_for(cls, user_id: str, day: date, schedule_id: Optional[str]) -> bool:
        """Mirror of the two unique indexes above."""
        query = cls.query.filter(cls.user_id == user_id, cls.date == day)
        if schedule_id is not None:
            query = query.filter(cls.schedule_id == schedule_id)
        else:
            query = query.filter(cls.schedule_id.is_(None), cls.check_out_time.is_(None))
        return db.session.query(query.exists()).scalar()

    @classmethod
    def open_campus_record(cls, user_id: str, day: date) -> Optional['AttendanceRecord']:
        """Today's campus record that has been tapped in but not out."""
        return cls.query.filter(
            cls.user_id == user_id,
            cls.date == day,
            cls.kind == AttendanceKind.CAMPUS,
            cls.schedule_id.is_(None),
            cls.check_in_time.isnot(None),
            cls.check_out_time.is_(None)
        ).order_by(cls.check_in_time.desc()).first()

    def __repr__(self):
        return f'<AttendanceRecord {self.user_id}-{self.date}>'

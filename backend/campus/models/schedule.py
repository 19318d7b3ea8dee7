# backend/campus/models/schedule.py
"""Schedule model for class occurrences."""
from campus import db
from campus.models.base import BaseModel, SoftDeleteMixin


class Schedule(SoftDeleteMixin, BaseModel):
    """A single class occurrence."""

    __tablename__ = 'schedules'
    __table_args__ = (
        db.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_day_of_week'),
    )

    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=True, index=True)
    course_code = db.Column(db.String(50), nullable=True)
    course_name = db.Column(db.String(255), nullable=True)
    lecturer_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    room = db.Column(db.String(100), nullable=True)

    # 0 = Sunday
    day_of_week = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f'<Schedule {self.course_code} {self.date}>'

"""Course and enrollment models."""
from campus import db
from campus.models.base import BaseModel, SoftDeleteMixin


class Course(SoftDeleteMixin, BaseModel):
    """Course offered by a lecturer."""

    __tablename__ = 'courses'

    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    credits = db.Column(db.Integer, default=3, nullable=False)
    lecturer_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    enrollments = db.relationship('Enrollment', backref='course', lazy='dynamic')

    def __repr__(self):
        return f'<Course {self.code}>'


class Enrollment(SoftDeleteMixin, BaseModel):
    """A student's enrollment in a course, with its grade."""

    __tablename__ = 'enrollments'
    __table_args__ = (
        db.UniqueConstraint('course_id', 'student_id', name='uq_enrollment_course_student'),
        db.CheckConstraint('score IS NULL OR (score >= 0 AND score <= 100)',
                           name='ck_enrollment_score_range'),
    )

    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False, index=True)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='enrolled', nullable=False)
    score = db.Column(db.Float, nullable=True)
    grade = db.Column(db.String(2), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<Enrollment {self.student_id}-{self.course_id}>'

"""Courses, enrollments and grades."""
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from campus import db
from campus.models.course import Course, Enrollment
from campus.models.user import User, UserRole
from campus.utils.decorators import Subject
from campus.utils.errors import (
    ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
)
from campus.utils.validators import Validator

# Lower bound of each letter grade, highest first.
GRADE_BOUNDARIES = (
    (85.0, 'A'),
    (70.0, 'B'),
    (55.0, 'C'),
    (40.0, 'D'),
    (0.0, 'E'),
)


def letter_grade(score: float) -> str:
    for lower, letter in GRADE_BOUNDARIES:
        if score >= lower:
            return letter
    return 'E'


class CourseService:

    @staticmethod
    def create_course(data: Optional[Dict]) -> Dict:
        Validator.require(data, 'code', 'name')

        lecturer_id = data.get('lecturer_id') or None
        if lecturer_id:
            lecturer = User.get_alive(lecturer_id)
            if lecturer is None or lecturer.role != UserRole.LECTURER:
                raise NotFoundError("Lecturer", lecturer_id)

        credits = Validator.parse_int(data.get('credits'), 'credits', 3)
        if credits <= 0:
            raise ValidationFailedError("credits must be positive")

        course = Course(
            code=data['code'].strip().upper(),
            name=data['name'].strip(),
            credits=credits,
            lecturer_id=lecturer_id
        )
        try:
            db.session.add(course)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("Course code already exists", e)
        return course.to_dict()

    @staticmethod
    def list_courses(lecturer_id: str = None) -> List[Dict]:
        query = Course.alive().filter(Course.is_active.is_(True))
        if lecturer_id:
            query = query.filter(Course.lecturer_id == lecturer_id)
        return [c.to_dict() for c in query.order_by(Course.code).all()]

    @staticmethod
    def enroll(course_id: str, data: Optional[Dict]) -> Dict:
        Validator.require(data, 'student_id')

        course = Course.get_alive(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)

        student = User.get_alive(data['student_id'])
        if student is None or student.role != UserRole.STUDENT:
            raise NotFoundError("Student", data['student_id'])

        enrollment = Enrollment(course_id=course.id, student_id=student.id)
        try:
            db.session.add(enrollment)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("Student already enrolled in this course", e)
        return enrollment.to_dict()

    @staticmethod
    def update_grade(actor: Subject, enrollment_id: str, data: Optional[Dict]) -> Dict:
        """Set score and/or letter grade; without a grade it follows the score."""
        if not isinstance(data, dict):
            raise ValidationFailedError("Request body must be a JSON object")
        if data.get('score') is None and not data.get('grade'):
            raise ValidationFailedError("Validation failed: score or grade is required")

        score = Validator.parse_float(data.get('score'), 'score')
        if score is not None and (score < 0 or score > 100):
            raise ValidationFailedError("score must be between 0 and 100")
        grade = data.get('grade')
        if grade:
            grade = Validator.one_of(grade, [letter for _, letter in GRADE_BOUNDARIES], 'grade')

        enrollment = Enrollment.get_alive(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment", enrollment_id)

        if actor.role == 'lecturer' and enrollment.course.lecturer_id != actor.id:
            raise ForbiddenError("You can only grade your own courses")

        if score is not None:
            enrollment.score = score
            enrollment.grade = letter_grade(score)
        if grade:
            enrollment.grade = grade
        if 'notes' in data:
            enrollment.notes = data['notes']
        db.session.commit()
        return enrollment.to_dict()

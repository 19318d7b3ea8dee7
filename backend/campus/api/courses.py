"""Course and enrollment endpoints."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from campus.services.course_service import CourseService
from campus.utils.decorators import current_subject, presenter_required, staff_required
from campus.utils.helpers import success_response

courses_bp = Blueprint('courses', __name__)


@courses_bp.route('', methods=['POST'])
@jwt_required()
@staff_required
def create_course():
    course = CourseService.create_course(request.get_json(silent=True))
    return success_response(data=course, message="Course created", status_code=201)


@courses_bp.route('', methods=['GET'])
@jwt_required()
def list_courses():
    return success_response(data=CourseService.list_courses(request.args.get('lecturer_id')))


@courses_bp.route('/<course_id>/enrollments', methods=['POST'])
@jwt_required()
@staff_required
def enroll_student(course_id):
    enrollment = CourseService.enroll(course_id, request.get_json(silent=True))
    return success_response(data=enrollment, message="Student enrolled", status_code=201)


@courses_bp.route('/enrollments/<enrollment_id>/grade', methods=['PUT'])
@jwt_required()
@presenter_required
def update_grade(enrollment_id):
    """Set an enrollment's score and letter grade."""
    enrollment = CourseService.update_grade(
        current_subject(), enrollment_id, request.get_json(silent=True)
    )
    return success_response(data=enrollment, message="Grade updated")

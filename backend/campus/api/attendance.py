# File: backend/campus/api/attendance.py
"""Attendance API: QR sessions, scanning, campus tap in/out and records."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from campus import limiter
from campus.services.attendance_service import AttendanceService
from campus.utils.decorators import current_subject, presenter_required
from campus.utils.errors import ForbiddenError
from campus.utils.helpers import paginated_response, success_response
from campus.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/qr/generate', methods=['POST'])
@jwt_required()
@presenter_required
@limiter.limit("30 per minute")
def generate_qr():
    """Generate a class or campus QR session."""
    data = request.get_json(silent=True) or {}
    Validator.require(data, 'type')

    session = AttendanceService.generate_session(
        current_subject(),
        data['type'],
        schedule_id=data.get('schedule_id') or None,
        duration=Validator.parse_int(data.get('duration'), 'duration')
    )
    return success_response(data=session, message="QR code generated successfully", status_code=201)


@attendance_bp.route('/qr/scan', methods=['POST'])
@jwt_required()
@limiter.limit("20 per minute")
def scan_qr():
    """Record attendance by scanning a session QR."""
    data = Validator.require(request.get_json(silent=True), 'qr_data')

    result = AttendanceService.scan(
        current_subject().id,
        data['qr_data'],
        latitude=Validator.parse_float(data.get('latitude'), 'latitude'),
        longitude=Validator.parse_float(data.get('longitude'), 'longitude')
    )
    return success_response(data=result, message=result['message'], status_code=201)


@attendance_bp.route('/sessions/<session_id>/deactivate', methods=['POST'])
@jwt_required()
@presenter_required
def deactivate_session(session_id):
    session = AttendanceService.deactivate_session(session_id, current_subject())
    return success_response(data=session, message="Session deactivated")


@attendance_bp.route('/tap-in', methods=['POST'])
@jwt_required()
def tap_in():
    """Open today's campus presence."""
    data = request.get_json(silent=True) or {}
    record = AttendanceService.tap_in(
        current_subject().id,
        latitude=Validator.parse_float(data.get('latitude'), 'latitude'),
        longitude=Validator.parse_float(data.get('longitude'), 'longitude')
    )
    return success_response(data=record, message="Tapped in", status_code=201)


@attendance_bp.route('/tap-out', methods=['POST'])
@jwt_required()
def tap_out():
    """Close today's campus presence."""
    record = AttendanceService.tap_out(current_subject().id)
    return success_response(data=record, message="Tapped out")


@attendance_bp.route('', methods=['GET'])
@jwt_required()
def list_attendances():
    """List attendance records with filters and pagination."""
    items, page, per_page, total = AttendanceService.list_attendances(
        current_subject(), request.args.to_dict()
    )
    return paginated_response(items, page, per_page, total)


@attendance_bp.route('/manual', methods=['POST'])
@jwt_required()
@presenter_required
def create_manual():
    """Create an attendance record without a QR session."""
    record = AttendanceService.create_manual_attendance(
        current_subject(), request.get_json(silent=True)
    )
    return success_response(data=record, message="Attendance created", status_code=201)


@attendance_bp.route('/statistics', methods=['GET'])
@jwt_required()
def statistics():
    """Counts by status and kind for one user."""
    subject = current_subject()
    user_id = request.args.get('user_id') or subject.id
    if subject.role == 'student' and user_id != subject.id:
        raise ForbiddenError("Students can only view their own statistics")

    stats = AttendanceService.statistics(
        user_id,
        Validator.parse_date(request.args.get('start_date'), 'start_date'),
        Validator.parse_date(request.args.get('end_date'), 'end_date')
    )
    return success_response(data=stats)


@attendance_bp.route('/<attendance_id>', methods=['PUT'])
@jwt_required()
@presenter_required
def update_attendance(attendance_id):
    """Correct an attendance record's status or notes."""
    record = AttendanceService.update_attendance(
        current_subject(), attendance_id, request.get_json(silent=True)
    )
    return success_response(data=record, message="Attendance updated")

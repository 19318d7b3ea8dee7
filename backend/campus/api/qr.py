# backend/campus/api/qr.py
"""QR endpoints: class regeneration, personal gate access and gate devices."""
import secrets

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from campus import limiter
from campus.services.attendance_service import AttendanceService
from campus.services.gate_service import GateService
from campus.utils.decorators import current_subject, presenter_required, staff_required
from campus.utils.errors import UnauthorizedError
from campus.utils.helpers import paginated_response, success_response
from campus.utils.validators import Validator

qr_bp = Blueprint('qr', __name__)


@qr_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='QR service is running')


@qr_bp.route('/class/<schedule_id>/regenerate', methods=['POST'])
@jwt_required()
@presenter_required
@limiter.limit("30 per minute")
def regenerate_class_qr(schedule_id):
    """Replace the schedule's active QR with a fresh one."""
    session = AttendanceService.regenerate_class_session(schedule_id, current_subject())
    return success_response(data=session, message="QR code regenerated", status_code=201)


@qr_bp.route('/access/generate', methods=['GET'])
@jwt_required()
def generate_access_qr():
    """Personal gate QR; the same token is returned on every call."""
    token = GateService.get_or_create_token(current_subject().id)
    return success_response(data=token)


@qr_bp.route('/access/validate/<session_id>', methods=['GET'])
@jwt_required()
@staff_required
@limiter.limit("120 per minute")
def validate_access_qr(session_id):
    """Staff-operated readers; every accepted call is a tap."""
    result = GateService.validate_at_gate(session_id, request.args.get('gate_id'))
    return success_response(data=result)


@qr_bp.route('/gate/validate', methods=['POST'])
@limiter.limit("120 per minute")
def validate_gate_qr():
    """Gate devices post the raw scanned string; no user session involved."""
    expected = current_app.config.get('GATE_DEVICE_KEY')
    if expected and not secrets.compare_digest(request.headers.get('X-Gate-Key', ''), expected):
        raise UnauthorizedError("invalid gate device key")

    data = Validator.require(request.get_json(silent=True), 'qr_data')
    result = GateService.validate_gate_qr(data['qr_data'], data.get('gate_id'))
    return success_response(data=result)


@qr_bp.route('/access/history', methods=['GET'])
@jwt_required()
def access_history():
    """Gate taps, newest first; staff may filter by user or gate."""
    items, page, per_page, total = GateService.access_history(
        current_subject(), request.args.to_dict()
    )
    return paginated_response(items, page, per_page, total)

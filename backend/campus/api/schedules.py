# backend/campus/api/schedules.py
"""Schedule Management API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from campus.services.schedule_service import ScheduleService
from campus.utils.decorators import current_subject, presenter_required
from campus.utils.helpers import success_response

schedules_bp = Blueprint('schedules', __name__)


@schedules_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Schedules service is running')


@schedules_bp.route('', methods=['GET'])
@jwt_required()
def get_schedules():
    """Get schedules with filters."""
    filters = request.args.to_dict()
    if request.args.get('my_schedules') == 'true':
        filters['lecturer_id'] = current_subject().id
    return success_response(data=ScheduleService.list_schedules(filters))


@schedules_bp.route('', methods=['POST'])
@jwt_required()
@presenter_required
def create_schedule():
    schedule = ScheduleService.create(current_subject(), request.get_json(silent=True))
    return success_response(data=schedule, message="Schedule created", status_code=201)


@schedules_bp.route('/<schedule_id>', methods=['GET'])
@jwt_required()
def get_schedule(schedule_id):
    return success_response(data=ScheduleService.get(schedule_id).to_dict())


@schedules_bp.route('/<schedule_id>', methods=['PUT'])
@jwt_required()
@presenter_required
def update_schedule(schedule_id):
    schedule = ScheduleService.update(current_subject(), schedule_id, request.get_json(silent=True))
    return success_response(data=schedule, message="Schedule updated")


@schedules_bp.route('/<schedule_id>', methods=['DELETE'])
@jwt_required()
@presenter_required
def delete_schedule(schedule_id):
    ScheduleService.delete(current_subject(), schedule_id)
    return success_response(message="Schedule deleted")

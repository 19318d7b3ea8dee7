"""Schedule management."""
from typing import Dict, List, Optional

from campus import db
from campus.models.course import Course
from campus.models.schedule import Schedule
from campus.models.user import User, UserRole
from campus.utils.decorators import Subject
from campus.utils.errors import ForbiddenError, NotFoundError, ValidationFailedError
from campus.utils.validators import Validator

UPDATABLE_FIELDS = (
    'course_id', 'course_code', 'course_name', 'lecturer_id', 'room',
    'day_of_week', 'date', 'start_time', 'end_time', 'is_active'
)


def weekday_of(day) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


class ScheduleService:

    @staticmethod
    def _check_day_of_week(value) -> int:
        day_of_week = Validator.parse_int(value, 'day_of_week')
        if day_of_week is None or day_of_week < 0 or day_of_week > 6:
            raise ValidationFailedError("day_of_week must be between 0 and 6")
        return day_of_week

    @staticmethod
    def _check_lecturer(lecturer_id: str) -> None:
        lecturer = User.get_alive(lecturer_id)
        if lecturer is None or lecturer.role != UserRole.LECTURER:
            raise NotFoundError("Lecturer", lecturer_id)

    @staticmethod
    def _apply(schedule: Schedule, data: Dict) -> None:
        for field in UPDATABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'day_of_week':
                value = ScheduleService._check_day_of_week(value)
            elif field == 'date':
                value = Validator.parse_date(value)
                if value is None:
                    raise ValidationFailedError("date is required")
            elif field in ('start_time', 'end_time'):
                value = Validator.parse_time(value, field)
            elif field == 'course_id' and value:
                course = Course.get_alive(value)
                if course is None:
                    raise NotFoundError("Course", value)
                schedule.course_code = schedule.course_code or course.code
                schedule.course_name = schedule.course_name or course.name
            elif field == 'lecturer_id':
                ScheduleService._check_lecturer(value)
            elif field == 'is_active':
                value = bool(value)
            setattr(schedule, field, value)

        derive_day = schedule.day_of_week is None or ('date' in data and 'day_of_week' not in data)
        if derive_day and schedule.date is not None:
            schedule.day_of_week = weekday_of(schedule.date)
        if schedule.start_time and schedule.end_time and schedule.end_time <= schedule.start_time:
            raise ValidationFailedError("end_time must be after start_time")

    @staticmethod
    def create(actor: Subject, data: Optional[Dict]) -> Dict:
        Validator.require(data, 'date', 'start_time', 'end_time')
        data = dict(data)

        if actor.role == 'lecturer':
            if data.get('lecturer_id') not in (None, actor.id):
                raise ForbiddenError("Lecturers can only create their own schedules")
            data['lecturer_id'] = actor.id
        elif not data.get('lecturer_id'):
            raise ValidationFailedError("Validation failed: lecturer_id is required")

        schedule = Schedule()
        ScheduleService._apply(schedule, data)
        db.session.add(schedule)
        db.session.commit()
        return schedule.to_dict()

    @staticmethod
    def get(schedule_id: str) -> Schedule:
        schedule = Schedule.get_alive(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    @staticmethod
    def list_schedules(filters: Dict) -> List[Dict]:
        query = Schedule.alive()

        if filters.get('lecturer_id'):
            query = query.filter(Schedule.lecturer_id == filters['lecturer_id'])
        if filters.get('course_id'):
            query = query.filter(Schedule.course_id == filters['course_id'])
        if filters.get('day_of_week') not in (None, ''):
            query = query.filter(
                Schedule.day_of_week == ScheduleService._check_day_of_week(filters['day_of_week'])
            )
        day = Validator.parse_date(filters.get('date'))
        if day:
            query = query.filter(Schedule.date == day)
        if filters.get('active_only', 'true').lower() != 'false':
            query = query.filter(Schedule.is_active.is_(True))

        schedules = query.order_by(Schedule.date, Schedule.start_time).all()
        return [s.to_dict() for s in schedules]

    @staticmethod
    def _check_owner(actor: Subject, schedule: Schedule) -> None:
        if actor.role == 'lecturer' and schedule.lecturer_id != actor.id:
            raise ForbiddenError("You can only modify your own schedules")

    @staticmethod
    def update(actor: Subject, schedule_id: str, data: Optional[Dict]) -> Dict:
        if not isinstance(data, dict):
            raise ValidationFailedError("Request body must be a JSON object")
        schedule = ScheduleService.get(schedule_id)
        ScheduleService._check_owner(actor, schedule)
        if actor.role == 'lecturer' and data.get('lecturer_id') not in (None, actor.id):
            raise ForbiddenError("Lecturers cannot reassign schedules")

        ScheduleService._apply(schedule, data)
        db.session.commit()
        return schedule.to_dict()

    @staticmethod
    def delete(actor: Subject, schedule_id: str) -> None:
        schedule = ScheduleService.get(schedule_id)
        ScheduleService._check_owner(actor, schedule)
        schedule.soft_delete()

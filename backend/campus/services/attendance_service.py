# backend/campus/services/attendance_service.py
"""Attendance engine: QR sessions, scans, manual entries and tap in/out."""
from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from campus import db, event_bus
from campus.models.attendance import AttendanceRecord, AttendanceStatus
from campus.models.attendance_session import AttendanceKind, AttendanceSession
from campus.models.base import new_uuid
from campus.models.schedule import Schedule
from campus.models.user import User
from campus.services.qr_service import MalformedPayload, QRPayload, QRService
from campus.utils.decorators import Subject
from campus.utils.errors import (
    BadRequestError, ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
)
from campus.utils.helpers import utcnow
from campus.utils.validators import Validator

DEFAULT_DURATION_MINUTES = 15
PRESENTER_ROLES = ('lecturer', 'staff')

ALREADY_RECORDED = "attendance already recorded for today"


def emit_event(service: str, detail: str, payload: Dict) -> None:
    """Best-effort service event; never fails the caller."""
    try:
        event_bus.publish_service_event(detail, payload, service=service)
    except Exception as e:
        current_app.logger.warning(f"Could not publish {service}.{detail} event: {e}")


class AttendanceService:

    @staticmethod
    def _session_response(session: AttendanceSession, payload: QRPayload) -> Dict:
        return {
            'session_id': session.id,
            'schedule_id': session.schedule_id,
            'kind': session.kind.value,
            'qr_code': QRService.render_data_uri(payload),
            'qr_data': session.qr_payload,
            'expires_at': payload.to_dict()['expires_at'],
        }

    @staticmethod
    def _check_duration(duration: Optional[int]) -> int:
        if duration is None:
            return DEFAULT_DURATION_MINUTES
        if duration <= 0:
            raise BadRequestError("duration must be a positive number of minutes")
        max_duration = current_app.config.get('QR_MAX_DURATION_MINUTES', 240)
        if duration > max_duration:
            raise BadRequestError(f"duration cannot exceed {max_duration} minutes")
        return duration

    @staticmethod
    def _new_session(presenter: Subject, kind: AttendanceKind, schedule_id: Optional[str],
                     duration: int) -> Tuple[AttendanceSession, QRPayload]:
        session = AttendanceSession(
            id=new_uuid(),
            schedule_id=schedule_id,
            created_by=presenter.id,
            kind=kind,
            expires_at=utcnow().replace(microsecond=0) + timedelta(minutes=duration),
            is_active=True
        )
        payload = QRPayload(
            session_id=session.id,
            schedule_id=schedule_id or '',
            expires_at=session.expires_at,
            kind=kind.value
        )
        session.qr_payload = QRService.encode(payload)
        return session, payload

    @staticmethod
    def generate_class_session(presenter: Subject, schedule_id: str,
                               duration: Optional[int] = DEFAULT_DURATION_MINUTES) -> Dict:
        """Replace any active session of a schedule with a fresh one."""
        if presenter.role not in PRESENTER_ROLES:
            raise ForbiddenError("lecturer or staff access required")
        duration = AttendanceService._check_duration(duration)

        schedule = Schedule.get_alive(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        if presenter.role == 'lecturer' and schedule.lecturer_id != presenter.id:
            raise ForbiddenError("You can only generate QR for your own schedules")

        session, payload = AttendanceService._new_session(
            presenter, AttendanceKind.CLASS, schedule.id, duration
        )
        try:
            replaced = AttendanceSession.deactivate_for_schedule(schedule.id)
            db.session.add(session)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("a session for this schedule was generated concurrently", e)

        current_app.logger.info(
            f"Class session {session.id} generated for schedule {schedule.id} "
            f"by {presenter.id} (replaced {replaced})"
        )
        return AttendanceService._session_response(session, payload)

    @staticmethod
    def generate_session(presenter: Subject, kind: str, schedule_id: Optional[str] = None,
                         duration: Optional[int] = None) -> Dict:
        """Generate a class or campus session."""
        kind = AttendanceKind(Validator.one_of(kind, [k.value for k in AttendanceKind], 'type'))
        if kind == AttendanceKind.CLASS:
            if not schedule_id:
                raise BadRequestError("schedule_id is required for class sessions")
            return AttendanceService.generate_class_session(presenter, schedule_id, duration)

        if presenter.role not in PRESENTER_ROLES:
            raise ForbiddenError("lecturer or staff access required")
        duration = AttendanceService._check_duration(duration)

        # Campus sessions are never bound to a schedule.
        session, payload = AttendanceService._new_session(presenter, kind, None, duration)
        db.session.add(session)
        db.session.commit()

        current_app.logger.info(f"{kind.value} session {session.id} generated by {presenter.id}")
        return AttendanceService._session_response(session, payload)

    @staticmethod
    def regenerate_class_session(schedule_id: str, presenter: Subject) -> Dict:
        return AttendanceService.generate_class_session(
            presenter, schedule_id, DEFAULT_DURATION_MINUTES
        )

    @staticmethod
    def deactivate_session(session_id: str, actor: Subject) -> Dict:
        """Administrative deactivation; repeating it is harmless."""
        session = AttendanceSession.get_alive(session_id)
        if session is None:
            raise NotFoundError("Attendance session", session_id)

        if actor.role == 'lecturer' and session.created_by != actor.id:
            schedule = Schedule.get_by_id(session.schedule_id) if session.schedule_id else None
            if schedule is None or schedule.lecturer_id != actor.id:
                raise ForbiddenError("You can only deactivate your own sessions")

        AttendanceSession.deactivate(session.id)
        db.session.commit()
        db.session.refresh(session)
        return session.to_dict()

    @staticmethod
    def scan(user_id: str, qr_data: str, latitude: Optional[float] = None,
             longitude: Optional[float] = None) -> Dict:
        """Record attendance from a scanned session QR."""
        try:
            payload = QRService.decode(qr_data)
        except MalformedPayload as e:
            raise BadRequestError("invalid QR code data", e)

        session = AttendanceSession.get_alive(payload.session_id)
        if session is None:
            raise BadRequestError("invalid or expired QR code")

        now = utcnow()
        if not session.is_usable(now):
            raise BadRequestError("QR code has expired")

        today = now.date()
        if AttendanceRecord.exists_for(user_id, today, session.schedule_id):
            raise ConflictError(ALREADY_RECORDED)

        record = AttendanceRecord(
            user_id=user_id,
            session_id=session.id,
            schedule_id=session.schedule_id,
            kind=session.kind,
            status=AttendanceStatus.PRESENT,
            date=today,
            check_in_time=now,
            latitude=latitude,
            longitude=longitude
        )
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError(ALREADY_RECORDED, e)

        if session.kind == AttendanceKind.CLASS and session.schedule_id:
            # The record is already committed; losing this flip only delays regeneration.
            try:
                AttendanceSession.deactivate(session.id)
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.error(f"Failed to deactivate session {session.id}: {e}")

        current_app.logger.info(f"Attendance {record.id} recorded for {user_id} via {session.id}")
        emit_event('attendance', 'recorded', {
            'attendance_id': record.id,
            'user_id': user_id,
            'session_id': session.id,
            'schedule_id': session.schedule_id,
            'kind': session.kind.value,
        })

        return {
            'attendance_id': record.id,
            'status': record.status.value,
            'message': "Attendance recorded successfully"
        }

    @staticmethod
    def _check_schedule_owner(actor: Subject, schedule_id: Optional[str]) -> None:
        """Lecturers manage attendance of their own schedules only; campus records are staff's."""
        if actor.role != 'lecturer':
            return
        schedule = Schedule.get_by_id(schedule_id) if schedule_id else None
        if schedule is None or schedule.lecturer_id != actor.id:
            raise ForbiddenError("You can only manage attendance for your own schedules")

    @staticmethod
    def create_manual_attendance(creator: Subject, data: Optional[Dict]) -> Dict:
        """Administrative entry; no session involved."""
        Validator.require(data, 'user_id', 'date')

        subject = User.get_alive(data['user_id'])
        if subject is None:
            raise NotFoundError("User", data['user_id'])

        schedule_id = data.get('schedule_id') or None
        if schedule_id and Schedule.get_alive(schedule_id) is None:
            raise NotFoundError("Schedule", schedule_id)
        AttendanceService._check_schedule_owner(creator, schedule_id)

        default_kind = AttendanceKind.CLASS if schedule_id else AttendanceKind.CAMPUS
        kind = AttendanceKind(Validator.one_of(
            data.get('kind') or default_kind.value, [k.value for k in AttendanceKind], 'kind'
        ))
        status = AttendanceStatus(Validator.one_of(
            data.get('status') or AttendanceStatus.PRESENT.value,
            [s.value for s in AttendanceStatus], 'status'
        ))
        if kind == AttendanceKind.CLASS and not schedule_id:
            raise BadRequestError("schedule_id is required for class attendance")
        if kind == AttendanceKind.CAMPUS and schedule_id:
            raise BadRequestError("campus attendance cannot reference a schedule")
        day = Validator.parse_date(data['date'])

        if AttendanceRecord.exists_for(subject.id, day, schedule_id):
            raise ConflictError("attendance already recorded for this date")

        record = AttendanceRecord(
            user_id=subject.id,
            schedule_id=schedule_id,
            kind=kind,
            status=status,
            date=day,
            notes=data.get('notes'),
            created_by=creator.id
        )
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("attendance already recorded for this date", e)

        current_app.logger.info(f"Manual attendance {record.id} created by {creator.id}")
        return record.to_dict()

    @staticmethod
    def update_attendance(actor: Subject, record_id: str, data: Optional[Dict]) -> Dict:
        """Correct status or notes; the date never changes."""
        if not isinstance(data, dict):
            raise ValidationFailedError("Request body must be a JSON object")

        record = AttendanceRecord.get_by_id(record_id)
        if record is None:
            raise NotFoundError("Attendance", record_id)
        AttendanceService._check_schedule_owner(actor, record.schedule_id)

        if 'date' in data and data['date'] != record.date.isoformat():
            raise BadRequestError("attendance date cannot be changed")

        if 'status' not in data and 'notes' not in data:
            raise ValidationFailedError("Validation failed: status is required")

        if 'status' in data:
            record.status = AttendanceStatus(Validator.one_of(
                data['status'], [s.value for s in AttendanceStatus], 'status'
            ))
        if 'notes' in data:
            record.notes = data['notes']

        db.session.commit()
        return record.to_dict()

    @staticmethod
    def list_attendances(subject: Subject, filters: Dict) -> Tuple[list, int, int, int]:
        """Filtered page of records; students only ever see their own."""
        query = AttendanceRecord.query

        if subject.role == 'student':
            query = query.filter(AttendanceRecord.user_id == subject.id)
        elif filters.get('user_id'):
            query = query.filter(AttendanceRecord.user_id == filters['user_id'])

        if filters.get('schedule_id'):
            query = query.filter(AttendanceRecord.schedule_id == filters['schedule_id'])
        if filters.get('kind'):
            kind = Validator.one_of(filters['kind'], [k.value for k in AttendanceKind], 'kind')
            query = query.filter(AttendanceRecord.kind == AttendanceKind(kind))
        if filters.get('status'):
            status = Validator.one_of(filters['status'], [s.value for s in AttendanceStatus], 'status')
            query = query.filter(AttendanceRecord.status == AttendanceStatus(status))

        start = Validator.parse_date(filters.get('start_date'), 'start_date')
        end = Validator.parse_date(filters.get('end_date'), 'end_date')
        if start:
            query = query.filter(AttendanceRecord.date >= start)
        if end:
            query = query.filter(AttendanceRecord.date <= end)

        page = max(Validator.parse_int(filters.get('page'), 'page', 1), 1)
        per_page = Validator.parse_int(filters.get('per_page'), 'per_page',
                                       current_app.config.get('DEFAULT_PAGE_SIZE', 20))
        per_page = min(max(per_page, 1), current_app.config.get('MAX_PAGE_SIZE', 100))

        total = query.count()
        records = query.order_by(
            AttendanceRecord.date.desc(), AttendanceRecord.created_at.desc()
        ).offset((page - 1) * per_page).limit(per_page).all()

        return [r.to_dict() for r in records], page, per_page, total

    @staticmethod
    def statistics(user_id: str, start: Optional[date] = None,
                   end: Optional[date] = None) -> Dict:
        """Counts by status and kind with the present ratio."""
        def scoped(query):
            query = query.filter(AttendanceRecord.user_id == user_id)
            if start:
                query = query.filter(AttendanceRecord.date >= start)
            if end:
                query = query.filter(AttendanceRecord.date <= end)
            return query

        by_status = {s.value: 0 for s in AttendanceStatus}
        rows = scoped(db.session.query(AttendanceRecord.status, func.count(AttendanceRecord.id)))
        for status, count in rows.group_by(AttendanceRecord.status).all():
            by_status[status.value] = count

        by_kind = {k.value: 0 for k in AttendanceKind}
        rows = scoped(db.session.query(AttendanceRecord.kind, func.count(AttendanceRecord.id)))
        for kind, count in rows.group_by(AttendanceRecord.kind).all():
            by_kind[kind.value] = count

        total = sum(by_status.values())
        present = by_status[AttendanceStatus.PRESENT.value]

        return {
            'user_id': user_id,
            'start_date': start.isoformat() if start else None,
            'end_date': end.isoformat() if end else None,
            'total': total,
            'by_status': by_status,
            'by_kind': by_kind,
            'attendance_rate': round(present / total, 4) if total else 0.0
        }

    @staticmethod
    def tap_in(user_id: str, latitude: Optional[float] = None,
               longitude: Optional[float] = None) -> Dict:
        """Open today's campus presence record."""
        now = utcnow()
        today = now.date()
        if AttendanceRecord.open_campus_record(user_id, today) is not None:
            raise ConflictError("already tapped in today")

        record = AttendanceRecord(
            user_id=user_id,
            kind=AttendanceKind.CAMPUS,
            status=AttendanceStatus.PRESENT,
            date=today,
            check_in_time=now,
            latitude=latitude,
            longitude=longitude
        )
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("already tapped in today", e)

        emit_event('attendance', 'tap_in', {'attendance_id': record.id, 'user_id': user_id})
        return record.to_dict()

    @staticmethod
    def tap_out(user_id: str) -> Dict:
        """Close today's open campus record."""
        now = utcnow()
        record = AttendanceRecord.open_campus_record(user_id, now.date())
        if record is None:
            raise BadRequestError("no active tap in found")

        closed = AttendanceRecord.query.filter(
            AttendanceRecord.id == record.id,
            AttendanceRecord.check_out_time.is_(None)
        ).update({'check_out_time': now, 'updated_at': now}, synchronize_session=False)
        db.session.commit()
        if closed == 0:
            raise BadRequestError("no active tap in found")

        db.session.refresh(record)
        emit_event('attendance', 'tap_out', {'attendance_id': record.id, 'user_id': user_id})
        return record.to_dict()

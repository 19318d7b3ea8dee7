"""Models package with all models."""
from .base import BaseModel, SoftDeleteMixin
from .user import User, UserRole, StudentDetail, LecturerDetail, StaffDetail, DETAIL_MODELS
from .course import Course, Enrollment
from .schedule import Schedule
from .attendance_session import AttendanceSession, AttendanceKind
from .attendance import AttendanceRecord, AttendanceStatus
from .gate_token import GateAccessToken
from .access_log import AccessLog

__all__ = [
    'BaseModel', 'SoftDeleteMixin',
    'User', 'UserRole', 'StudentDetail', 'LecturerDetail', 'StaffDetail', 'DETAIL_MODELS',
    'Course', 'Enrollment', 'Schedule',
    'AttendanceSession', 'AttendanceKind',
    'AttendanceRecord', 'AttendanceStatus',
    'GateAccessToken', 'AccessLog'
]
